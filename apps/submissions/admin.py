from django.contrib import admin

from .models import (
    Submission, CoAuthor, SubmissionFile, Revision, RevisionFile,
    SubmissionTimeline, EditorAssignment,
)


class CoAuthorInline(admin.TabularInline):
    model = CoAuthor
    extra = 0


class SubmissionFileInline(admin.TabularInline):
    model = SubmissionFile
    extra = 0
    fields = ('original_name', 'file_type', 'file_size', 'is_main_file', 'uploaded_at')
    readonly_fields = fields


class EditorAssignmentInline(admin.TabularInline):
    model = EditorAssignment
    fk_name = 'submission'
    extra = 0
    readonly_fields = ('assigned_by', 'assigned_at')


class TimelineInline(admin.TabularInline):
    model = SubmissionTimeline
    extra = 0
    can_delete = False
    fields = ('created_at', 'event', 'from_status', 'to_status', 'description', 'performed_by_name')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Submission)
class SubmissionAdmin(admin.ModelAdmin):
    list_display = ('title', 'author', 'status', 'doi', 'submitted_at', 'created_at')
    list_filter = ('status', 'manuscript_type', 'created_at')
    search_fields = ('title', 'abstract', 'doi', 'author__email')
    date_hierarchy = 'created_at'
    # Status only changes through the workflow
    readonly_fields = ('status', 'doi', 'submitted_at', 'accepted_at', 'published_at')
    inlines = [CoAuthorInline, SubmissionFileInline, EditorAssignmentInline, TimelineInline]

    def has_delete_permission(self, request, obj=None):
        return False


class RevisionFileInline(admin.TabularInline):
    model = RevisionFile
    extra = 0
    can_delete = False
    readonly_fields = ('original_name', 'file_size', 'uploaded_at')


@admin.register(Revision)
class RevisionAdmin(admin.ModelAdmin):
    list_display = ('submission', 'revision_number', 'submitted_by', 'submitted_at')
    search_fields = ('submission__title',)
    readonly_fields = ('submission', 'revision_number', 'submitted_by', 'submitted_at')
    inlines = [RevisionFileInline]

    def has_delete_permission(self, request, obj=None):
        return False
