from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('submission', 'reviewer', 'status', 'recommendation', 'due_date', 'reminders_sent')
    list_filter = ('status', 'recommendation', 'removed_by_editor')
    search_fields = ('submission__title', 'reviewer__email')
    readonly_fields = ('invited_at', 'accepted_at', 'submitted_at', 'created_at', 'updated_at')
