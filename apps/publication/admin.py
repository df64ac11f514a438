from django.contrib import admin

from .models import Issue, Conference, Article, PublicationSettings


@admin.register(Issue)
class IssueAdmin(admin.ModelAdmin):
    list_display = ['volume', 'number', 'title', 'is_current', 'published_at']
    list_filter = ['is_current']


@admin.register(Conference)
class ConferenceAdmin(admin.ModelAdmin):
    list_display = ['name', 'year', 'proceedings_no', 'is_active']
    list_filter = ['is_active', 'year']
    search_fields = ['name', 'category']


@admin.register(Article)
class ArticleAdmin(admin.ModelAdmin):
    list_display = ['title', 'doi', 'issue', 'views', 'downloads', 'published_at']
    search_fields = ['title', 'doi']
    readonly_fields = ['views', 'downloads']


admin.site.register(PublicationSettings)
