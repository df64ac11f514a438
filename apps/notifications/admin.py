from django.contrib import admin

from .models import Notification, EmailTemplate, EmailLog


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'notification_type', 'title', 'is_read', 'created_at']
    list_filter = ['notification_type', 'is_read']
    search_fields = ['user__email', 'title']


@admin.register(EmailTemplate)
class EmailTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'subject', 'is_active', 'updated_at']
    list_filter = ['is_active']
    search_fields = ['name', 'subject']


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'template_name', 'status', 'sent_at', 'created_at']
    list_filter = ['status', 'template_name']
    search_fields = ['recipient', 'subject']
    readonly_fields = [f.name for f in EmailLog._meta.fields]
