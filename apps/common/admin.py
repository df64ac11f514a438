from django.contrib import admin

from .models import ActivityLog, SystemSetting


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    """Admin interface for ActivityLog model."""
    list_display = ['user', 'action_type', 'resource_type', 'resource_id', 'actor_type', 'created_at']
    list_filter = ['action_type', 'resource_type', 'actor_type', 'created_at']
    search_fields = ['user__email', 'resource_id', 'ip_address']
    readonly_fields = [
        'id', 'user', 'actor_type', 'action_type', 'resource_type',
        'resource_id', 'metadata', 'ip_address', 'user_agent', 'created_at'
    ]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(SystemSetting)
class SystemSettingAdmin(admin.ModelAdmin):
    list_display = ['key', 'value', 'value_type', 'updated_at']
    search_fields = ['key', 'description']
