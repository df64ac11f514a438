from django.contrib import admin

from .models import CustomUser


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'first_name', 'last_name', 'role', 'is_active', 'created_at']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'first_name', 'last_name', 'affiliation']
    ordering = ['email']
    readonly_fields = ['last_login', 'created_at', 'updated_at']
    exclude = ['password', 'groups', 'user_permissions']
