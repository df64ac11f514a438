"""
URL configuration for the admin API (mounted at ``admin/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import AdminStatsView, SystemSettingsView, SystemHealthView, ActivityLogViewSet

router = SimpleRouter()
router.register(r'activity-logs', ActivityLogViewSet, basename='activity-log')

urlpatterns = [
    path('stats/', AdminStatsView.as_view(), name='admin-stats'),
    path('settings/', SystemSettingsView.as_view(), name='admin-settings'),
    path('system/health/', SystemHealthView.as_view(), name='admin-system-health'),
    path('payments/', include('apps.payments.admin_urls')),
    path('users/', include('apps.users.admin_urls')),
    path('', include(router.urls)),
]
