"""
URL configuration for notifications app.
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter
from apps.notifications.views import NotificationViewSet, EmailTemplateViewSet, EmailLogViewSet

router = SimpleRouter()
router.register(r'email-templates', EmailTemplateViewSet, basename='email-templates')
router.register(r'email-logs', EmailLogViewSet, basename='email-logs')
router.register(r'', NotificationViewSet, basename='notifications')

urlpatterns = [
    path('', include(router.urls)),
]
