"""
Account administration (mounted at ``admin/users/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import AdminUserViewSet

router = SimpleRouter()
router.register(r'', AdminUserViewSet, basename='admin-user')

urlpatterns = [
    path('', include(router.urls)),
]
