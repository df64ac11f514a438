"""
Admin payment management (mounted at ``admin/payments/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import AdminPaymentViewSet

router = SimpleRouter()
router.register(r'', AdminPaymentViewSet, basename='admin-payment')

urlpatterns = [
    path('', include(router.urls)),
]
