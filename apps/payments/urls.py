"""
URL configuration for payments (mounted at ``payments/``).
"""
from django.urls import path, include
from rest_framework.routers import SimpleRouter

from .views import PaymentIntentView, PaymentStatusView, PaymentProofView, PaymentViewSet, stripe_webhook

router = SimpleRouter()
router.register(r'', PaymentViewSet, basename='payment')

urlpatterns = [
    path('webhook/', stripe_webhook, name='payment-webhook'),
    path('submissions/<uuid:submission_id>/payment-intent/', PaymentIntentView.as_view(), name='payment-intent'),
    path('submissions/<uuid:submission_id>/payment-status/', PaymentStatusView.as_view(), name='payment-status'),
    path('submissions/<uuid:submission_id>/upload-proof/', PaymentProofView.as_view(), name='payment-upload-proof'),
    path('', include(router.urls)),
]
