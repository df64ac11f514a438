"""
Payment views: Stripe payment intents, confirmation, the Stripe webhook
and admin payment management.
"""
import logging

from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import csrf_exempt
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes, authentication_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.config import JournalConfig
from apps.common.permissions import IsAdmin
from apps.submissions.models import Submission
from . import services
from .gateway import WebhookVerificationError, get_gateway
from .models import Payment
from .serializers import (
    PaymentSerializer, PaymentIntentResponseSerializer, ConfirmPaymentSerializer,
    PaymentProofSerializer, MarkPaidSerializer,
)

logger = logging.getLogger(__name__)


def _author_submission(request, submission_id):
    return get_object_or_404(Submission, pk=submission_id, author=request.user)


class PaymentIntentView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(summary="Create APC payment intent", request=None,
                   responses={201: PaymentIntentResponseSerializer})
    def post(self, request, submission_id):
        submission = _author_submission(request, submission_id)
        payment, client_secret = services.create_payment_intent(
            submission, request.user, config=JournalConfig.load()
        )
        return Response({
            'client_secret': client_secret,
            'payment_id': payment.id,
            'invoice_number': payment.invoice_number,
            'amount': str(payment.amount),
            'currency': payment.currency,
        }, status=status.HTTP_201_CREATED)


class PaymentStatusView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @extend_schema(summary="APC payment status for a submission")
    def get(self, request, submission_id):
        submission = _author_submission(request, submission_id)
        config = JournalConfig.load()
        payment = services.latest_payment(submission, request.user)
        return Response({
            'submission_id': submission.id,
            'submission_status': submission.status,
            'apc_amount': str(config.apc_amount),
            'apc_currency': config.apc_currency,
            'is_paid': submission.has_paid_payment(),
            'payment': PaymentSerializer(payment, context={'request': request}).data if payment else None,
        })


class PaymentProofView(APIView):
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser]

    @extend_schema(summary="Upload bank-transfer payment proof", request=PaymentProofSerializer,
                   responses={201: PaymentSerializer})
    def post(self, request, submission_id):
        submission = _author_submission(request, submission_id)
        serializer = PaymentProofSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.upload_payment_proof(
            submission, request.user, serializer.validated_data['proof'], config=JournalConfig.load()
        )
        return Response(PaymentSerializer(payment, context={'request': request}).data,
                        status=status.HTTP_201_CREATED)


@extend_schema_view(
    list=extend_schema(summary="List my payments"),
    retrieve=extend_schema(summary="Get payment"),
)
class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Payment.objects.filter(user=self.request.user).select_related('submission', 'user')

    @extend_schema(summary="Confirm card payment", request=ConfirmPaymentSerializer,
                   responses={200: PaymentSerializer})
    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.confirm_payment(
            self.get_object(), request.user, serializer.validated_data['payment_intent_id'],
            config=JournalConfig.load(),
        )
        return Response(PaymentSerializer(payment, context={'request': request}).data)


@extend_schema(summary="Stripe webhook", request=None, responses={200: None})
@csrf_exempt
@api_view(['POST'])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def stripe_webhook(request):
    """Verified with the ``Stripe-Signature`` header; no user authentication."""
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')
    try:
        event = get_gateway().construct_event(request.body, signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        return Response({'detail': str(e), 'code': 'invalid_signature'}, status=status.HTTP_400_BAD_REQUEST)

    services.handle_webhook_event(event)
    return Response({'received': True})


@extend_schema_view(
    list=extend_schema(summary="List all payments (admin)"),
    retrieve=extend_schema(summary="Get payment (admin)"),
)
class AdminPaymentViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PaymentSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_method', 'currency']
    search_fields = ['invoice_number', 'stripe_payment_id', 'submission__title', 'user__email']
    ordering_fields = ['created_at', 'paid_at', 'amount']
    ordering = ['-created_at']

    def get_queryset(self):
        return Payment.objects.select_related('submission', 'user')

    @extend_schema(summary="Mark payment as paid", request=MarkPaidSerializer, responses={200: PaymentSerializer})
    @action(detail=True, methods=['post'], url_path='mark-paid')
    def mark_paid(self, request, pk=None):
        serializer = MarkPaidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = services.mark_payment_paid(
            self.get_object(), request.user, serializer.validated_data['payment_method'],
            config=JournalConfig.load(), request=request,
        )
        return Response(PaymentSerializer(payment, context={'request': request}).data)
