"""
Administration views: platform statistics, journal settings, system health
and the activity log.
"""
import logging
import uuid
from collections import Counter

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import connection, transaction
from django.db.models import Sum
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework import filters, permissions, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.config import JournalConfig
from apps.common.models import ActivityLog, SystemSetting
from apps.common.permissions import IsAdmin
from apps.common.serializers import ActivityLogSerializer, SystemSettingSerializer
from apps.common.utils.activity_logger import log_activity
from apps.notifications.tasks import email_configured
from apps.payments.gateway import get_gateway
from apps.payments.models import Payment
from apps.publication.models import Article
from apps.reviews.models import Review
from apps.reviews.services import overdue_reviews
from apps.submissions.models import Submission

logger = logging.getLogger(__name__)

User = get_user_model()


class AdminStatsView(APIView):
    """
    Platform-wide counts for the admin dashboard.
    """
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Admin dashboard statistics")
    def get(self, request):
        paid = Payment.objects.filter(status=Payment.STATUS_PAID)
        revenue = {
            row['currency']: str(row['total'])
            for row in paid.values('currency').annotate(total=Sum('amount')).order_by('currency')
        }
        return Response({
            'users_by_role': dict(Counter(User.objects.filter(is_active=True).values_list('role', flat=True))),
            'total_users': User.objects.count(),
            'submissions_by_status': dict(Counter(Submission.objects.values_list('status', flat=True))),
            'total_submissions': Submission.objects.count(),
            'reviews_by_status': dict(Counter(Review.objects.values_list('status', flat=True))),
            'overdue_reviews': overdue_reviews().count(),
            'payments_by_status': dict(Counter(Payment.objects.values_list('status', flat=True))),
            'revenue': revenue,
            'published_articles': Submission.objects.filter(status=Submission.STATUS_PUBLISHED).count(),
            'issue_articles': Article.objects.count(),
        })


class SystemSettingsView(APIView):
    """
    GET lists stored settings and the effective journal configuration;
    PUT upserts one setting or a list of settings.
    """
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def _payload(self):
        config = JournalConfig.load()
        return {
            'settings': SystemSettingSerializer(SystemSetting.objects.all(), many=True).data,
            'effective': {
                key: str(value) if not isinstance(value, (int, str)) else value
                for key, value in config.as_dict().items()
            },
        }

    @extend_schema(summary="List system settings")
    def get(self, request):
        return Response(self._payload())

    @extend_schema(summary="Create or update system settings", request=SystemSettingSerializer(many=True))
    def put(self, request):
        items = request.data if isinstance(request.data, list) else [request.data]
        serializer = SystemSettingSerializer(data=items, many=True)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            for item in serializer.validated_data:
                setting, created = SystemSetting.objects.update_or_create(
                    key=item['key'],
                    defaults={
                        'value': item.get('value', ''),
                        'value_type': item.get('value_type', SystemSetting.TYPE_STRING),
                        'description': item.get('description', ''),
                        'updated_by': request.user,
                    },
                )
                log_activity(
                    request.user, 'UPDATE', 'SYSTEM_SETTING', setting.key,
                    metadata={'value': setting.value, 'created': created}, request=request,
                )
                logger.info(f"System setting {setting.key} set to {setting.value!r} by {request.user.email}")

        return Response(self._payload())


class SystemHealthView(APIView):
    """
    Reachability of the database and cache plus configuration of the
    email backend and the payment gateway.
    """
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    def _check_database(self):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
                cursor.fetchone()
            return {'status': 'ok'}
        except Exception as e:
            logger.error(f"Health check: database unreachable: {e}")
            return {'status': 'error', 'detail': str(e)}

    def _check_cache(self):
        key = f"health:{uuid.uuid4().hex}"
        try:
            cache.set(key, 'ok', 10)
            value = cache.get(key)
            cache.delete(key)
        except Exception as e:
            logger.error(f"Health check: cache unreachable: {e}")
            return {'status': 'error', 'detail': str(e)}
        return {'status': 'ok'} if value == 'ok' else {'status': 'error', 'detail': 'cache round-trip failed'}

    @extend_schema(summary="System health")
    def get(self, request):
        checks = {
            'database': self._check_database(),
            'cache': self._check_cache(),
            'email': {'status': 'ok' if email_configured() else 'not_configured'},
            'payment_gateway': {'status': 'ok' if get_gateway().configured else 'not_configured'},
        }
        if any(check['status'] == 'error' for check in checks.values()):
            overall = 'unhealthy'
        elif any(check['status'] != 'ok' for check in checks.values()):
            overall = 'degraded'
        else:
            overall = 'healthy'
        return Response({
            'status': overall,
            'checks': checks,
            'debug': settings.DEBUG,
        })


class ActivityLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Audit trail of user and system actions, newest first.
    """
    serializer_class = ActivityLogSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = {
        'user': ['exact'],
        'action_type': ['exact', 'in'],
        'resource_type': ['exact', 'in'],
        'actor_type': ['exact', 'in'],
        'created_at': ['gte', 'lte', 'date'],
    }
    search_fields = ['resource_id', 'user__email']
    ordering_fields = ['created_at', 'action_type', 'resource_type']
    ordering = ['-created_at']

    def get_queryset(self):
        return ActivityLog.objects.select_related('user')
