"""
API views for in-app notifications and email administration.
"""
from rest_framework import mixins, viewsets, status, filters
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.common.permissions import IsAdmin, IsOwner
from apps.notifications.models import Notification, EmailTemplate, EmailLog
from apps.notifications.serializers import (
    NotificationSerializer,
    EmailTemplateSerializer,
    EmailLogSerializer,
)


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.RetrieveModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """
    In-app notifications of the current user.

    Endpoints:
    - GET /api/v1/notifications/?unread_only=true&limit=20
    - POST /api/v1/notifications/{id}/mark-read/
    - POST /api/v1/notifications/mark-all-read/
    - DELETE /api/v1/notifications/{id}/
    """

    serializer_class = NotificationSerializer
    permission_classes = [IsAuthenticated, IsOwner]
    pagination_class = None

    def get_queryset(self):
        return Notification.objects.filter(
            user=self.request.user
        ).select_related('submission')

    @extend_schema(
        parameters=[
            OpenApiParameter('unread_only', OpenApiTypes.BOOL, description='Only unread notifications'),
            OpenApiParameter('limit', OpenApiTypes.INT, description='Maximum number of notifications (default 20)'),
        ]
    )
    def list(self, request):
        queryset = self.get_queryset()
        unread_count = queryset.filter(is_read=False).count()

        if request.query_params.get('unread_only', '').lower() in ('true', '1'):
            queryset = queryset.filter(is_read=False)

        try:
            limit = int(request.query_params.get('limit', 20))
        except ValueError:
            return Response(
                {'detail': 'limit must be an integer', 'code': 'invalid'},
                status=status.HTTP_400_BAD_REQUEST
            )
        limit = max(1, min(limit, 100))

        serializer = self.get_serializer(queryset[:limit], many=True)
        return Response({
            'results': serializer.data,
            'unread_count': unread_count,
        })

    @action(detail=True, methods=['post'], url_path='mark-read')
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'], url_path='mark-all-read')
    def mark_all_read(self, request):
        updated = self.get_queryset().filter(is_read=False).update(is_read=True)
        return Response({'updated': updated})


class EmailTemplateViewSet(viewsets.ModelViewSet):
    """Administrators manage the email templates."""

    queryset = EmailTemplate.objects.all()
    serializer_class = EmailTemplateSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    lookup_field = 'name'


class EmailLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Outgoing email history for administrators."""

    queryset = EmailLog.objects.all()
    serializer_class = EmailLogSerializer
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'template_name']
    search_fields = ['recipient', 'subject']
    ordering_fields = ['created_at', 'sent_at']
    ordering = ['-created_at']
