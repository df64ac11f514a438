"""
Reviewer-side views.
Invitations, review submission, certificates and reviewer statistics.
"""
import logging

from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.common.config import JournalConfig
from apps.common.exceptions import PreconditionFailed
from apps.common.permissions import IsReviewer
from .certificates import generate_reviewer_certificate, verification_code
from .models import Review
from .serializers import ReviewSerializer, ReviewResponseSerializer, ReviewSubmitSerializer
from . import services

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(summary="List my review assignments"),
    retrieve=extend_schema(summary="Get review assignment"),
)
class ReviewViewSet(viewsets.ReadOnlyModelViewSet):
    """
    A reviewer's own review assignments.
    """
    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated, IsReviewer]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status']

    def get_queryset(self):
        return Review.objects.filter(reviewer=self.request.user).select_related('submission', 'reviewer')

    @extend_schema(summary="Accept or decline an invitation", request=ReviewResponseSerializer,
                   responses={200: ReviewSerializer})
    @action(detail=True, methods=['post'])
    def respond(self, request, pk=None):
        serializer = ReviewResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = services.respond_to_review(
            self.get_object(), request.user,
            serializer.validated_data['accept'], serializer.validated_data['notes']
        )
        return Response(ReviewSerializer(review).data)

    @extend_schema(summary="Submit the review", request=ReviewSubmitSerializer, responses={200: ReviewSerializer})
    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        serializer = ReviewSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        review = services.submit_review(
            self.get_object(), request.user,
            recommendation=data['recommendation'],
            rating=data['rating'],
            author_comments=data['author_comments'],
            confidential_comments=data['confidential_comments'],
            config=JournalConfig.load(),
        )
        return Response(ReviewSerializer(review).data)

    @extend_schema(summary="Download reviewer certificate (PDF)", responses={(200, 'application/pdf'): bytes})
    @action(detail=True, methods=['get'])
    def certificate(self, request, pk=None):
        review = self.get_object()
        if review.status != Review.STATUS_COMPLETED:
            raise PreconditionFailed('Certificates are issued for completed reviews only.', code='review_not_completed')

        pdf_buffer = generate_reviewer_certificate(review, JournalConfig.load().journal_name)
        response = HttpResponse(pdf_buffer.read(), content_type='application/pdf')
        response['Content-Disposition'] = f'attachment; filename="review_certificate_{verification_code(review)}.pdf"'
        logger.info(f"Certificate generated for review {review.id}")
        return response

    @extend_schema(summary="My reviewing statistics")
    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(services.reviewer_stats(request.user))
