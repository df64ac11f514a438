"""
Editor-side views.
Screening, reviewer management, editorial decisions and editor statistics.
"""
import logging
from collections import Counter

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.config import JournalConfig
from apps.common.permissions import IsEditorOrAdmin
from apps.reviews import services as review_services
from apps.reviews.models import Review
from apps.reviews.serializers import (
    ReviewSerializer, AssignReviewerSerializer, ExtendDeadlineSerializer, RemoveReviewerSerializer,
)
from apps.users.roles import capabilities_for
from apps.users.serializers import UserSummarySerializer
from . import workflow
from .models import Submission
from .serializers import (
    EditorSubmissionSerializer, SubmissionListSerializer, SubmissionTimelineSerializer,
    ScreeningSerializer, DecisionSerializer, RevisionDecisionSerializer, AssignEditorSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def editor_submissions(user):
    """
    Submissions visible to ``user`` as editor: everything for admins; for
    editors, their assigned submissions plus unassigned ones awaiting
    screening.
    """
    queryset = Submission.objects.exclude(status=Submission.STATUS_DRAFT)
    if capabilities_for(user).can_administer:
        return queryset
    return queryset.filter(
        Q(editor_assignments__editor=user) | Q(editor_assignments__isnull=True)
    ).distinct()


@extend_schema_view(
    list=extend_schema(summary="List submissions for editorial handling"),
    retrieve=extend_schema(summary="Get submission with review summary"),
)
class EditorSubmissionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Editorial handling of submissions. Every mutating action goes through
    ``apps.submissions.workflow`` or ``apps.reviews.services``.
    """
    permission_classes = [permissions.IsAuthenticated, IsEditorOrAdmin]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'manuscript_type']
    search_fields = ['title', 'abstract', 'author__email', 'author__last_name']
    ordering_fields = ['submitted_at', 'created_at', 'updated_at', 'status']
    ordering = ['-submitted_at']

    def get_queryset(self):
        return editor_submissions(self.request.user).select_related('author').prefetch_related(
            'coauthors', 'files', 'revisions__files', 'editor_assignments__editor', 'reviews'
        )

    def get_serializer_class(self):
        if self.action == 'list':
            return SubmissionListSerializer
        return EditorSubmissionSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['config'] = JournalConfig.load()
        return context

    def _detail(self, submission, status_code=status.HTTP_200_OK):
        serializer = EditorSubmissionSerializer(submission, context=self.get_serializer_context())
        return Response(serializer.data, status=status_code)

    @extend_schema(summary="Open initial screening", request=None, responses={200: EditorSubmissionSerializer})
    @action(detail=True, methods=['post'], url_path='open-screening')
    def open_screening(self, request, pk=None):
        submission = workflow.open_screening(self.get_object(), request.user)
        return self._detail(submission)

    @extend_schema(summary="Record screening decision", request=ScreeningSerializer,
                   responses={200: EditorSubmissionSerializer})
    @action(detail=True, methods=['post'])
    def screen(self, request, pk=None):
        serializer = ScreeningSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = workflow.screen_submission(
            self.get_object(), request.user,
            serializer.validated_data['decision'], serializer.validated_data['comments'],
            config=JournalConfig.load(),
        )
        return self._detail(submission)

    @extend_schema(summary="Assign handling editor (admin)", request=AssignEditorSerializer,
                   responses={200: EditorSubmissionSerializer})
    @action(detail=True, methods=['post'], url_path='assign-editor')
    def assign_editor(self, request, pk=None):
        serializer = AssignEditorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        editor = get_object_or_404(User, pk=serializer.validated_data['editor_id'])
        submission = workflow.assign_editor(
            self.get_object(), editor, request.user, is_chief=serializer.validated_data['is_chief']
        )
        return self._detail(submission)

    @extend_schema(summary="Invite a reviewer", request=AssignReviewerSerializer,
                   responses={201: ReviewSerializer})
    @action(detail=True, methods=['post'], url_path='assign-reviewer')
    def assign_reviewer(self, request, pk=None):
        serializer = AssignReviewerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reviewer = get_object_or_404(User, pk=serializer.validated_data['reviewer_id'])
        review = review_services.invite_reviewer(
            self.get_object(), reviewer, request.user,
            due_date=serializer.validated_data.get('due_date'),
            config=JournalConfig.load(),
        )
        return Response(ReviewSerializer(review).data, status=status.HTTP_201_CREATED)

    @extend_schema(summary="Editorial decision", request=DecisionSerializer,
                   responses={200: EditorSubmissionSerializer})
    @action(detail=True, methods=['post'])
    def decision(self, request, pk=None):
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = workflow.make_decision(
            self.get_object(), request.user,
            serializer.validated_data['decision'], serializer.validated_data['comments'],
            config=JournalConfig.load(), request=request,
        )
        return self._detail(submission)

    @extend_schema(summary="Decision on a revised manuscript", request=RevisionDecisionSerializer,
                   responses={200: EditorSubmissionSerializer})
    @action(detail=True, methods=['post'], url_path='revision-decision')
    def revision_decision(self, request, pk=None):
        serializer = RevisionDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        submission = workflow.handle_revision(
            self.get_object(), request.user, data['decision'], data['comments'],
            reviewer_ids=data['reviewer_ids'], due_date=data.get('due_date'),
            config=JournalConfig.load(),
        )
        return self._detail(submission)

    @extend_schema(summary="Reviews of a submission with decision readiness")
    @action(detail=True, methods=['get'])
    def reviews(self, request, pk=None):
        submission = self.get_object()
        reviews = submission.reviews.select_related('reviewer').order_by('invited_at')
        return Response({
            'reviews': ReviewSerializer(reviews, many=True).data,
            'decision_readiness': review_services.decision_readiness(submission, JournalConfig.load()),
        })

    @extend_schema(
        summary="Reviewers that can be invited",
        parameters=[OpenApiParameter(name='search', description='Name, email or affiliation', required=False, type=str)],
        responses={200: UserSummarySerializer(many=True)}
    )
    @action(detail=True, methods=['get'], url_path='available-reviewers')
    def available_reviewers(self, request, pk=None):
        reviewers = review_services.available_reviewers(
            self.get_object(), search=request.query_params.get('search')
        )
        return Response(UserSummarySerializer(reviewers, many=True).data)

    @extend_schema(summary="Submission timeline", responses={200: SubmissionTimelineSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def timeline(self, request, pk=None):
        submission = self.get_object()
        return Response(SubmissionTimelineSerializer(submission.timeline.all(), many=True).data)


class EditorReviewViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Reviews on submissions the editor handles: reminders, deadline
    extensions, removal and the overdue list.
    """
    serializer_class = ReviewSerializer
    permission_classes = [permissions.IsAuthenticated, IsEditorOrAdmin]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'submission']

    def get_queryset(self):
        return Review.objects.filter(
            submission__in=editor_submissions(self.request.user)
        ).select_related('submission', 'reviewer')

    @extend_schema(summary="Overdue reviews", responses={200: ReviewSerializer(many=True)})
    @action(detail=False, methods=['get'])
    def overdue(self, request):
        now = timezone.now()
        queryset = self.get_queryset().filter(
            status__in=Review.OPEN_STATUSES, due_date__lt=now
        ).order_by('due_date')
        return Response(ReviewSerializer(queryset, many=True).data)

    @extend_schema(summary="Send reminder to reviewer", request=None, responses={200: ReviewSerializer})
    @action(detail=True, methods=['post'])
    def remind(self, request, pk=None):
        review = review_services.send_reminder(self.get_object(), request.user, config=JournalConfig.load())
        return Response(ReviewSerializer(review).data)

    @extend_schema(summary="Extend review deadline", request=ExtendDeadlineSerializer,
                   responses={200: ReviewSerializer})
    @action(detail=True, methods=['post', 'put'], url_path='extend-deadline')
    def extend_deadline(self, request, pk=None):
        serializer = ExtendDeadlineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = review_services.extend_deadline(
            self.get_object(), request.user,
            serializer.validated_data['due_date'], serializer.validated_data['reason'],
            config=JournalConfig.load(),
        )
        return Response(ReviewSerializer(review).data)

    @extend_schema(summary="Remove reviewer", request=RemoveReviewerSerializer, responses={200: ReviewSerializer})
    @action(detail=True, methods=['post'])
    def remove(self, request, pk=None):
        serializer = RemoveReviewerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        review = review_services.remove_reviewer(
            self.get_object(), request.user, serializer.validated_data['reason']
        )
        return Response(ReviewSerializer(review).data)


class EditorStatsView(APIView):
    """
    Dashboard counts for the requesting editor.
    """
    permission_classes = [permissions.IsAuthenticated, IsEditorOrAdmin]

    @extend_schema(summary="Editor dashboard statistics")
    def get(self, request):
        if capabilities_for(request.user).can_administer:
            submissions = Submission.objects.exclude(status=Submission.STATUS_DRAFT)
        else:
            submissions = Submission.objects.filter(editor_assignments__editor=request.user).distinct()

        by_status = Counter(submissions.values_list('status', flat=True))
        now = timezone.now()
        open_reviews = Review.objects.filter(submission__in=submissions, status__in=Review.OPEN_STATUSES)

        return Response({
            'total_submissions': sum(by_status.values()),
            'submissions_by_status': dict(by_status),
            'awaiting_screening': Submission.objects.filter(
                status=Submission.STATUS_SUBMITTED, editor_assignments__isnull=True
            ).count(),
            'pending_reviews': open_reviews.count(),
            'overdue_reviews': open_reviews.filter(due_date__lt=now).count(),
            'awaiting_decision': by_status.get(Submission.STATUS_UNDER_REVIEW, 0)
            + by_status.get(Submission.STATUS_REVISED, 0),
        })
