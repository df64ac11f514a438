"""
ViewSets for author-side Submission management.
Handles manuscript CRUD, file upload, submission, withdrawal and revisions.
"""
import logging

from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response

from apps.common.config import JournalConfig
from apps.common.exceptions import PreconditionFailed
from apps.common.permissions import IsAuthor
from apps.reviews.models import Review
from apps.reviews.serializers import AuthorReviewSerializer
from . import workflow
from .models import Submission, SubmissionFile
from .serializers import (
    SubmissionSerializer, SubmissionListSerializer, SubmissionFileSerializer,
    FileUploadSerializer, RevisionSerializer, RevisionCreateSerializer,
    SubmissionTimelineSerializer, WithdrawSerializer,
)

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(summary="List my submissions"),
    retrieve=extend_schema(summary="Get submission"),
    create=extend_schema(summary="Create draft submission"),
    update=extend_schema(summary="Update submission (draft or returned for formatting)"),
    partial_update=extend_schema(summary="Partially update submission"),
)
class SubmissionViewSet(mixins.CreateModelMixin,
                        mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        mixins.UpdateModelMixin,
                        viewsets.GenericViewSet):
    """
    Author view of their own manuscripts.

    Submissions are never deleted; authors withdraw them instead.
    """
    permission_classes = [permissions.IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'manuscript_type']
    search_fields = ['title', 'abstract']
    ordering_fields = ['created_at', 'submitted_at', 'updated_at', 'title']
    ordering = ['-created_at']

    def get_queryset(self):
        return Submission.objects.filter(author=self.request.user).select_related(
            'author'
        ).prefetch_related('coauthors', 'files', 'revisions__files')

    def get_permissions(self):
        # Any signed-in user lists their own submissions; creating one needs the submit capability
        if self.action == 'create':
            return [permissions.IsAuthenticated(), IsAuthor()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return SubmissionListSerializer
        return SubmissionSerializer

    def perform_create(self, serializer):
        submission = serializer.save()
        workflow.add_timeline_event(
            submission, 'SUBMISSION_CREATED', 'Draft submission created', user=self.request.user
        )
        logger.info(f"Draft submission {submission.id} created by {self.request.user.email}")

    def perform_update(self, serializer):
        if serializer.instance.status not in Submission.EDITABLE_STATUSES:
            raise PreconditionFailed(
                'Only draft or returned submissions can be edited.', code='not_editable'
            )
        serializer.save()

    @extend_schema(summary="Submit manuscript", request=None, responses={200: SubmissionSerializer})
    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """DRAFT or RETURNED_FOR_FORMATTING -> SUBMITTED."""
        submission = workflow.submit_submission(
            self.get_object(), request.user, config=JournalConfig.load(), request=request
        )
        return Response(SubmissionSerializer(submission, context={'request': request}).data)

    @extend_schema(summary="Withdraw submission", request=WithdrawSerializer, responses={200: SubmissionSerializer})
    @action(detail=True, methods=['post'])
    def withdraw(self, request, pk=None):
        serializer = WithdrawSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        submission = workflow.withdraw_submission(
            self.get_object(), request.user, serializer.validated_data['reason'], request=request
        )
        return Response(SubmissionSerializer(submission, context={'request': request}).data)

    @extend_schema(
        summary="List or upload submission files",
        request=FileUploadSerializer,
        responses={200: SubmissionFileSerializer(many=True), 201: SubmissionFileSerializer}
    )
    @action(detail=True, methods=['get', 'post'])
    def files(self, request, pk=None):
        submission = self.get_object()
        if request.method == 'GET':
            serializer = SubmissionFileSerializer(submission.files.all(), many=True, context={'request': request})
            return Response(serializer.data)

        if submission.status not in Submission.EDITABLE_STATUSES:
            raise PreconditionFailed(
                'Files can only be added to draft or returned submissions.', code='not_editable'
            )
        serializer = FileUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        uploaded = data['file']

        with transaction.atomic():
            make_main = data['is_main_file'] or (
                data['file_type'] == 'MANUSCRIPT'
                and not submission.files.filter(is_main_file=True).exists()
            )
            if make_main:
                submission.files.update(is_main_file=False)
            submission_file = SubmissionFile.objects.create(
                submission=submission,
                file=uploaded,
                original_name=uploaded.name,
                file_type=data['file_type'],
                file_size=uploaded.size,
                description=data['description'],
                is_main_file=make_main,
                uploaded_by=request.user,
            )
            workflow.add_timeline_event(
                submission, 'FILE_UPLOADED', f"File uploaded: {uploaded.name}", user=request.user
            )

        return Response(
            SubmissionFileSerializer(submission_file, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(
        summary="List or submit revisions",
        request=RevisionCreateSerializer,
        responses={200: RevisionSerializer(many=True), 201: SubmissionSerializer}
    )
    @action(detail=True, methods=['get', 'post'], parser_classes=[MultiPartParser, FormParser, JSONParser])
    def revisions(self, request, pk=None):
        submission = self.get_object()
        if request.method == 'GET':
            return Response(RevisionSerializer(submission.revisions.all(), many=True).data)

        files = request.FILES.getlist('files')
        serializer = RevisionCreateSerializer(data={
            'author_response': request.data.get('author_response', ''),
            'files': files,
        })
        serializer.is_valid(raise_exception=True)
        submission = workflow.submit_revision(
            submission,
            request.user,
            serializer.validated_data['author_response'],
            serializer.validated_data['files'],
        )
        return Response(
            SubmissionSerializer(submission, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(summary="Submission timeline", responses={200: SubmissionTimelineSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def timeline(self, request, pk=None):
        submission = self.get_object()
        return Response(SubmissionTimelineSerializer(submission.timeline.all(), many=True).data)

    @extend_schema(summary="Completed reviews shared with the author", responses={200: AuthorReviewSerializer(many=True)})
    @action(detail=True, methods=['get'])
    def reviews(self, request, pk=None):
        submission = self.get_object()
        completed = submission.reviews.filter(status=Review.STATUS_COMPLETED)
        return Response(AuthorReviewSerializer(completed, many=True).data)
