"""
Admin publication views: the ready-to-publish queue, publishing,
unpublishing and issue/conference management.
"""
import logging

from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import permissions, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.config import JournalConfig
from apps.common.exceptions import PreconditionFailed
from apps.common.permissions import IsAdmin
from apps.submissions.models import Submission
from apps.submissions.serializers import EditorSubmissionSerializer
from . import services
from .models import Issue, Conference
from .serializers import (
    IssueSerializer, ConferenceSerializer, PublishSerializer, ReadyToPublishSerializer,
)

logger = logging.getLogger(__name__)


class ReadyToPublishView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Accepted and paid submissions", responses={200: ReadyToPublishSerializer(many=True)})
    def get(self, request):
        submissions = services.ready_to_publish().select_related('author').order_by('-accepted_at')
        return Response(ReadyToPublishSerializer(submissions, many=True).data)


class PublicationDestinationsView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Issues and conferences available for publication")
    def get(self, request):
        current = Issue.objects.filter(is_current=True).first()
        return Response({
            'current_issue': IssueSerializer(current).data if current else None,
            'issues': IssueSerializer(Issue.objects.all(), many=True).data,
            'conferences': ConferenceSerializer(Conference.objects.filter(is_active=True), many=True).data,
        })


class PublicationPreviewView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Preview of the article before publication")
    def get(self, request, submission_id):
        submission = get_object_or_404(Submission, pk=submission_id)
        config = JournalConfig.load()
        return Response({
            'submission': EditorSubmissionSerializer(
                submission, context={'request': request, 'config': config}
            ).data,
            'authors': services.article_authors(submission),
            'doi': submission.doi or services.generate_doi(submission, config),
            'is_paid': submission.has_paid_payment(),
        })


class PublishView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Publish an accepted, paid submission", request=PublishSerializer,
                   responses={200: EditorSubmissionSerializer})
    def post(self, request, submission_id):
        submission = get_object_or_404(Submission, pk=submission_id)
        serializer = PublishSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        issue_id = data.pop('issue_id', None)
        conference_id = data.pop('conference_id', None)
        issue = get_object_or_404(Issue, pk=issue_id) if issue_id else None
        conference = get_object_or_404(Conference, pk=conference_id) if conference_id else None
        destination = data.pop('destination')

        config = JournalConfig.load()
        submission = services.publish_submission(
            submission, request.user, destination, issue=issue, conference=conference,
            options=data, config=config, request=request,
        )
        return Response(EditorSubmissionSerializer(
            submission, context={'request': request, 'config': config}
        ).data)


class UnpublishView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @extend_schema(summary="Unpublish an article", request=None, responses={200: EditorSubmissionSerializer})
    def post(self, request, submission_id):
        submission = get_object_or_404(Submission, pk=submission_id)
        submission = services.unpublish_submission(submission, request.user, request=request)
        return Response(EditorSubmissionSerializer(
            submission, context={'request': request, 'config': JournalConfig.load()}
        ).data)


@extend_schema_view(
    list=extend_schema(summary="List issues"),
    create=extend_schema(summary="Create issue"),
    update=extend_schema(summary="Update issue"),
    destroy=extend_schema(summary="Delete issue without articles"),
)
class IssueViewSet(viewsets.ModelViewSet):
    queryset = Issue.objects.all()
    serializer_class = IssueSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filterset_fields = ['volume', 'is_current']

    def perform_destroy(self, instance):
        if instance.articles.exists():
            raise PreconditionFailed('Cannot delete an issue with published articles.', code='issue_has_articles')
        logger.info(f"Issue {instance} deleted by {self.request.user.email}")
        instance.delete()


@extend_schema_view(
    list=extend_schema(summary="List conferences"),
    create=extend_schema(summary="Create conference"),
    update=extend_schema(summary="Update conference"),
    destroy=extend_schema(summary="Delete conference without articles"),
)
class ConferenceViewSet(viewsets.ModelViewSet):
    queryset = Conference.objects.all()
    serializer_class = ConferenceSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    filterset_fields = ['year', 'is_active']

    def perform_destroy(self, instance):
        if instance.submissions.exists():
            raise PreconditionFailed(
                'Cannot delete a conference with published articles. Deactivate it instead.',
                code='conference_in_use'
            )
        instance.delete()
