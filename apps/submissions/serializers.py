"""
Serializers for Submission management.
Handles submission CRUD, co-authors, files, revisions and the timeline.
"""
import os

from django.conf import settings
from django.db import transaction
from rest_framework import serializers

from apps.users.serializers import UserSummarySerializer
from .models import (
    Submission, CoAuthor, SubmissionFile, Revision, RevisionFile,
    SubmissionTimeline, EditorAssignment,
)


def validate_upload(uploaded):
    """Check extension and size against the JOURNAL_PORTAL limits."""
    portal = settings.JOURNAL_PORTAL
    extension = os.path.splitext(uploaded.name)[1].lower()
    if extension not in portal['SUBMISSION_FILE_TYPES']:
        raise serializers.ValidationError(
            f"Unsupported file type {extension or '(none)'}. "
            f"Allowed: {', '.join(portal['SUBMISSION_FILE_TYPES'])}"
        )
    if uploaded.size > portal['MAX_SUBMISSION_SIZE']:
        raise serializers.ValidationError(
            f"File is too large (max {portal['MAX_SUBMISSION_SIZE'] // (1024 * 1024)}MB)."
        )
    return uploaded


class CoAuthorSerializer(serializers.ModelSerializer):

    class Meta:
        model = CoAuthor
        fields = ('id', 'first_name', 'last_name', 'email', 'affiliation', 'is_corresponding', 'order')
        read_only_fields = ('id',)
        extra_kwargs = {'order': {'required': False}}


class SubmissionFileSerializer(serializers.ModelSerializer):
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = SubmissionFile
        fields = (
            'id', 'original_name', 'file_type', 'file_size', 'description',
            'is_main_file', 'file_url', 'uploaded_at'
        )
        read_only_fields = fields

    def get_file_url(self, obj):
        if obj.file:
            request = self.context.get('request')
            if request:
                return request.build_absolute_uri(obj.file.url)
            return obj.file.url
        return None


class FileUploadSerializer(serializers.Serializer):
    file = serializers.FileField(validators=[validate_upload])
    file_type = serializers.ChoiceField(choices=SubmissionFile.FILE_TYPE_CHOICES, default='MANUSCRIPT')
    description = serializers.CharField(required=False, allow_blank=True, default='')
    is_main_file = serializers.BooleanField(required=False, default=False)


class RevisionFileSerializer(serializers.ModelSerializer):

    class Meta:
        model = RevisionFile
        fields = ('id', 'original_name', 'file_size', 'uploaded_at')
        read_only_fields = fields


class RevisionSerializer(serializers.ModelSerializer):
    files = RevisionFileSerializer(many=True, read_only=True)

    class Meta:
        model = Revision
        fields = ('id', 'revision_number', 'author_response', 'files', 'submitted_at')
        read_only_fields = fields


class RevisionCreateSerializer(serializers.Serializer):
    author_response = serializers.CharField(required=False, allow_blank=True, default='')
    files = serializers.ListField(
        child=serializers.FileField(validators=[validate_upload]),
        required=False,
        default=list
    )


class SubmissionTimelineSerializer(serializers.ModelSerializer):
    event_display = serializers.CharField(source='get_event_display', read_only=True)

    class Meta:
        model = SubmissionTimeline
        fields = (
            'id', 'event', 'event_display', 'from_status', 'to_status',
            'description', 'performed_by', 'performed_by_name', 'created_at'
        )
        read_only_fields = fields


class EditorAssignmentSerializer(serializers.ModelSerializer):
    editor = UserSummarySerializer(read_only=True)

    class Meta:
        model = EditorAssignment
        fields = ('id', 'editor', 'is_chief', 'assigned_at')
        read_only_fields = fields


class SubmissionListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for submission lists."""
    author_name = serializers.CharField(source='author.full_name', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Submission
        fields = (
            'id', 'title', 'author', 'author_name', 'manuscript_type', 'status',
            'status_display', 'doi', 'submitted_at', 'published_at', 'created_at', 'updated_at'
        )
        read_only_fields = fields


class SubmissionSerializer(serializers.ModelSerializer):
    """Author-side serializer: create and edit manuscripts."""
    author = UserSummarySerializer(read_only=True)
    coauthors = CoAuthorSerializer(many=True, required=False)
    files = SubmissionFileSerializer(many=True, read_only=True)
    revisions = RevisionSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Submission
        fields = (
            'id', 'title', 'abstract', 'keywords', 'manuscript_type', 'author', 'coauthors',
            'status', 'status_display', 'is_double_blind', 'suggested_reviewers',
            'excluded_reviewers', 'comments', 'decision_comments', 'files', 'revisions',
            'doi', 'volume', 'issue', 'pages', 'publication_destination',
            'submitted_at', 'accepted_at', 'published_at', 'created_at', 'updated_at'
        )
        read_only_fields = (
            'id', 'status', 'decision_comments', 'doi', 'volume', 'issue', 'pages',
            'publication_destination', 'submitted_at', 'accepted_at', 'published_at',
            'created_at', 'updated_at'
        )

    def validate_keywords(self, value):
        if not isinstance(value, list) or not all(isinstance(k, str) for k in value):
            raise serializers.ValidationError("Keywords must be a list of strings.")
        seen = []
        for keyword in (k.strip() for k in value):
            if keyword and keyword.lower() not in [s.lower() for s in seen]:
                seen.append(keyword)
        return seen

    def _validate_reviewer_list(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Must be a list of user ids or emails.")
        return [str(v).strip() for v in value if str(v).strip()]

    def validate_suggested_reviewers(self, value):
        return self._validate_reviewer_list(value)

    def validate_excluded_reviewers(self, value):
        return self._validate_reviewer_list(value)

    def _save_coauthors(self, submission, coauthors):
        submission.coauthors.all().delete()
        for index, data in enumerate(coauthors, start=1):
            data = dict(data)
            data['order'] = index
            CoAuthor.objects.create(submission=submission, **data)

    @transaction.atomic
    def create(self, validated_data):
        coauthors = validated_data.pop('coauthors', [])
        validated_data['author'] = self.context['request'].user
        submission = Submission.objects.create(**validated_data)
        self._save_coauthors(submission, coauthors)
        return submission

    @transaction.atomic
    def update(self, instance, validated_data):
        coauthors = validated_data.pop('coauthors', None)
        instance = super().update(instance, validated_data)
        if coauthors is not None:
            self._save_coauthors(instance, coauthors)
        return instance


class EditorSubmissionSerializer(SubmissionSerializer):
    """Editor-side detail view with assignments and the review summary."""
    editor_assignments = EditorAssignmentSerializer(many=True, read_only=True)
    decision_readiness = serializers.SerializerMethodField()
    allowed_transitions = serializers.SerializerMethodField()

    class Meta(SubmissionSerializer.Meta):
        fields = SubmissionSerializer.Meta.fields + (
            'editor_assignments', 'decision_readiness', 'allowed_transitions'
        )
        read_only_fields = SubmissionSerializer.Meta.fields + (
            'editor_assignments', 'decision_readiness', 'allowed_transitions'
        )

    def get_decision_readiness(self, obj):
        from apps.reviews.services import decision_readiness
        return decision_readiness(obj, self.context.get('config'))

    def get_allowed_transitions(self, obj):
        from .workflow import allowed_transitions
        return allowed_transitions(obj.status)


class WithdrawSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ScreeningSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=['PROCEED_TO_REVIEW', 'REJECT', 'RETURN_FOR_FORMATTING'])
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class DecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=['ACCEPT', 'REJECT', 'REVISION_REQUIRED'])
    comments = serializers.CharField(required=False, allow_blank=True, default='')


class RevisionDecisionSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=['ACCEPT_REVISION', 'SEND_FOR_RE_REVIEW', 'REJECT_REVISION'])
    comments = serializers.CharField(required=False, allow_blank=True, default='')
    reviewer_ids = serializers.ListField(child=serializers.UUIDField(), required=False, default=list)
    due_date = serializers.DateTimeField(required=False, allow_null=True)


class AssignEditorSerializer(serializers.Serializer):
    editor_id = serializers.UUIDField()
    is_chief = serializers.BooleanField(required=False, default=False)
