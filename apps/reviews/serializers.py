"""
Serializers for review management.
"""
from django.utils import timezone
from rest_framework import serializers

from apps.reviews.models import Review
from apps.reviews.services import is_overdue
from apps.users.serializers import UserSummarySerializer


class ReviewSerializer(serializers.ModelSerializer):
    """Full review, as seen by the reviewer and the handling editors."""
    reviewer_info = UserSummarySerializer(source='reviewer', read_only=True)
    submission_title = serializers.CharField(source='submission.title', read_only=True)
    submission_abstract = serializers.CharField(source='submission.abstract', read_only=True)
    submission_status = serializers.CharField(source='submission.status', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    is_overdue = serializers.SerializerMethodField()
    days_remaining = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = [
            'id', 'submission', 'submission_title', 'submission_abstract', 'submission_status',
            'reviewer', 'reviewer_info', 'status', 'status_display',
            'recommendation', 'rating', 'author_comments', 'confidential_comments',
            'invited_at', 'accepted_at', 'submitted_at', 'due_date',
            'reminders_sent', 'last_reminded_at', 'response_notes', 'decline_reason',
            'removed_by_editor', 'is_overdue', 'days_remaining',
        ]
        read_only_fields = fields

    def get_is_overdue(self, obj):
        return is_overdue(obj, timezone.now())

    def get_days_remaining(self, obj):
        if obj.status not in Review.OPEN_STATUSES:
            return None
        return obj.days_remaining()


class AuthorReviewSerializer(serializers.ModelSerializer):
    """Completed review as shown to the author: no reviewer identity, no confidential comments."""

    class Meta:
        model = Review
        fields = ['id', 'recommendation', 'rating', 'author_comments', 'submitted_at']
        read_only_fields = fields


class ReviewResponseSerializer(serializers.Serializer):
    accept = serializers.BooleanField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReviewSubmitSerializer(serializers.Serializer):
    recommendation = serializers.ChoiceField(choices=Review.RECOMMENDATION_CHOICES)
    rating = serializers.IntegerField(min_value=1, max_value=5)
    author_comments = serializers.CharField()
    confidential_comments = serializers.CharField(required=False, allow_blank=True, default='')


class AssignReviewerSerializer(serializers.Serializer):
    reviewer_id = serializers.UUIDField()
    due_date = serializers.DateTimeField(required=False, allow_null=True)


class ExtendDeadlineSerializer(serializers.Serializer):
    due_date = serializers.DateTimeField()
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class RemoveReviewerSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')
