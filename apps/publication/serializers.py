"""
Serializers for issues, conferences, articles and publishing.
"""
from rest_framework import serializers

from apps.submissions.models import Submission
from apps.submissions.serializers import SubmissionListSerializer
from .models import Issue, Conference, Article, PublicationSettings


class IssueSerializer(serializers.ModelSerializer):
    article_count = serializers.IntegerField(source='articles.count', read_only=True)

    class Meta:
        model = Issue
        fields = (
            'id', 'volume', 'number', 'title', 'description', 'published_at',
            'is_current', 'article_count', 'created_at', 'updated_at'
        )
        read_only_fields = ('id', 'article_count', 'created_at', 'updated_at')


class ConferenceSerializer(serializers.ModelSerializer):
    submission_count = serializers.IntegerField(source='submissions.count', read_only=True)

    class Meta:
        model = Conference
        fields = (
            'id', 'name', 'proceedings_no', 'category', 'description', 'year',
            'is_active', 'submission_count', 'created_at', 'updated_at'
        )
        read_only_fields = ('id', 'submission_count', 'created_at', 'updated_at')


class ArticleListSerializer(serializers.ModelSerializer):
    volume = serializers.IntegerField(source='issue.volume', read_only=True)
    number = serializers.IntegerField(source='issue.number', read_only=True)

    class Meta:
        model = Article
        fields = ('id', 'title', 'authors', 'doi', 'pages', 'volume', 'number', 'views', 'downloads', 'published_at')
        read_only_fields = fields


class ArticleSerializer(serializers.ModelSerializer):
    issue = IssueSerializer(read_only=True)

    class Meta:
        model = Article
        fields = (
            'id', 'title', 'abstract', 'keywords', 'authors', 'doi', 'pages',
            'issue', 'views', 'downloads', 'published_at'
        )
        read_only_fields = fields


class IssueDetailSerializer(IssueSerializer):
    articles = ArticleListSerializer(many=True, read_only=True)

    class Meta(IssueSerializer.Meta):
        fields = IssueSerializer.Meta.fields + ('articles',)


class PublicationSettingsSerializer(serializers.ModelSerializer):

    class Meta:
        model = PublicationSettings
        exclude = ('id', 'submission', 'created_at', 'updated_at')


class PublishSerializer(serializers.Serializer):
    destination = serializers.ChoiceField(choices=Submission.DESTINATION_CHOICES)
    issue_id = serializers.UUIDField(required=False, allow_null=True)
    conference_id = serializers.UUIDField(required=False, allow_null=True)
    pages = serializers.CharField(required=False, allow_blank=True, max_length=50)
    article_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    featured_article = serializers.BooleanField(required=False, default=False)
    show_on_homepage = serializers.BooleanField(required=False, default=False)
    scheduled_publish_at = serializers.DateTimeField(required=False, allow_null=True)
    settings = PublicationSettingsSerializer(required=False)


class ReadyToPublishSerializer(SubmissionListSerializer):
    paid_at = serializers.SerializerMethodField()

    class Meta(SubmissionListSerializer.Meta):
        fields = SubmissionListSerializer.Meta.fields + ('accepted_at', 'paid_at')
        read_only_fields = fields

    def get_paid_at(self, obj):
        payment = obj.payments.filter(status='PAID').order_by('-paid_at').first()
        return payment.paid_at if payment else None
