"""
Serializers for notifications and email templates.
"""
from rest_framework import serializers
from apps.notifications.models import Notification, EmailTemplate, EmailLog


class NotificationSerializer(serializers.ModelSerializer):
    submission_title = serializers.CharField(source='submission.title', read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = [
            'id', 'notification_type', 'title', 'message', 'is_read',
            'submission', 'submission_title', 'created_at',
        ]
        read_only_fields = fields


class EmailTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailTemplate
        fields = [
            'id', 'name', 'description', 'subject', 'html_content',
            'text_content', 'variables', 'is_active', 'updated_at',
        ]
        read_only_fields = ['id', 'updated_at']


class EmailLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = EmailLog
        fields = [
            'id', 'recipient', 'template_name', 'subject', 'status',
            'error_message', 'sent_at', 'created_at',
        ]
        read_only_fields = fields
