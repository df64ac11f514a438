"""
Notification models for the Journal Portal.
In-app notifications, editable email templates and the email delivery log.
"""
import uuid
from django.conf import settings
from django.db import models


class Notification(models.Model):
    """
    In-app notification shown in the user's notification bell.
    """
    TYPE_CHOICES = [
        ('SUBMISSION_RECEIVED', 'Submission Received'),
        ('NEW_SUBMISSION', 'New Submission'),
        ('STATUS_CHANGED', 'Status Changed'),
        ('REVIEW_INVITATION', 'Review Invitation'),
        ('REVIEW_ACCEPTED', 'Review Accepted'),
        ('REVIEW_DECLINED', 'Review Declined'),
        ('REVIEW_COMPLETED', 'Review Completed'),
        ('REVIEW_REMINDER', 'Review Reminder'),
        ('DEADLINE_EXTENDED', 'Deadline Extended'),
        ('REVIEWER_REMOVED', 'Reviewer Removed'),
        ('EDITOR_ASSIGNED', 'Editor Assigned'),
        ('DECISION_MADE', 'Editorial Decision'),
        ('REVISION_SUBMITTED', 'Revision Submitted'),
        ('PAYMENT_PENDING', 'Payment Pending'),
        ('PAYMENT_RECEIVED', 'Payment Received'),
        ('PAYMENT_FAILED', 'Payment Failed'),
        ('ARTICLE_PUBLISHED', 'Article Published'),
        ('ARTICLE_UNPUBLISHED', 'Article Unpublished'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    notification_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=255)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    submission = models.ForeignKey(
        'submissions.Submission',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='notifications'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read']),
            models.Index(fields=['created_at']),
        ]

    def __str__(self):
        return f"{self.notification_type} -> {self.user_id}: {self.title}"


class EmailTemplate(models.Model):
    """
    Email template rendered with Django's template engine.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(
        max_length=100,
        unique=True,
        help_text="Template key, e.g. submission_received"
    )
    description = models.TextField(blank=True)

    subject = models.CharField(
        max_length=255,
        help_text="Email subject line (supports variables)"
    )
    html_content = models.TextField(
        help_text="HTML email body (supports variables)"
    )
    text_content = models.TextField(
        blank=True,
        help_text="Plain text fallback (generated from HTML if empty)"
    )
    variables = models.JSONField(
        default=list,
        help_text="List of available template variables"
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name


class EmailLog(models.Model):
    """
    One outgoing email and its delivery outcome.
    """
    STATUS_CHOICES = [
        ('PENDING', 'Pending'),
        ('SENT', 'Sent'),
        ('FAILED', 'Failed'),
        ('SKIPPED', 'Skipped'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.EmailField()
    template_name = models.CharField(max_length=100)
    subject = models.CharField(max_length=255, blank=True)
    body_html = models.TextField(blank=True)
    body_text = models.TextField(blank=True)
    context_data = models.JSONField(default=dict)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='PENDING')
    error_message = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'created_at']),
            models.Index(fields=['status']),
        ]

    def __str__(self):
        return f"{self.template_name} to {self.recipient} ({self.status})"
