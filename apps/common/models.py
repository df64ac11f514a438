"""
Common models for the Journal Portal.
Audit logging and runtime system settings.
"""
import json
import uuid
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class ActivityLog(models.Model):
    """
    Audit log model for tracking user and system actions.
    """
    ACTION_TYPE_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('LOGIN', 'Login'),
        ('SUBMIT', 'Submit'),
        ('REVIEW', 'Review'),
        ('DECIDE', 'Decide'),
        ('PAY', 'Pay'),
        ('PUBLISH', 'Publish'),
        ('UNPUBLISH', 'Unpublish'),
        ('WITHDRAW', 'Withdraw'),
    ]

    ACTOR_TYPE_CHOICES = [
        ('USER', 'User'),
        ('SYSTEM', 'System'),
    ]

    RESOURCE_TYPE_CHOICES = [
        ('USER', 'User'),
        ('SUBMISSION', 'Submission'),
        ('REVIEW', 'Review'),
        ('PAYMENT', 'Payment'),
        ('ISSUE', 'Issue'),
        ('ARTICLE', 'Article'),
        ('SYSTEM_SETTING', 'System Setting'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activity_logs'
    )
    actor_type = models.CharField(max_length=20, choices=ACTOR_TYPE_CHOICES)

    action_type = models.CharField(max_length=20, choices=ACTION_TYPE_CHOICES)
    resource_type = models.CharField(max_length=30, choices=RESOURCE_TYPE_CHOICES)
    resource_id = models.CharField(max_length=100, help_text="ID of the affected resource")

    metadata = models.JSONField(
        default=dict,
        help_text="Additional context and details about the action"
    )

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at']),
            models.Index(fields=['action_type', 'resource_type']),
            models.Index(fields=['resource_type', 'resource_id']),
        ]

    def __str__(self):
        actor = self.user.email if self.user else f"({self.actor_type})"
        return f"{actor} {self.action_type} {self.resource_type} {self.resource_id}"


class SystemSetting(models.Model):
    """
    Key/value journal setting editable by administrators.

    Values are stored as text and converted according to ``value_type``.
    """
    TYPE_STRING = 'STRING'
    TYPE_NUMBER = 'NUMBER'
    TYPE_BOOLEAN = 'BOOLEAN'
    TYPE_JSON = 'JSON'

    TYPE_CHOICES = [
        (TYPE_STRING, 'String'),
        (TYPE_NUMBER, 'Number'),
        (TYPE_BOOLEAN, 'Boolean'),
        (TYPE_JSON, 'JSON'),
    ]

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    value_type = models.CharField(max_length=10, choices=TYPE_CHOICES, default=TYPE_STRING)
    description = models.CharField(max_length=255, blank=True)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value}"

    def clean(self):
        self.typed_value()

    def typed_value(self):
        """Return the value converted to its declared type."""
        if self.value_type == self.TYPE_NUMBER:
            try:
                return Decimal(self.value)
            except InvalidOperation:
                raise ValidationError({'value': f"'{self.value}' is not a number"})
        if self.value_type == self.TYPE_BOOLEAN:
            lowered = self.value.strip().lower()
            if lowered not in ('true', 'false', '1', '0', 'yes', 'no'):
                raise ValidationError({'value': f"'{self.value}' is not a boolean"})
            return lowered in ('true', '1', 'yes')
        if self.value_type == self.TYPE_JSON:
            try:
                return json.loads(self.value)
            except ValueError:
                raise ValidationError({'value': 'Invalid JSON'})
        return self.value
