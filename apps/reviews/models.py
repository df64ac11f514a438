"""
Review models for the Journal Portal.
One Review row per reviewer invitation on a submission.
"""
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone


class Review(models.Model):
    """
    A reviewer's assignment to a submission and, once completed, the review.

    OVERDUE is never stored; see ``apps.reviews.services.is_overdue``.
    """
    STATUS_PENDING = 'PENDING'
    STATUS_IN_PROGRESS = 'IN_PROGRESS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_DECLINED = 'DECLINED'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_IN_PROGRESS, 'In Progress'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_DECLINED, 'Declined'),
    ]

    OPEN_STATUSES = (STATUS_PENDING, STATUS_IN_PROGRESS)

    RECOMMENDATION_CHOICES = [
        ('ACCEPT', 'Accept'),
        ('MINOR_REVISION', 'Minor Revision'),
        ('MAJOR_REVISION', 'Major Revision'),
        ('REJECT', 'Reject'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    submission = models.ForeignKey(
        'submissions.Submission',
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='reviews'
    )
    invited_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='invited_reviews'
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    # Set only when the review is completed
    recommendation = models.CharField(max_length=20, choices=RECOMMENDATION_CHOICES, blank=True)
    confidential_comments = models.TextField(blank=True, help_text="Comments visible only to editors")
    author_comments = models.TextField(blank=True, help_text="Comments shared with the author")
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )

    invited_at = models.DateTimeField(default=timezone.now)
    accepted_at = models.DateTimeField(null=True, blank=True)
    submitted_at = models.DateTimeField(null=True, blank=True)
    due_date = models.DateTimeField()

    reminders_sent = models.PositiveIntegerField(default=0)
    last_reminded_at = models.DateTimeField(null=True, blank=True)

    response_notes = models.TextField(blank=True, help_text="Notes left when accepting or declining")
    decline_reason = models.TextField(blank=True)
    removed_by_editor = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-invited_at']
        indexes = [
            models.Index(fields=['submission', 'status']),
            models.Index(fields=['reviewer', 'status']),
            models.Index(fields=['status', 'due_date']),
        ]

    def __str__(self):
        return f"Review of {self.submission_id} by {self.reviewer} ({self.status})"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    def days_remaining(self, now=None):
        delta = self.due_date - (now or timezone.now())
        return delta.days
