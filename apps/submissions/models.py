"""
Submission models for the Journal Portal.
Handles manuscripts, co-authors, files, revisions, editor assignments and
the append-only submission timeline.
"""
import os
import uuid

from django.conf import settings
from django.db import models


class Submission(models.Model):
    """
    Main submission model representing a manuscript and its lifecycle.
    """
    STATUS_DRAFT = 'DRAFT'
    STATUS_SUBMITTED = 'SUBMITTED'
    STATUS_RETURNED_FOR_FORMATTING = 'RETURNED_FOR_FORMATTING'
    STATUS_INITIAL_REVIEW = 'INITIAL_REVIEW'
    STATUS_UNDER_REVIEW = 'UNDER_REVIEW'
    STATUS_REVISION_REQUIRED = 'REVISION_REQUIRED'
    STATUS_REVISED = 'REVISED'
    STATUS_ACCEPTED = 'ACCEPTED'
    STATUS_PAYMENT_PENDING = 'PAYMENT_PENDING'
    STATUS_REJECTED = 'REJECTED'
    STATUS_PUBLISHED = 'PUBLISHED'
    STATUS_WITHDRAWN = 'WITHDRAWN'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SUBMITTED, 'Submitted'),
        (STATUS_RETURNED_FOR_FORMATTING, 'Returned for Formatting'),
        (STATUS_INITIAL_REVIEW, 'Initial Review'),
        (STATUS_UNDER_REVIEW, 'Under Review'),
        (STATUS_REVISION_REQUIRED, 'Revision Required'),
        (STATUS_REVISED, 'Revised'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_PAYMENT_PENDING, 'Payment Pending'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_PUBLISHED, 'Published'),
        (STATUS_WITHDRAWN, 'Withdrawn'),
    ]

    TERMINAL_STATUSES = (STATUS_PUBLISHED, STATUS_REJECTED, STATUS_WITHDRAWN)

    # Statuses in which the author may still edit the manuscript metadata
    EDITABLE_STATUSES = (STATUS_DRAFT, STATUS_RETURNED_FOR_FORMATTING)

    MANUSCRIPT_TYPE_CHOICES = [
        ('RESEARCH_ARTICLE', 'Research Article'),
        ('REVIEW_ARTICLE', 'Review Article'),
        ('SHORT_COMMUNICATION', 'Short Communication'),
        ('CASE_STUDY', 'Case Study'),
        ('EDITORIAL', 'Editorial'),
        ('LETTER', 'Letter'),
    ]

    DESTINATION_CHOICES = [
        ('CURRENT_ISSUE', 'Current Issue'),
        ('PAST_ISSUE', 'Past Issue'),
        ('CONFERENCE', 'Conference Proceedings'),
        ('ONLINE_FIRST', 'Online First'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='submissions'
    )
    title = models.CharField(max_length=500)
    abstract = models.TextField(blank=True, help_text="Manuscript abstract")
    keywords = models.JSONField(default=list, blank=True, help_text="List of keywords")
    manuscript_type = models.CharField(max_length=30, choices=MANUSCRIPT_TYPE_CHOICES, blank=True)

    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    is_double_blind = models.BooleanField(default=True)

    suggested_reviewers = models.JSONField(
        default=list,
        blank=True,
        help_text="User ids or emails the author suggests as reviewers"
    )
    excluded_reviewers = models.JSONField(
        default=list,
        blank=True,
        help_text="User ids or emails that must not review this manuscript"
    )
    comments = models.TextField(blank=True, help_text="Cover letter / comments to the editor")
    decision_comments = models.TextField(blank=True, help_text="Latest editorial comments")

    # Publication data
    doi = models.CharField(max_length=255, unique=True, null=True, blank=True)
    volume = models.PositiveIntegerField(null=True, blank=True)
    issue = models.PositiveIntegerField(null=True, blank=True)
    pages = models.CharField(max_length=50, blank=True)
    article_number = models.CharField(max_length=50, blank=True)
    publication_destination = models.CharField(max_length=20, choices=DESTINATION_CHOICES, blank=True)
    conference = models.ForeignKey(
        'publication.Conference',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='submissions'
    )
    featured_article = models.BooleanField(default=False)
    online_first = models.BooleanField(default=False)
    show_on_homepage = models.BooleanField(default=False)
    scheduled_publish_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    submitted_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['author', 'status']),
            models.Index(fields=['status', 'submitted_at']),
            models.Index(fields=['created_at']),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # Remembered so the post_save signal can log status changes
        instance._previous_status = instance.__dict__.get('status')
        return instance

    def __str__(self):
        return f"{self.title[:50]} ({self.get_status_display()})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def main_file(self):
        return self.files.filter(is_main_file=True).first()

    def has_paid_payment(self):
        return self.payments.filter(status='PAID').exists()

    def handling_editors(self):
        """Editors assigned to this submission."""
        return [assignment.editor for assignment in self.editor_assignments.select_related('editor')]

    def is_assigned_to(self, user):
        return self.editor_assignments.filter(editor=user).exists()


class CoAuthor(models.Model):
    """
    Co-author of a submission. Co-authors need not have an account.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name='coauthors'
    )
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150)
    email = models.EmailField(blank=True)
    affiliation = models.CharField(max_length=255, blank=True)
    is_corresponding = models.BooleanField(default=False)
    order = models.PositiveIntegerField(help_text="Author order in the publication")

    class Meta:
        unique_together = ['submission', 'order']
        ordering = ['order']

    def __str__(self):
        return f"{self.full_name} (#{self.order})"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()


def submission_upload_path(instance, filename):
    return f"submissions/{instance.submission_id}/{filename}"


class SubmissionFile(models.Model):
    """
    A file uploaded with the original submission.
    """
    FILE_TYPE_CHOICES = [
        ('MANUSCRIPT', 'Manuscript'),
        ('SUPPLEMENTARY', 'Supplementary Material'),
        ('COVER_LETTER', 'Cover Letter'),
        ('FIGURE', 'Figure'),
        ('FINAL_VERSION', 'Final Version'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name='files'
    )
    file = models.FileField(upload_to=submission_upload_path)
    original_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=20, choices=FILE_TYPE_CHOICES, default='MANUSCRIPT')
    file_size = models.PositiveIntegerField(default=0, help_text="File size in bytes")
    description = models.CharField(max_length=255, blank=True)
    is_main_file = models.BooleanField(default=False)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='uploaded_submission_files'
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']
        indexes = [
            models.Index(fields=['submission', 'file_type']),
        ]

    def __str__(self):
        return self.original_name

    @property
    def extension(self):
        return os.path.splitext(self.original_name)[1].lower().lstrip('.')


class Revision(models.Model):
    """
    Versioned resubmission bundle. Numbers start at 1 and only increase.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        Submission,
        on_delete=models.PROTECT,
        related_name='revisions'
    )
    revision_number = models.PositiveIntegerField()
    author_response = models.TextField(blank=True, help_text="Response to the reviewers")
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='submitted_revisions'
    )
    submitted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['submission', 'revision_number']
        ordering = ['-revision_number']

    def __str__(self):
        return f"{self.submission_id} revision {self.revision_number}"


def revision_upload_path(instance, filename):
    return f"submissions/{instance.revision.submission_id}/revisions/{instance.revision.revision_number}/{filename}"


class RevisionFile(models.Model):
    """
    A file attached to a revision. Earlier revisions' files are kept.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    revision = models.ForeignKey(
        Revision,
        on_delete=models.CASCADE,
        related_name='files'
    )
    file = models.FileField(upload_to=revision_upload_path)
    original_name = models.CharField(max_length=255)
    file_size = models.PositiveIntegerField(default=0)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['uploaded_at']

    def __str__(self):
        return self.original_name


class TimelineImmutableError(Exception):
    """Raised on any attempt to change or delete a timeline entry."""


class SubmissionTimelineQuerySet(models.QuerySet):
    """Bulk changes would bypass the per-row guards on SubmissionTimeline."""

    def update(self, **kwargs):
        raise TimelineImmutableError("Timeline entries cannot be modified")

    def delete(self):
        raise TimelineImmutableError("Timeline entries cannot be deleted")


class SubmissionTimeline(models.Model):
    """
    Append-only audit log of everything that happens to a submission.
    """
    EVENT_CHOICES = [
        ('SUBMISSION_CREATED', 'Submission Created'),
        ('SUBMISSION_SUBMITTED', 'Submission Submitted'),
        ('STATUS_CHANGE', 'Status Change'),
        ('FILE_UPLOADED', 'File Uploaded'),
        ('EDITOR_ASSIGNED', 'Editor Assigned'),
        ('SCREENING_DECISION', 'Screening Decision'),
        ('REVIEWER_ASSIGNED', 'Reviewer Assigned'),
        ('REVIEW_ACCEPTED', 'Review Accepted'),
        ('REVIEW_DECLINED', 'Review Declined'),
        ('REVIEW_SUBMITTED', 'Review Submitted'),
        ('REVIEWER_REMINDED', 'Reviewer Reminded'),
        ('REVIEW_DEADLINE_EXTENDED', 'Review Deadline Extended'),
        ('REVIEWER_REMOVED', 'Reviewer Removed'),
        ('DECISION_MADE', 'Decision Made'),
        ('REVISION_SUBMITTED', 'Revision Submitted'),
        ('REVISION_DECISION', 'Revision Decision'),
        ('PAYMENT_INITIATED', 'Payment Initiated'),
        ('PAYMENT_RECEIVED', 'Payment Received'),
        ('PAYMENT_FAILED', 'Payment Failed'),
        ('ARTICLE_PUBLISHED', 'Article Published'),
        ('ARTICLE_UNPUBLISHED', 'Article Unpublished'),
        ('SUBMISSION_WITHDRAWN', 'Submission Withdrawn'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        Submission,
        on_delete=models.PROTECT,
        related_name='timeline'
    )
    event = models.CharField(max_length=30, choices=EVENT_CHOICES)
    from_status = models.CharField(max_length=30, blank=True)
    to_status = models.CharField(max_length=30, blank=True)
    description = models.TextField()
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='timeline_events'
    )
    performed_by_name = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = SubmissionTimelineQuerySet.as_manager()

    class Meta:
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['submission', 'created_at']),
            models.Index(fields=['event']),
        ]

    def __str__(self):
        return f"{self.event}: {self.description}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise TimelineImmutableError("Timeline entries cannot be modified")
        if self.performed_by is not None and not self.performed_by_name:
            self.performed_by_name = self.performed_by.full_name
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise TimelineImmutableError("Timeline entries cannot be deleted")


class EditorAssignment(models.Model):
    """
    Editor handling a submission.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(
        Submission,
        on_delete=models.CASCADE,
        related_name='editor_assignments'
    )
    editor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='editor_assignments'
    )
    is_chief = models.BooleanField(default=False)
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='made_editor_assignments'
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['submission', 'editor']
        ordering = ['assigned_at']

    def __str__(self):
        return f"{self.editor} on {self.submission_id}"
