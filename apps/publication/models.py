"""
Publication models for the Journal Portal.
Issues, conference proceedings, public article records and per-article
display settings.
"""
import uuid

from django.db import models, transaction


class Issue(models.Model):
    """
    Journal issue identified by volume and number. At most one issue is
    current at a time.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    volume = models.PositiveIntegerField()
    number = models.PositiveIntegerField()
    title = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    published_at = models.DateTimeField(null=True, blank=True)
    is_current = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-volume', '-number']
        unique_together = ['volume', 'number']
        indexes = [
            models.Index(fields=['is_current']),
            models.Index(fields=['published_at']),
        ]

    def __str__(self):
        return f"Vol. {self.volume}, No. {self.number}"

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if self.is_current:
                Issue.objects.filter(is_current=True).exclude(pk=self.pk).update(is_current=False)
            super().save(*args, **kwargs)


class Conference(models.Model):
    """Conference whose proceedings the journal publishes."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    proceedings_no = models.CharField(max_length=50, blank=True)
    category = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    year = models.PositiveIntegerField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', 'name']

    def __str__(self):
        return f"{self.name} ({self.year})"


class Article(models.Model):
    """
    Public citation record of a published submission placed in an issue.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.OneToOneField(
        'submissions.Submission',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='article'
    )
    issue = models.ForeignKey(Issue, on_delete=models.PROTECT, related_name='articles')
    title = models.CharField(max_length=500)
    abstract = models.TextField()
    keywords = models.JSONField(default=list, blank=True)
    # [{first_name, last_name, email, affiliation, is_corresponding, order}]
    authors = models.JSONField(default=list, blank=True)
    doi = models.CharField(max_length=255, unique=True)
    pages = models.CharField(max_length=50, blank=True)
    pdf_path = models.CharField(max_length=500, blank=True)
    views = models.PositiveIntegerField(default=0)
    downloads = models.PositiveIntegerField(default=0)
    published_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-published_at']
        indexes = [
            models.Index(fields=['published_at']),
            models.Index(fields=['issue', 'published_at']),
        ]

    def __str__(self):
        return f"{self.title} ({self.doi})"

    @property
    def author_names(self):
        return ', '.join(
            f"{a.get('first_name', '')} {a.get('last_name', '')}".strip() for a in self.authors
        )


class PublicationSettings(models.Model):
    """What the public article page shows for one published submission."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.OneToOneField(
        'submissions.Submission',
        on_delete=models.CASCADE,
        related_name='publication_settings'
    )
    show_title = models.BooleanField(default=True)
    show_authors = models.BooleanField(default=True)
    show_abstract = models.BooleanField(default=True)
    show_keywords = models.BooleanField(default=True)
    show_publication_date = models.BooleanField(default=True)
    show_doi = models.BooleanField(default=True)
    show_views = models.BooleanField(default=True)
    show_downloads = models.BooleanField(default=True)
    allow_download = models.BooleanField(default=True)
    include_in_rss = models.BooleanField(default=True)
    is_private = models.BooleanField(default=False)
    embargo_until = models.DateTimeField(null=True, blank=True)
    meta_description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'publication settings'

    def __str__(self):
        return f"Publication settings for {self.submission_id}"
