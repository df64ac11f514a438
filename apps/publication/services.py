"""
Publication operations: DOI assignment, publishing to an issue,
conference or online-first, and unpublishing.
"""
import logging

from django.core.cache import cache
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.common.config import JournalConfig
from apps.common.exceptions import InvalidTransition, PreconditionFailed, WorkflowValidationError
from apps.common.utils.activity_logger import log_activity
from apps.notifications.dispatch import notify, notify_many
from apps.submissions import workflow
from apps.submissions.models import Submission
from apps.users.roles import capabilities_for
from .models import Article, PublicationSettings

logger = logging.getLogger(__name__)

LATEST_ARTICLES_CACHE_KEY = 'publication:latest_articles'

ISSUE_DESTINATIONS = ('CURRENT_ISSUE', 'PAST_ISSUE')
PUBLISHABLE_STATUSES = (Submission.STATUS_ACCEPTED, Submission.STATUS_PAYMENT_PENDING)

SETTINGS_FIELDS = (
    'show_title', 'show_authors', 'show_abstract', 'show_keywords', 'show_publication_date',
    'show_doi', 'show_views', 'show_downloads', 'allow_download', 'include_in_rss',
    'is_private', 'embargo_until', 'meta_description',
)


DOI_SUFFIX_LENGTHS = (8, 12, 16, 32)


def generate_doi(submission, config=None, year=None, length=8):
    """``{prefix}/journal.{year}.{first 8 hex digits of the submission id}``."""
    config = config or JournalConfig.load()
    year = year or timezone.now().year
    suffix = str(submission.id).replace('-', '')[:length]
    return f"{config.doi_prefix}/journal.{year}.{suffix}"


def ensure_doi(submission, config=None):
    """
    Assign a DOI once; an existing DOI is never replaced.

    The suffix is lengthened when the short form is already taken by
    another submission.
    """
    if submission.doi:
        return submission.doi
    config = config or JournalConfig.load()
    year = timezone.now().year
    taken = Submission.objects.exclude(pk=submission.pk)
    for length in DOI_SUFFIX_LENGTHS:
        doi = generate_doi(submission, config, year=year, length=length)
        if not taken.filter(doi=doi).exists():
            break
        logger.warning(f"DOI {doi} already in use, lengthening the suffix for submission {submission.id}")
    else:
        raise PreconditionFailed(f"DOI {doi} is already assigned to another submission.", code='doi_conflict')

    submission.doi = doi
    submission.save(update_fields=['doi', 'updated_at'])
    logger.info(f"DOI {submission.doi} assigned to submission {submission.id}")
    return submission.doi


def ready_to_publish():
    """Accepted submissions with a PAID APC payment."""
    return Submission.objects.filter(
        status__in=PUBLISHABLE_STATUSES, payments__status='PAID'
    ).distinct()


def article_authors(submission):
    """Main author first, then co-authors in their stored order."""
    author = submission.author
    authors = [{
        'first_name': author.first_name,
        'last_name': author.last_name,
        'email': author.email,
        'affiliation': author.affiliation,
        'is_corresponding': True,
        'order': 0,
    }]
    for index, coauthor in enumerate(submission.coauthors.order_by('order'), start=1):
        authors.append({
            'first_name': coauthor.first_name,
            'last_name': coauthor.last_name,
            'email': coauthor.email,
            'affiliation': coauthor.affiliation,
            'is_corresponding': coauthor.is_corresponding,
            'order': index,
        })
    return authors


def invalidate_feeds():
    """Drop cached feed data; failures are logged only."""
    try:
        cache.delete(LATEST_ARTICLES_CACHE_KEY)
    except Exception as e:
        logger.error(f"Failed to invalidate publication feeds: {e}")


def _require_publisher(user):
    if not capabilities_for(user).can_publish:
        raise PermissionDenied('Only administrators can publish articles.')


def _check_destination(destination, issue, conference):
    if destination in ISSUE_DESTINATIONS and issue is None:
        raise WorkflowValidationError('An issue is required for issue publication.', code='issue_required')
    if destination == 'CONFERENCE' and conference is None:
        raise WorkflowValidationError(
            'A conference is required for conference publication.', code='conference_required'
        )
    if destination not in dict(Submission.DESTINATION_CHOICES):
        raise WorkflowValidationError(f"Unknown destination {destination}.", code='invalid_destination')


def publish_submission(submission, user, destination, issue=None, conference=None,
                       options=None, config=None, request=None):
    """
    ACCEPTED or PAYMENT_PENDING -> PUBLISHED.

    Requires a PAID payment. ``options`` may carry ``pages``,
    ``article_number``, ``featured_article``, ``show_on_homepage``,
    ``scheduled_publish_at`` and a ``settings`` dict of display flags.
    """
    config = config or JournalConfig.load()
    options = dict(options or {})
    _require_publisher(user)
    _check_destination(destination, issue, conference)
    if destination not in ISSUE_DESTINATIONS:
        issue = None
    if destination != 'CONFERENCE':
        conference = None

    with transaction.atomic():
        submission = workflow.lock_submission(submission)
        if submission.status not in PUBLISHABLE_STATUSES:
            raise InvalidTransition(submission.status, Submission.STATUS_PUBLISHED)

        workflow.transition(
            submission, Submission.STATUS_PUBLISHED, user=user, event='ARTICLE_PUBLISHED',
            description=f"Article published to {workflow.status_label(destination)}", config=config,
        )
        doi = ensure_doi(submission, config)

        submission.publication_destination = destination
        submission.conference = conference
        submission.online_first = destination == 'ONLINE_FIRST'
        submission.featured_article = options.get('featured_article', False)
        submission.show_on_homepage = options.get('show_on_homepage', False)
        submission.scheduled_publish_at = options.get('scheduled_publish_at')
        submission.pages = options.get('pages') or submission.pages
        submission.article_number = options.get('article_number') or submission.article_number
        if issue is not None:
            submission.volume = issue.volume
            submission.issue = issue.number
        submission.save()

        if issue is not None:
            main_file = submission.main_file
            Article.objects.update_or_create(
                doi=doi,
                defaults={
                    'submission': submission,
                    'issue': issue,
                    'title': submission.title,
                    'abstract': submission.abstract,
                    'keywords': submission.keywords,
                    'authors': article_authors(submission),
                    'pages': submission.pages,
                    'pdf_path': main_file.file.name if main_file else '',
                    'published_at': submission.published_at,
                },
            )

        display = {
            key: value for key, value in (options.get('settings') or {}).items() if key in SETTINGS_FIELDS
        }
        PublicationSettings.objects.update_or_create(submission=submission, defaults=display)

        notify(
            submission.author,
            'ARTICLE_PUBLISHED',
            'Your Article Has Been Published',
            f'Congratulations! Your article "{submission.title}" has been published. DOI: {doi}',
            submission=submission,
            email_template='article_published',
            context={
                'author_name': submission.author.full_name,
                'manuscript_title': submission.title,
                'journal_name': config.journal_name,
                'doi': doi,
            },
        )
        notify_many(
            submission.handling_editors(),
            'ARTICLE_PUBLISHED',
            'Article Published',
            f'The article "{submission.title}" has been published.',
            submission=submission,
        )
        transaction.on_commit(invalidate_feeds)

    log_activity(user, 'PUBLISH', 'SUBMISSION', submission.id,
                 metadata={'doi': doi, 'destination': destination}, request=request)
    return submission


def unpublish_submission(submission, user, request=None):
    """PUBLISHED -> ACCEPTED. The DOI and the timeline are kept."""
    _require_publisher(user)

    with transaction.atomic():
        submission = workflow.lock_submission(submission)
        workflow.transition(
            submission, Submission.STATUS_ACCEPTED, user=user, event='ARTICLE_UNPUBLISHED',
            description='Article unpublished by admin',
        )
        submission.published_at = None
        submission.publication_destination = ''
        submission.conference = None
        submission.online_first = False
        submission.featured_article = False
        submission.show_on_homepage = False
        submission.scheduled_publish_at = None
        submission.volume = None
        submission.issue = None
        submission.save()

        PublicationSettings.objects.filter(submission=submission).delete()
        Article.objects.filter(submission=submission).delete()

        notify(
            submission.author,
            'ARTICLE_UNPUBLISHED',
            'Article unpublished',
            f'"{submission.title}" has been withdrawn from the public site by the editorial office.',
            submission=submission,
        )
        transaction.on_commit(invalidate_feeds)

    log_activity(user, 'UNPUBLISH', 'SUBMISSION', submission.id, request=request)
    return submission


def public_articles():
    """Articles visible on the public site."""
    return Article.objects.select_related('issue').exclude(
        submission__publication_settings__is_private=True
    )


def latest_articles(limit=50):
    """Newest public articles for feeds, cached until the next publish or unpublish."""
    articles = cache.get(LATEST_ARTICLES_CACHE_KEY)
    if articles is None:
        articles = list(
            public_articles().exclude(
                submission__publication_settings__include_in_rss=False
            ).order_by('-published_at')[:limit]
        )
        cache.set(LATEST_ARTICLES_CACHE_KEY, articles, 60 * 60)
    return articles
