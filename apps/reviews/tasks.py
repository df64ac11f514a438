"""
Celery tasks for review management.
Scheduled daily via Celery Beat (see CELERY_BEAT_SCHEDULE).
"""
from celery import shared_task
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


def run_review_reminders(dry_run=False, now=None):
    """
    Remind reviewers whose open reviews are due soon or overdue.

    Returns the number of reviews reminded (or that would be, with
    ``dry_run``) and the number of failures.
    """
    from apps.common.config import JournalConfig
    from apps.reviews.services import is_overdue, reviews_due_for_reminder, send_reminder

    config = JournalConfig.load()
    now = now or timezone.now()
    due = list(reviews_due_for_reminder(config, now))

    reminded = 0
    overdue = 0
    failed = 0
    for review in due:
        if is_overdue(review, now):
            overdue += 1
        if dry_run:
            reminded += 1
            continue
        try:
            send_reminder(review, user=None, config=config)
            reminded += 1
        except Exception as e:
            failed += 1
            logger.error(f"Failed to send reminder for review {review.id}: {e}")

    logger.info(f"Review reminders: {reminded} sent, {overdue} overdue, {failed} failed (dry_run={dry_run})")
    return {'reminded': reminded, 'overdue': overdue, 'failed': failed}


@shared_task(name='reviews.send_review_reminders')
def send_review_reminders():
    """Periodic task wrapper around ``run_review_reminders``."""
    return run_review_reminders()
