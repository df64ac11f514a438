"""
Django signals for the submissions app.

Logs submission status changes. The timeline row written by
``workflow.transition`` is the authoritative record; this is for the
application log only.
"""
from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from apps.submissions.models import Submission

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Submission)
def log_submission_status(sender, instance, created, **kwargs):
    if created:
        logger.info(f"Submission {instance.id} created in {instance.status}")
    else:
        previous = getattr(instance, '_previous_status', None)
        if previous is not None and previous != instance.status:
            logger.info(f"Submission {instance.id} status {previous} -> {instance.status}")
    instance._previous_status = instance.status
