"""
Best-effort notification dispatch.

Workflow code calls these helpers after applying a state change. In-app
notifications and emails are handed off with ``transaction.on_commit`` so
they only go out for committed changes, and any failure is logged and
swallowed: a notification can never undo or block a transition.
"""
import logging

from django.db import transaction

logger = logging.getLogger(__name__)


def _create_notification(user, notification_type, title, message, submission):
    from apps.notifications.models import Notification

    return Notification.objects.create(
        user=user,
        notification_type=notification_type,
        title=title,
        message=message,
        submission=submission,
    )


def _queue_email(recipient, template_name, context):
    from apps.notifications.tasks import send_template_email

    send_template_email.delay(recipient, template_name, context)


def notify(user, notification_type, title, message, submission=None,
           email_template=None, context=None):
    """
    Notify ``user`` in-app and, if ``email_template`` is given, by email.

    Runs after the surrounding transaction commits.
    """
    if user is None:
        return

    def deliver():
        try:
            _create_notification(user, notification_type, title, message, submission)
        except Exception as e:
            logger.error(f"Failed to create {notification_type} notification for {user.pk}: {e}")
        if email_template:
            send_email(user.email, email_template, context or {}, immediate=True)

    transaction.on_commit(deliver)


def notify_many(users, notification_type, title, message, submission=None,
                email_template=None, context=None):
    for user in users:
        notify(user, notification_type, title, message, submission=submission,
               email_template=email_template, context=context)


def send_email(recipient, template_name, context, immediate=False):
    """Queue a templated email; failures are logged, never raised."""

    def deliver():
        try:
            _queue_email(recipient, template_name, context)
        except Exception as e:
            logger.error(f"Failed to queue {template_name} email to {recipient}: {e}")

    if immediate:
        deliver()
    else:
        transaction.on_commit(deliver)
