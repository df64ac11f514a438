"""
Celery tasks for email notifications.

Delivery is at-most-once: a failed send is recorded on the EmailLog and
logged, never retried.
"""
from celery import shared_task
from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import Context, Template
from django.utils import timezone
from django.utils.html import strip_tags
import logging

logger = logging.getLogger(__name__)


def email_configured():
    """Whether outgoing email is switched on and has a usable backend."""
    if not getattr(settings, 'EMAIL_NOTIFICATIONS_ENABLED', True):
        return False
    if settings.EMAIL_BACKEND.endswith('smtp.EmailBackend'):
        return bool(settings.EMAIL_HOST)
    return True


def render_template(template, context):
    """Render subject, HTML and text bodies of an EmailTemplate."""
    ctx = Context(context)
    subject = Template(template.subject).render(ctx).strip()
    html_body = Template(template.html_content).render(ctx)
    if template.text_content:
        text_body = Template(template.text_content).render(ctx)
    else:
        text_body = strip_tags(html_body)
    return subject, html_body, text_body


@shared_task(name='notifications.send_template_email')
def send_template_email(recipient, template_name, context):
    """
    Render ``template_name`` with ``context`` and send it to ``recipient``.

    Returns a status dict; never raises.
    """
    from apps.notifications.models import EmailTemplate, EmailLog

    if not email_configured():
        EmailLog.objects.create(
            recipient=recipient,
            template_name=template_name,
            context_data=context,
            status='SKIPPED',
            error_message='Email provider not configured'
        )
        logger.info(f"Email provider not configured, skipped {template_name} to {recipient}")
        return {'status': 'skipped', 'reason': 'not_configured'}

    try:
        template = EmailTemplate.objects.get(name=template_name, is_active=True)
    except EmailTemplate.DoesNotExist:
        EmailLog.objects.create(
            recipient=recipient,
            template_name=template_name,
            context_data=context,
            status='SKIPPED',
            error_message='Template not found or inactive'
        )
        logger.warning(f"Email template {template_name} not found, skipped email to {recipient}")
        return {'status': 'skipped', 'reason': 'template_missing'}

    subject, html_body, text_body = render_template(template, context)
    email_log = EmailLog.objects.create(
        recipient=recipient,
        template_name=template_name,
        subject=subject,
        body_html=html_body,
        body_text=text_body,
        context_data=context,
        status='PENDING'
    )

    try:
        email = EmailMultiAlternatives(
            subject=subject,
            body=text_body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[recipient],
        )
        email.attach_alternative(html_body, "text/html")
        email.send(fail_silently=False)
    except Exception as exc:
        email_log.status = 'FAILED'
        email_log.error_message = str(exc)
        email_log.save(update_fields=['status', 'error_message'])
        logger.error(f"Failed to send {template_name} to {recipient}: {exc}")
        return {'status': 'failed', 'email_log_id': str(email_log.id)}

    email_log.status = 'SENT'
    email_log.sent_at = timezone.now()
    email_log.save(update_fields=['status', 'sent_at'])
    logger.info(f"Email sent: {template_name} to {recipient}")
    return {'status': 'sent', 'email_log_id': str(email_log.id)}
