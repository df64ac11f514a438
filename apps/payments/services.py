"""
APC payment operations.

The submission row is locked for every operation that can move it out of
ACCEPTED. Paying never changes the submission status: publication is a
separate admin step that checks for a PAID payment.
"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.common.config import JournalConfig
from apps.common.exceptions import PreconditionFailed, WorkflowValidationError
from apps.common.utils.activity_logger import log_activity, log_system_action
from apps.notifications.dispatch import notify
from apps.submissions import workflow
from apps.submissions.models import Submission
from apps.users.roles import capabilities_for
from .gateway import get_gateway
from .models import Payment, generate_invoice_number

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (Submission.STATUS_ACCEPTED, Submission.STATUS_PAYMENT_PENDING)


def _check_payable(submission, user, config):
    if submission.author_id != user.pk:
        raise PermissionDenied('Only the submitting author can pay the APC.')
    if submission.status not in PAYABLE_STATUSES:
        raise PreconditionFailed(
            'Payment is only possible for accepted submissions.', code='not_payable'
        )
    if submission.has_paid_payment():
        raise PreconditionFailed('The APC for this submission is already paid.', code='already_paid')
    if config.apc_amount <= 0:
        raise PreconditionFailed('This journal does not charge an APC.', code='no_apc')


def _enter_payment_pending(submission, user, payment, config):
    """ACCEPTED -> PAYMENT_PENDING the first time a payment is started."""
    if submission.status != Submission.STATUS_ACCEPTED:
        return
    workflow.transition(
        submission, Submission.STATUS_PAYMENT_PENDING, user=user, event='PAYMENT_INITIATED',
        description=f"APC payment initiated ({payment.invoice_number})", config=config,
    )
    notify(
        submission.author,
        'PAYMENT_PENDING',
        'APC payment pending',
        f'Payment of {payment.currency} {payment.amount} is pending for "{submission.title}".',
        submission=submission,
        email_template='payment_pending',
        context={
            'author_name': submission.author.full_name,
            'manuscript_title': submission.title,
            'journal_name': config.journal_name,
            'currency': payment.currency,
            'amount': str(payment.amount),
            'invoice_number': payment.invoice_number,
        },
    )


def create_payment_intent(submission, user, config=None, gateway=None):
    """
    Start a card payment for the APC.

    Returns ``(payment, client_secret)``. A gateway failure raises
    ``ExternalServiceError`` and leaves no rows behind.
    """
    config = config or JournalConfig.load()
    gateway = gateway or get_gateway()

    with transaction.atomic():
        submission = workflow.lock_submission(submission)
        _check_payable(submission, user, config)

        intent = gateway.create_payment_intent(
            amount=config.apc_amount,
            currency=config.apc_currency,
            metadata={
                'submission_id': str(submission.id),
                'user_id': str(user.pk),
                'submission_title': submission.title[:200],
            },
            description=f'APC for "{submission.title}"',
        )
        payment = Payment.objects.create(
            submission=submission,
            user=user,
            amount=config.apc_amount,
            currency=config.apc_currency,
            status=Payment.STATUS_PENDING,
            stripe_payment_id=intent['id'],
            invoice_number=generate_invoice_number(submission.id),
            payment_method='CARD',
        )
        _enter_payment_pending(submission, user, payment, config)

    logger.info(f"Payment intent {intent['id']} created for submission {submission.id}")
    return payment, intent['client_secret']


def upload_payment_proof(submission, user, proof_file, config=None):
    """Record a bank-transfer payment awaiting manual confirmation by an admin."""
    config = config or JournalConfig.load()

    with transaction.atomic():
        submission = workflow.lock_submission(submission)
        _check_payable(submission, user, config)
        payment = Payment.objects.create(
            submission=submission,
            user=user,
            amount=config.apc_amount,
            currency=config.apc_currency,
            status=Payment.STATUS_PENDING,
            invoice_number=generate_invoice_number(submission.id),
            payment_method='BANK_TRANSFER',
            proof_file=proof_file,
        )
        _enter_payment_pending(submission, user, payment, config)

    logger.info(f"Payment proof uploaded for submission {submission.id} ({payment.invoice_number})")
    return payment


def latest_payment(submission, user=None):
    payments = submission.payments.all()
    if user is not None:
        payments = payments.filter(user=user)
    return payments.order_by('-created_at').first()


def _record_paid(payment, user=None, config=None):
    """Mark a locked PENDING payment PAID and record it on the timeline."""
    config = config or JournalConfig.load()
    submission = payment.submission

    payment.status = Payment.STATUS_PAID
    payment.paid_at = timezone.now()
    payment.save(update_fields=['status', 'paid_at', 'updated_at'])

    workflow.add_timeline_event(
        submission, 'PAYMENT_RECEIVED',
        f"Payment of {payment.currency} {payment.amount} received", user=user,
    )
    notify(
        submission.author,
        'PAYMENT_RECEIVED',
        'Payment received',
        f'Your APC payment for "{submission.title}" has been received.',
        submission=submission,
        email_template='payment_received',
        context={
            'author_name': submission.author.full_name,
            'manuscript_title': submission.title,
            'journal_name': config.journal_name,
            'currency': payment.currency,
            'amount': str(payment.amount),
            'invoice_number': payment.invoice_number,
        },
    )
    logger.info(f"Payment {payment.invoice_number} for submission {submission.id} marked PAID")
    return payment


def confirm_payment(payment, user, payment_intent_id, config=None, gateway=None):
    """
    Confirm a card payment from the client after Stripe.js completes it.

    Already-paid payments are returned unchanged, since the webhook may
    have arrived first.
    """
    gateway = gateway or get_gateway()

    if payment.user_id != user.pk:
        raise PermissionDenied('You can only confirm your own payments.')
    if payment.payment_method != 'CARD' or not payment.stripe_payment_id:
        raise PreconditionFailed(
            'Only card payments can be confirmed through the payment gateway.', code='not_card_payment'
        )
    if payment.stripe_payment_id != payment_intent_id:
        raise WorkflowValidationError(
            'Payment intent does not match this payment.', code='intent_mismatch'
        )

    intent = gateway.retrieve_payment_intent(payment_intent_id)
    if intent.get('metadata', {}).get('submission_id') != str(payment.submission_id):
        logger.warning(f"Payment intent {payment_intent_id} does not belong to submission {payment.submission_id}")
        raise WorkflowValidationError(
            'Payment intent does not belong to this submission.', code='intent_mismatch'
        )

    with transaction.atomic():
        payment = Payment.objects.select_for_update().select_related(
            'submission__author'
        ).get(pk=payment.pk)
        if payment.status == Payment.STATUS_PAID:
            return payment
        if payment.status != Payment.STATUS_PENDING:
            raise PreconditionFailed(
                f"Payment is {payment.status.lower()} and cannot be confirmed.", code='payment_not_pending'
            )
        if intent['status'] != 'succeeded':
            raise PreconditionFailed('Payment not completed.', code='payment_not_completed')
        _record_paid(payment, user=user, config=config)

    log_activity(user, 'PAY', 'PAYMENT', payment.id, metadata={'invoice_number': payment.invoice_number})
    return payment


def mark_payment_paid(payment, user, payment_method='', config=None, request=None):
    """Manual confirmation by an admin, typically for bank transfers."""
    if not capabilities_for(user).can_administer:
        raise PermissionDenied('Admin access required.')

    with transaction.atomic():
        payment = Payment.objects.select_for_update().select_related(
            'submission__author'
        ).get(pk=payment.pk)
        if not payment.can_move_to(Payment.STATUS_PAID):
            raise PreconditionFailed(
                f"Payment is {payment.status.lower()} and cannot be marked paid.", code='payment_not_pending'
            )
        if payment_method:
            payment.payment_method = payment_method
            payment.save(update_fields=['payment_method', 'updated_at'])
        _record_paid(payment, user=user, config=config)

    log_activity(
        user, 'PAY', 'PAYMENT', payment.id,
        metadata={'invoice_number': payment.invoice_number, 'manual': True}, request=request,
    )
    return payment


def _payments_for_intent(intent_id):
    return Payment.objects.select_for_update().select_related('submission__author').filter(
        stripe_payment_id=intent_id, status=Payment.STATUS_PENDING
    )


def handle_webhook_event(event, config=None):
    """
    Apply a verified Stripe webhook event. Returns the number of payments
    updated; unknown event types are ignored.
    """
    event_type = event['type']
    intent = event['data']['object']
    intent_id = intent['id']

    if event_type == 'payment_intent.succeeded':
        with transaction.atomic():
            payments = list(_payments_for_intent(intent_id))
            for payment in payments:
                _record_paid(payment, config=config)
        for payment in payments:
            log_system_action('PAY', 'PAYMENT', payment.id,
                              metadata={'invoice_number': payment.invoice_number, 'source': 'webhook'})
        logger.info(f"Webhook {event_type}: {len(payments)} payment(s) for {intent_id} marked PAID")
        return len(payments)

    if event_type == 'payment_intent.payment_failed':
        with transaction.atomic():
            payments = list(_payments_for_intent(intent_id))
            for payment in payments:
                payment.status = Payment.STATUS_FAILED
                payment.save(update_fields=['status', 'updated_at'])
                workflow.add_timeline_event(
                    payment.submission, 'PAYMENT_FAILED',
                    f"Payment {payment.invoice_number} failed",
                )
                notify(
                    payment.submission.author,
                    'PAYMENT_FAILED',
                    'Payment failed',
                    f'Your APC payment for "{payment.submission.title}" failed. Please try again.',
                    submission=payment.submission,
                )
        logger.warning(f"Webhook {event_type}: {len(payments)} payment(s) for {intent_id} marked FAILED")
        return len(payments)

    logger.debug(f"Ignoring webhook event {event_type}")
    return 0
