"""
Review assignment and decision aggregation.

All operations lock the affected rows, check the review and submission
state first and raise a ``WorkflowError`` (409) or
``WorkflowValidationError`` (400) without writing anything when a
precondition does not hold.
"""
import logging
from collections import Counter
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.common.config import JournalConfig
from apps.common.exceptions import InvalidTransition, PreconditionFailed, WorkflowValidationError
from apps.notifications.dispatch import notify, notify_many
from apps.submissions.models import Submission
from apps.submissions.workflow import add_timeline_event, ensure_handling_editor, lock_submission
from apps.users.roles import capabilities_for

from .models import Review

logger = logging.getLogger(__name__)


def is_overdue(review, now=None):
    """
    Whether ``review`` is past its due date.

    Only open reviews (PENDING or IN_PROGRESS) can be overdue; completed and
    declined ones never are.
    """
    now = now or timezone.now()
    return review.status in Review.OPEN_STATUSES and review.due_date < now


def overdue_reviews(now=None):
    now = now or timezone.now()
    return Review.objects.filter(status__in=Review.OPEN_STATUSES, due_date__lt=now)


def decision_readiness(submission, config=None):
    """
    Summarise the reviews of ``submission`` for the editor.

    ``ready`` is true once the completed count reaches
    ``config.min_reviewers_for_decision``. The recommendation tally is
    informational only.
    """
    config = config or JournalConfig.load()
    reviews = list(submission.reviews.all())
    completed = [r for r in reviews if r.status == Review.STATUS_COMPLETED]
    pending = [r for r in reviews if r.status in Review.OPEN_STATUSES]
    tally = Counter(r.recommendation for r in completed if r.recommendation)
    ratings = [r.rating for r in completed if r.rating]
    return {
        'completed': len(completed),
        'pending': len(pending),
        'minimum_required': config.min_reviewers_for_decision,
        'ready': len(completed) >= config.min_reviewers_for_decision,
        'recommendations': dict(tally),
        'average_rating': round(sum(ratings) / len(ratings), 2) if ratings else None,
    }


def _is_excluded(submission, reviewer):
    excluded = {str(value).strip().lower() for value in submission.excluded_reviewers or []}
    return str(reviewer.pk).lower() in excluded or reviewer.email.lower() in excluded


def _lock_review(review):
    return Review.objects.select_for_update().select_related('submission', 'reviewer').get(pk=review.pk)


def _require_under_review(review):
    if review.submission.status != Submission.STATUS_UNDER_REVIEW:
        raise PreconditionFailed(
            f"The submission is no longer under review (status {review.submission.status}).",
            code='submission_not_under_review'
        )


def _review_context(review, config, **extra):
    context = {
        'reviewer_name': review.reviewer.full_name,
        'manuscript_title': review.submission.title,
        'journal_name': config.journal_name,
        'due_date': review.due_date.strftime('%B %d, %Y'),
        'review_url': f"{settings.FRONTEND_URL}/reviewer/reviews/{review.id}",
    }
    context.update({key: str(value) for key, value in extra.items()})
    return context


def invite_reviewer(submission, reviewer, user, due_date=None, config=None):
    """Invite ``reviewer`` to review ``submission``; returns the PENDING Review."""
    config = config or JournalConfig.load()

    with transaction.atomic():
        submission = lock_submission(submission)
        ensure_handling_editor(submission, user)

        if submission.status != Submission.STATUS_UNDER_REVIEW:
            raise PreconditionFailed(
                'Reviewers can only be invited while the submission is under review.',
                code='not_under_review'
            )
        if not reviewer.is_active or not capabilities_for(reviewer).can_review:
            raise WorkflowValidationError('The selected user cannot review manuscripts.', code='invalid_reviewer')
        if reviewer.pk == submission.author_id:
            raise PreconditionFailed('Authors cannot review their own submission.', code='reviewer_is_author')
        if _is_excluded(submission, reviewer):
            raise PreconditionFailed(
                'The author asked for this reviewer to be excluded.', code='reviewer_excluded'
            )

        open_reviews = submission.reviews.filter(status__in=Review.OPEN_STATUSES)
        if open_reviews.filter(reviewer=reviewer).exists():
            raise PreconditionFailed(
                'This reviewer already has an open review for this submission.', code='already_invited'
            )
        if open_reviews.count() >= config.max_reviewers_per_submission:
            raise PreconditionFailed(
                f"A submission can have at most {config.max_reviewers_per_submission} open reviews.",
                code='too_many_reviewers'
            )

        now = timezone.now()
        review = Review.objects.create(
            submission=submission,
            reviewer=reviewer,
            invited_by=user,
            invited_at=now,
            due_date=due_date or now + timedelta(days=config.review_deadline_days),
        )
        add_timeline_event(
            submission, 'REVIEWER_ASSIGNED', f"Reviewer {reviewer.full_name} invited", user=user
        )
        notify(
            reviewer,
            'REVIEW_INVITATION',
            'Invitation to review',
            f'You have been invited to review "{submission.title}".',
            submission=submission,
            email_template='reviewer_invitation',
            context=_review_context(review, config, abstract=submission.abstract),
        )

    logger.info(f"Reviewer {reviewer.email} invited to submission {submission.id}")
    return review


def respond_to_review(review, user, accept, notes=''):
    """PENDING -> IN_PROGRESS (accept) or DECLINED."""
    with transaction.atomic():
        review = _lock_review(review)
        if review.reviewer_id != user.pk:
            raise PermissionDenied('This invitation belongs to another reviewer.')
        to_status = Review.STATUS_IN_PROGRESS if accept else Review.STATUS_DECLINED
        if review.status != Review.STATUS_PENDING:
            raise InvalidTransition(
                review.status, to_status,
                detail=f"This invitation has already been answered (status {review.status})."
            )
        _require_under_review(review)

        notes = (notes or '').strip()
        review.status = to_status
        review.response_notes = notes
        if accept:
            review.accepted_at = timezone.now()
        else:
            review.decline_reason = notes
        review.save()

        reviewer_name = user.full_name
        if accept:
            add_timeline_event(review.submission, 'REVIEW_ACCEPTED',
                               f"Reviewer {reviewer_name} accepted the invitation", user=user)
        else:
            add_timeline_event(review.submission, 'REVIEW_DECLINED',
                               f"Reviewer {reviewer_name} declined the invitation", user=user)

        notify_many(
            review.submission.handling_editors(),
            'REVIEW_ACCEPTED' if accept else 'REVIEW_DECLINED',
            'Review invitation accepted' if accept else 'Review invitation declined',
            f'{reviewer_name} {"accepted" if accept else "declined"} the review of "{review.submission.title}".',
            submission=review.submission,
        )
    return review


def submit_review(review, user, recommendation, rating, author_comments, confidential_comments='',
                  config=None):
    """IN_PROGRESS -> COMPLETED. The review cannot change afterwards."""
    config = config or JournalConfig.load()
    valid = [choice for choice, _ in Review.RECOMMENDATION_CHOICES]
    errors = {}
    if recommendation not in valid:
        errors['recommendation'] = f"Must be one of {', '.join(valid)}."
    if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
        errors['rating'] = 'Rating must be an integer from 1 to 5.'
    if not author_comments or not author_comments.strip():
        errors['author_comments'] = 'Comments for the author are required.'
    if errors:
        raise WorkflowValidationError(errors, code='invalid_review')

    with transaction.atomic():
        review = _lock_review(review)
        if review.reviewer_id != user.pk:
            raise PermissionDenied('This review belongs to another reviewer.')
        if review.status != Review.STATUS_IN_PROGRESS:
            raise InvalidTransition(
                review.status, Review.STATUS_COMPLETED,
                detail=f"Only reviews in progress can be submitted (status {review.status})."
            )
        _require_under_review(review)

        review.status = Review.STATUS_COMPLETED
        review.recommendation = recommendation
        review.rating = rating
        review.author_comments = author_comments.strip()
        review.confidential_comments = (confidential_comments or '').strip()
        review.submitted_at = timezone.now()
        review.save()

        submission = review.submission
        add_timeline_event(submission, 'REVIEW_SUBMITTED', f"Review submitted by {user.full_name}", user=user)

        readiness = decision_readiness(submission, config)
        notify_many(
            submission.handling_editors(),
            'REVIEW_COMPLETED',
            'Review completed',
            f'A review of "{submission.title}" was completed '
            f'({readiness["completed"]}/{readiness["minimum_required"]} needed for a decision).',
            submission=submission,
            email_template='review_completed',
            context={'manuscript_title': submission.title, 'completed_reviews': str(readiness['completed'])},
        )
        notify(
            user,
            'REVIEW_COMPLETED',
            'Thank you for your review',
            f'Your review of "{submission.title}" was received. Your certificate is available.',
            submission=submission,
            email_template='review_thank_you',
            context=_review_context(review, config),
        )

    logger.info(f"Review {review.id} completed with recommendation {recommendation}")
    return review


def _require_open(review, action):
    if review.status not in Review.OPEN_STATUSES:
        raise PreconditionFailed(
            f"Cannot {action} a review with status {review.status}.", code='review_closed'
        )


def send_reminder(review, user=None, config=None):
    """
    Remind the reviewer of an open review.

    ``user`` is None when called by the scheduled reminder task.
    """
    config = config or JournalConfig.load()
    with transaction.atomic():
        review = _lock_review(review)
        if user is not None:
            ensure_handling_editor(review.submission, user)
        _require_open(review, 'send a reminder for')

        now = timezone.now()
        overdue = is_overdue(review, now)
        review.reminders_sent += 1
        review.last_reminded_at = now
        review.save(update_fields=['reminders_sent', 'last_reminded_at', 'updated_at'])

        add_timeline_event(
            review.submission, 'REVIEWER_REMINDED',
            f"Reminder {review.reminders_sent} sent to {review.reviewer.full_name}", user=user
        )
        notify(
            review.reviewer,
            'REVIEW_REMINDER',
            'Review reminder',
            f'Your review of "{review.submission.title}" is '
            f'{"overdue" if overdue else "due on " + review.due_date.strftime("%B %d, %Y")}.',
            submission=review.submission,
            email_template='review_reminder',
            context=_review_context(review, config, overdue='yes' if overdue else ''),
        )
    return review


def extend_deadline(review, user, new_due_date, reason, config=None):
    """Move the due date of an open review later."""
    config = config or JournalConfig.load()
    if not reason or not reason.strip():
        raise WorkflowValidationError('A reason is required to extend a deadline.', code='reason_required')

    with transaction.atomic():
        review = _lock_review(review)
        ensure_handling_editor(review.submission, user)
        _require_open(review, 'extend the deadline of')
        if new_due_date <= review.due_date:
            raise WorkflowValidationError(
                'The new due date must be later than the current one.', code='invalid_due_date'
            )

        old_due_date = review.due_date
        review.due_date = new_due_date
        review.save(update_fields=['due_date', 'updated_at'])

        add_timeline_event(
            review.submission, 'REVIEW_DEADLINE_EXTENDED',
            f"Review deadline for {review.reviewer.full_name} extended from "
            f"{old_due_date:%Y-%m-%d} to {new_due_date:%Y-%m-%d}: {reason.strip()}",
            user=user
        )
        notify(
            review.reviewer,
            'DEADLINE_EXTENDED',
            'Review deadline extended',
            f'The deadline for "{review.submission.title}" is now {new_due_date:%B %d, %Y}.',
            submission=review.submission,
            email_template='review_deadline_extended',
            context=_review_context(review, config),
        )
    return review


def remove_reviewer(review, user, reason):
    """Force an open review to DECLINED, keeping the row for the record."""
    if not reason or not reason.strip():
        raise WorkflowValidationError('A reason is required to remove a reviewer.', code='reason_required')

    with transaction.atomic():
        review = _lock_review(review)
        ensure_handling_editor(review.submission, user)
        _require_open(review, 'remove the reviewer of')

        review.status = Review.STATUS_DECLINED
        review.decline_reason = reason.strip()
        review.removed_by_editor = True
        review.save(update_fields=['status', 'decline_reason', 'removed_by_editor', 'updated_at'])

        add_timeline_event(
            review.submission, 'REVIEWER_REMOVED',
            f"Reviewer {review.reviewer.full_name} removed: {reason.strip()}", user=user
        )
        notify(
            review.reviewer,
            'REVIEWER_REMOVED',
            'Review assignment cancelled',
            f'Your review assignment for "{review.submission.title}" was cancelled by the editor.',
            submission=review.submission,
        )
    return review


def available_reviewers(submission, search=None):
    """
    Active reviewers that can be invited to ``submission``: not the author,
    not excluded and without an open review on it.
    """
    User = get_user_model()
    busy = submission.reviews.filter(status__in=Review.OPEN_STATUSES).values_list('reviewer_id', flat=True)
    queryset = User.objects.filter(
        is_active=True,
        role__in=[User.ROLE_REVIEWER, User.ROLE_EDITOR],
    ).exclude(pk=submission.author_id).exclude(pk__in=busy)

    if search:
        queryset = queryset.filter(
            Q(first_name__icontains=search) | Q(last_name__icontains=search) |
            Q(email__icontains=search) | Q(affiliation__icontains=search)
        )
    return [user for user in queryset.order_by('last_name', 'first_name') if not _is_excluded(submission, user)]


def reviewer_stats(user, now=None):
    now = now or timezone.now()
    reviews = list(Review.objects.filter(reviewer=user))
    by_status = Counter(r.status for r in reviews)
    completed = [r for r in reviews if r.status == Review.STATUS_COMPLETED]
    turnaround = [
        (r.submitted_at - r.invited_at).days for r in completed if r.submitted_at
    ]
    return {
        'total': len(reviews),
        'pending': by_status.get(Review.STATUS_PENDING, 0),
        'in_progress': by_status.get(Review.STATUS_IN_PROGRESS, 0),
        'completed': len(completed),
        'declined': by_status.get(Review.STATUS_DECLINED, 0),
        'overdue': sum(1 for r in reviews if is_overdue(r, now)),
        'average_days_to_complete': round(sum(turnaround) / len(turnaround), 1) if turnaround else None,
    }


def reviews_due_for_reminder(config=None, now=None):
    """
    Open reviews on submissions under review, due within
    ``reminder_days_before_due`` days or overdue, that have not been
    reminded in the last day.
    """
    config = config or JournalConfig.load()
    now = now or timezone.now()
    horizon = now + timedelta(days=config.reminder_days_before_due)
    return Review.objects.filter(
        status__in=Review.OPEN_STATUSES,
        submission__status=Submission.STATUS_UNDER_REVIEW,
        due_date__lte=horizon,
    ).filter(
        Q(last_reminded_at__isnull=True) | Q(last_reminded_at__lt=now - timedelta(days=1))
    ).select_related('submission', 'reviewer')
