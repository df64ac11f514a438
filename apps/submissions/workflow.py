"""
Submission lifecycle.

Every status change goes through ``transition()``, which checks the edge
against ``TRANSITIONS``, enforces the acceptance and publication gates,
updates the status-dependent fields and appends one timeline row. The
operations below wrap it with their own preconditions; each runs in one
transaction with the submission row locked, validates before writing, and
hands notifications off to ``apps.notifications.dispatch`` so a failed
email never undoes a committed change.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Max
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied

from apps.common.config import JournalConfig
from apps.common.exceptions import InvalidTransition, PreconditionFailed, WorkflowValidationError
from apps.common.utils.activity_logger import log_activity
from apps.notifications.dispatch import notify, notify_many
from apps.users.roles import capabilities_for

from .models import (
    Submission, SubmissionTimeline, EditorAssignment, Revision, RevisionFile,
)

logger = logging.getLogger(__name__)

S = Submission

TRANSITIONS = {
    (S.STATUS_DRAFT, S.STATUS_SUBMITTED): 'author submits',
    (S.STATUS_RETURNED_FOR_FORMATTING, S.STATUS_SUBMITTED): 'author resubmits formatted manuscript',
    (S.STATUS_SUBMITTED, S.STATUS_INITIAL_REVIEW): 'editor opens screening',
    (S.STATUS_SUBMITTED, S.STATUS_RETURNED_FOR_FORMATTING): 'editor returns for formatting',
    (S.STATUS_INITIAL_REVIEW, S.STATUS_RETURNED_FOR_FORMATTING): 'editor returns for formatting',
    (S.STATUS_INITIAL_REVIEW, S.STATUS_UNDER_REVIEW): 'editor proceeds to review',
    (S.STATUS_INITIAL_REVIEW, S.STATUS_REJECTED): 'editor screens out',
    (S.STATUS_UNDER_REVIEW, S.STATUS_REVISION_REQUIRED): 'editor requests revision',
    (S.STATUS_UNDER_REVIEW, S.STATUS_ACCEPTED): 'editor accepts',
    (S.STATUS_UNDER_REVIEW, S.STATUS_REJECTED): 'editor rejects',
    (S.STATUS_REVISION_REQUIRED, S.STATUS_REVISED): 'author submits revision',
    (S.STATUS_REVISED, S.STATUS_ACCEPTED): 'editor accepts revision',
    (S.STATUS_REVISED, S.STATUS_UNDER_REVIEW): 'editor sends revision for re-review',
    (S.STATUS_REVISED, S.STATUS_REJECTED): 'editor rejects revision',
    (S.STATUS_ACCEPTED, S.STATUS_PAYMENT_PENDING): 'APC payment initiated',
    (S.STATUS_ACCEPTED, S.STATUS_PUBLISHED): 'admin publishes',
    (S.STATUS_PAYMENT_PENDING, S.STATUS_PUBLISHED): 'admin publishes',
    (S.STATUS_PUBLISHED, S.STATUS_ACCEPTED): 'admin unpublishes',
}

for _status, _label in S.STATUS_CHOICES:
    if _status not in S.TERMINAL_STATUSES:
        TRANSITIONS[(_status, S.STATUS_WITHDRAWN)] = 'author withdraws'

SCREENING_DECISIONS = {
    'PROCEED_TO_REVIEW': S.STATUS_UNDER_REVIEW,
    'REJECT': S.STATUS_REJECTED,
    'RETURN_FOR_FORMATTING': S.STATUS_RETURNED_FOR_FORMATTING,
}

EDITORIAL_DECISIONS = {
    'ACCEPT': S.STATUS_ACCEPTED,
    'REJECT': S.STATUS_REJECTED,
    'REVISION_REQUIRED': S.STATUS_REVISION_REQUIRED,
}

REVISION_DECISIONS = {
    'ACCEPT_REVISION': S.STATUS_ACCEPTED,
    'SEND_FOR_RE_REVIEW': S.STATUS_UNDER_REVIEW,
    'REJECT_REVISION': S.STATUS_REJECTED,
}


def can_transition(from_status, to_status):
    return (from_status, to_status) in TRANSITIONS


def allowed_transitions(from_status):
    return [to for (frm, to) in TRANSITIONS if frm == from_status]


def status_label(status):
    return status.replace('_', ' ')


def status_change_description(from_status, to_status):
    return f"Status changed from {status_label(from_status)} to {status_label(to_status)}"


def add_timeline_event(submission, event, description, user=None, from_status='', to_status=''):
    """Append one row to the submission's timeline."""
    return SubmissionTimeline.objects.create(
        submission=submission,
        event=event,
        from_status=from_status,
        to_status=to_status,
        description=description,
        performed_by=user,
        performed_by_name=user.full_name if user is not None else 'System',
    )


def lock_submission(submission):
    """Re-read the submission with its row locked for the current transaction."""
    return Submission.objects.select_for_update().get(pk=submission.pk)


def transition(submission, to_status, *, user=None, event='STATUS_CHANGE',
               description=None, config=None):
    """
    Move ``submission`` to ``to_status`` and record it on the timeline.

    Raises ``InvalidTransition`` for an edge not in ``TRANSITIONS`` and
    ``PreconditionFailed`` when the acceptance or publication gate is not
    met. Nothing is written when it raises.
    """
    from_status = submission.status
    if not can_transition(from_status, to_status):
        raise InvalidTransition(from_status, to_status)

    now = timezone.now()
    update_fields = ['status', 'updated_at']

    if to_status == S.STATUS_ACCEPTED and from_status != S.STATUS_PUBLISHED:
        from apps.reviews.services import decision_readiness

        readiness = decision_readiness(submission, config or JournalConfig.load())
        if not readiness['ready']:
            raise PreconditionFailed(
                f"At least {readiness['minimum_required']} completed reviews are required "
                f"({readiness['completed']} completed).",
                code='insufficient_reviews'
            )
        submission.accepted_at = now
        update_fields.append('accepted_at')

    if to_status == S.STATUS_PUBLISHED:
        if not submission.has_paid_payment():
            raise PreconditionFailed(
                'A paid APC payment is required before publication.',
                code='payment_required'
            )
        submission.published_at = now
        update_fields.append('published_at')

    if to_status == S.STATUS_SUBMITTED and submission.submitted_at is None:
        submission.submitted_at = now
        update_fields.append('submitted_at')

    submission.status = to_status
    submission.save(update_fields=update_fields)

    add_timeline_event(
        submission,
        event,
        description or status_change_description(from_status, to_status),
        user=user,
        from_status=from_status,
        to_status=to_status,
    )
    logger.info(f"Submission {submission.id}: {from_status} -> {to_status} by {user.email if user else 'system'}")
    return submission


def _require_author(submission, user):
    if submission.author_id != user.pk:
        raise PermissionDenied('Only the submitting author can perform this action.')


def ensure_handling_editor(submission, user, allow_unassigned=False):
    """
    Check that ``user`` may act as editor on ``submission``.

    Admins act on everything; editors only on submissions they are assigned
    to. With ``allow_unassigned`` any editor may take an unassigned
    submission and is recorded as its handling editor.
    """
    capabilities = capabilities_for(user)
    if not capabilities.can_handle_submissions:
        raise PermissionDenied('Editor access required.')
    if capabilities.can_administer or submission.is_assigned_to(user):
        return
    if allow_unassigned and not submission.editor_assignments.exists():
        EditorAssignment.objects.create(submission=submission, editor=user, assigned_by=user)
        add_timeline_event(
            submission, 'EDITOR_ASSIGNED',
            f"{user.full_name} took the submission as handling editor", user=user
        )
        return
    raise PermissionDenied('You are not assigned to this submission.')


def _require_comments(comments):
    if not comments or not comments.strip():
        raise WorkflowValidationError('Comments are required for this decision.', code='comments_required')
    return comments.strip()


def _editors_for(submission):
    editors = submission.handling_editors()
    if editors:
        return editors
    User = get_user_model()
    return list(User.objects.filter(role=User.ROLE_EDITOR, is_active=True))


def _author_context(submission, config, **extra):
    context = {
        'author_name': submission.author.full_name,
        'manuscript_title': submission.title,
        'journal_name': config.journal_name,
        'submission_id': str(submission.id),
    }
    context.update({key: str(value) for key, value in extra.items()})
    return context


def _notify_author_status(submission, to_status, config, comments=''):
    notify(
        submission.author,
        'STATUS_CHANGED',
        f"Manuscript status: {status_label(to_status).title()}",
        f'"{submission.title}" is now {status_label(to_status).lower()}.',
        submission=submission,
        email_template='status_changed',
        context=_author_context(submission, config, new_status=status_label(to_status), comments=comments),
    )


def submit_submission(submission, user, config=None, request=None):
    """DRAFT (or RETURNED_FOR_FORMATTING) -> SUBMITTED."""
    config = config or JournalConfig.load()
    with transaction.atomic():
        submission = lock_submission(submission)
        _require_author(submission, user)
        if not can_transition(submission.status, S.STATUS_SUBMITTED):
            raise InvalidTransition(submission.status, S.STATUS_SUBMITTED)

        missing = []
        if not submission.title.strip():
            missing.append('title')
        if not submission.abstract.strip():
            missing.append('abstract')
        if not [k for k in submission.keywords if str(k).strip()]:
            missing.append('keywords')
        if not submission.manuscript_type:
            missing.append('manuscript_type')
        files = submission.files.all()
        if not files.exists():
            missing.append('manuscript_file')
        if missing:
            raise WorkflowValidationError(
                {'missing_fields': missing}, code='incomplete_submission'
            )

        if not files.filter(is_main_file=True).exists():
            main = files.filter(file_type='MANUSCRIPT').first() or files.first()
            main.is_main_file = True
            main.save(update_fields=['is_main_file'])

        resubmission = submission.status == S.STATUS_RETURNED_FOR_FORMATTING
        description = (
            'Formatted manuscript resubmitted for initial review' if resubmission
            else 'Manuscript submitted for initial review'
        )
        transition(submission, S.STATUS_SUBMITTED, user=user,
                   event='SUBMISSION_SUBMITTED', description=description, config=config)

        notify(
            submission.author,
            'SUBMISSION_RECEIVED',
            'Submission received',
            f'Your manuscript "{submission.title}" has been submitted.',
            submission=submission,
            email_template='submission_received',
            context=_author_context(submission, config),
        )
        notify_many(
            _editors_for(submission),
            'NEW_SUBMISSION',
            'New submission',
            f'"{submission.title}" by {submission.author.full_name} awaits screening.',
            submission=submission,
        )

    log_activity(user, 'SUBMIT', 'SUBMISSION', submission.id,
                 metadata={'title': submission.title, 'resubmission': resubmission}, request=request)
    return submission


def open_screening(submission, user, config=None):
    """SUBMITTED -> INITIAL_REVIEW."""
    with transaction.atomic():
        submission = lock_submission(submission)
        ensure_handling_editor(submission, user, allow_unassigned=True)
        transition(submission, S.STATUS_INITIAL_REVIEW, user=user, config=config)
    return submission


def screen_submission(submission, user, decision, comments, config=None):
    """Apply the outcome of the initial screening."""
    config = config or JournalConfig.load()
    if decision not in SCREENING_DECISIONS:
        raise WorkflowValidationError(
            f"Decision must be one of {', '.join(SCREENING_DECISIONS)}.", code='invalid_decision'
        )
    comments = _require_comments(comments)
    to_status = SCREENING_DECISIONS[decision]

    with transaction.atomic():
        submission = lock_submission(submission)
        if not can_transition(submission.status, to_status):
            raise InvalidTransition(submission.status, to_status)
        ensure_handling_editor(submission, user, allow_unassigned=True)

        submission.decision_comments = comments
        submission.save(update_fields=['decision_comments'])
        transition(submission, to_status, user=user, config=config)
        _notify_author_status(submission, to_status, config, comments)
    return submission


def close_open_reviews(submission, reason):
    """Mark the submission's PENDING and IN_PROGRESS reviews DECLINED."""
    from apps.reviews.models import Review

    closed = Review.objects.filter(
        submission=submission, status__in=Review.OPEN_STATUSES
    ).update(status=Review.STATUS_DECLINED, decline_reason=reason)
    if closed:
        logger.info(f"Closed {closed} open review(s) on submission {submission.id}: {reason}")
    return closed


def make_decision(submission, user, decision, comments, config=None, request=None):
    """
    Editorial decision on a manuscript under review.

    The reviewers' recommendations are advisory; the editor's decision is
    only gated on the number of completed reviews.
    """
    config = config or JournalConfig.load()
    if decision not in EDITORIAL_DECISIONS:
        raise WorkflowValidationError(
            f"Decision must be one of {', '.join(EDITORIAL_DECISIONS)}.", code='invalid_decision'
        )
    comments = _require_comments(comments)
    to_status = EDITORIAL_DECISIONS[decision]

    from apps.reviews.services import decision_readiness

    with transaction.atomic():
        submission = lock_submission(submission)
        if submission.status != S.STATUS_UNDER_REVIEW:
            raise InvalidTransition(submission.status, to_status)
        ensure_handling_editor(submission, user)

        readiness = decision_readiness(submission, config)
        if not readiness['ready']:
            raise PreconditionFailed(
                f"At least {readiness['minimum_required']} completed reviews are required "
                f"({readiness['completed']} completed).",
                code='insufficient_reviews'
            )

        submission.decision_comments = comments
        submission.save(update_fields=['decision_comments'])
        transition(submission, to_status, user=user, config=config)
        # the review round ends with the decision
        close_open_reviews(submission, 'Editorial decision made before the review was completed')

        notify(
            submission.author,
            'DECISION_MADE',
            f"Editorial decision: {status_label(to_status).title()}",
            f'A decision has been made on "{submission.title}".',
            submission=submission,
            email_template='editorial_decision',
            context=_author_context(submission, config, decision=status_label(decision), comments=comments),
        )

    log_activity(user, 'DECIDE', 'SUBMISSION', submission.id,
                 metadata={'decision': decision}, request=request)
    return submission


def submit_revision(submission, user, response='', files=(), config=None):
    """REVISION_REQUIRED -> REVISED with a new Revision."""
    config = config or JournalConfig.load()
    response = (response or '').strip()
    files = list(files or [])

    with transaction.atomic():
        submission = lock_submission(submission)
        _require_author(submission, user)
        if submission.status != S.STATUS_REVISION_REQUIRED:
            raise InvalidTransition(submission.status, S.STATUS_REVISED)
        if not files and not response:
            raise WorkflowValidationError(
                'A revision needs at least one file or a response to the reviewers.',
                code='empty_revision'
            )

        last_number = submission.revisions.aggregate(n=Max('revision_number'))['n'] or 0
        revision = Revision.objects.create(
            submission=submission,
            revision_number=last_number + 1,
            author_response=response,
            submitted_by=user,
        )
        for uploaded in files:
            RevisionFile.objects.create(
                revision=revision,
                file=uploaded,
                original_name=uploaded.name,
                file_size=uploaded.size or 0,
            )

        transition(
            submission, S.STATUS_REVISED, user=user, event='REVISION_SUBMITTED',
            description=f"Revision {revision.revision_number} submitted by {user.full_name}",
            config=config,
        )
        notify_many(
            submission.handling_editors(),
            'REVISION_SUBMITTED',
            'Revision submitted',
            f'Revision {revision.revision_number} of "{submission.title}" is ready for your decision.',
            submission=submission,
            email_template='revision_submitted',
            context=_author_context(submission, config, revision_number=revision.revision_number),
        )
    return submission


def handle_revision(submission, user, decision, comments, reviewer_ids=None,
                    due_date=None, config=None):
    """Editor decision on a revised manuscript."""
    config = config or JournalConfig.load()
    if decision not in REVISION_DECISIONS:
        raise WorkflowValidationError(
            f"Decision must be one of {', '.join(REVISION_DECISIONS)}.", code='invalid_decision'
        )
    comments = _require_comments(comments)
    reviewer_ids = list(reviewer_ids or [])
    if decision == 'SEND_FOR_RE_REVIEW' and not reviewer_ids:
        raise WorkflowValidationError(
            'Select at least one reviewer for re-review.', code='reviewers_required'
        )
    to_status = REVISION_DECISIONS[decision]

    from apps.reviews.services import invite_reviewer

    User = get_user_model()
    with transaction.atomic():
        submission = lock_submission(submission)
        if submission.status != S.STATUS_REVISED:
            raise InvalidTransition(submission.status, to_status)
        ensure_handling_editor(submission, user)

        submission.decision_comments = comments
        submission.save(update_fields=['decision_comments'])
        transition(submission, to_status, user=user, event='REVISION_DECISION',
                   description=status_change_description(S.STATUS_REVISED, to_status),
                   config=config)
        if to_status in (S.STATUS_ACCEPTED, S.STATUS_REJECTED):
            close_open_reviews(submission, 'Editorial decision made before the review was completed')

        for reviewer_id in reviewer_ids:
            reviewer = User.objects.filter(pk=reviewer_id).first()
            if reviewer is None:
                raise WorkflowValidationError(f"Reviewer {reviewer_id} does not exist.", code='unknown_reviewer')
            invite_reviewer(submission, reviewer, user, due_date=due_date, config=config)

        _notify_author_status(submission, to_status, config, comments)
    return submission


def withdraw_submission(submission, user, reason='', config=None, request=None):
    """Any non-terminal status -> WITHDRAWN."""
    config = config or JournalConfig.load()

    with transaction.atomic():
        submission = lock_submission(submission)
        _require_author(submission, user)
        description = 'Submission withdrawn by author'
        if reason and reason.strip():
            description = f"{description}: {reason.strip()}"
        transition(submission, S.STATUS_WITHDRAWN, user=user,
                   event='SUBMISSION_WITHDRAWN', description=description, config=config)

        close_open_reviews(submission, 'Submission withdrawn by author')

        notify_many(
            submission.handling_editors(),
            'STATUS_CHANGED',
            'Submission withdrawn',
            f'"{submission.title}" was withdrawn by the author.',
            submission=submission,
        )

    log_activity(user, 'WITHDRAW', 'SUBMISSION', submission.id,
                 metadata={'reason': reason}, request=request)
    return submission


def assign_editor(submission, editor, user, is_chief=False):
    """Admin assigns a handling editor."""
    if not capabilities_for(user).can_assign_editors:
        raise PermissionDenied('Only administrators can assign editors.')
    if not editor.is_active or not capabilities_for(editor).can_handle_submissions:
        raise WorkflowValidationError('The selected user cannot handle submissions.', code='invalid_editor')

    with transaction.atomic():
        submission = lock_submission(submission)
        if submission.status == S.STATUS_DRAFT:
            raise PreconditionFailed('Draft submissions cannot be assigned to an editor.', code='not_submitted')
        if submission.is_assigned_to(editor):
            raise PreconditionFailed('This editor is already assigned.', code='already_assigned')

        EditorAssignment.objects.create(
            submission=submission, editor=editor, is_chief=is_chief, assigned_by=user
        )
        role = 'chief editor' if is_chief else 'handling editor'
        add_timeline_event(submission, 'EDITOR_ASSIGNED', f"{editor.full_name} assigned as {role}", user=user)

        notify(
            editor,
            'EDITOR_ASSIGNED',
            'New editorial assignment',
            f'You have been assigned as {role} for "{submission.title}".',
            submission=submission,
        )
    logger.info(f"Editor {editor.email} assigned to submission {submission.id}")
    return submission
