from django.contrib import admin
from django.db.models import ProtectedError
from django.test import RequestFactory, TestCase

from apps.common.exceptions import InvalidTransition, PreconditionFailed, WorkflowValidationError
from apps.common.tests.helpers import (
    make_user, make_submission, make_review, complete_reviews, make_payment, make_config, pdf_upload,
)
from apps.reviews.models import Review
from apps.submissions import workflow
from apps.submissions.models import Revision, Submission, SubmissionTimeline, TimelineImmutableError
from django.contrib.auth import get_user_model

User = get_user_model()
S = Submission


class TransitionTableTest(TestCase):
    """Every edge of the table is accepted and every other pair is refused."""

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)
        self.admin = make_user(User.ROLE_ADMIN)

    def _ready_submission(self, status):
        submission = make_submission(self.author, status=status)
        complete_reviews(submission, 2)
        make_payment(submission)
        return submission

    def test_allowed_edges(self):
        for (from_status, to_status) in workflow.TRANSITIONS:
            with self.subTest(edge=f"{from_status}->{to_status}"):
                submission = self._ready_submission(from_status)
                workflow.transition(submission, to_status, user=self.admin)
                submission.refresh_from_db()
                self.assertEqual(submission.status, to_status)
                entry = submission.timeline.last()
                self.assertEqual(entry.from_status, from_status)
                self.assertEqual(entry.to_status, to_status)
                self.assertEqual(entry.performed_by, self.admin)

    def test_refused_edges_write_nothing(self):
        statuses = [status for status, _ in S.STATUS_CHOICES]
        for from_status in statuses:
            for to_status in statuses:
                if (from_status, to_status) in workflow.TRANSITIONS:
                    continue
                with self.subTest(edge=f"{from_status}->{to_status}"):
                    submission = self._ready_submission(from_status)
                    with self.assertRaises(InvalidTransition):
                        workflow.transition(submission, to_status, user=self.admin)
                    submission.refresh_from_db()
                    self.assertEqual(submission.status, from_status)
                    self.assertFalse(submission.timeline.exists())

    def test_terminal_statuses_have_no_outgoing_edges_except_unpublish(self):
        for status in (S.STATUS_REJECTED, S.STATUS_WITHDRAWN):
            self.assertEqual(workflow.allowed_transitions(status), [])
        self.assertEqual(workflow.allowed_transitions(S.STATUS_PUBLISHED), [S.STATUS_ACCEPTED])

    def test_accept_requires_completed_reviews(self):
        submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
        complete_reviews(submission, 1)
        with self.assertRaises(PreconditionFailed) as ctx:
            workflow.transition(submission, S.STATUS_ACCEPTED, user=self.admin,
                                config=make_config(min_reviewers_for_decision=2))
        self.assertEqual(ctx.exception.get_codes(), 'insufficient_reviews')

        workflow.transition(submission, S.STATUS_ACCEPTED, user=self.admin,
                            config=make_config(min_reviewers_for_decision=1))
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_ACCEPTED)
        self.assertIsNotNone(submission.accepted_at)

    def test_publish_requires_paid_payment(self):
        submission = make_submission(self.author, status=S.STATUS_ACCEPTED)
        make_payment(submission, status='PENDING')
        with self.assertRaises(PreconditionFailed) as ctx:
            workflow.transition(submission, S.STATUS_PUBLISHED, user=self.admin)
        self.assertEqual(ctx.exception.get_codes(), 'payment_required')
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_ACCEPTED)


class SubmitSubmissionTest(TestCase):

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)
        self.editor = make_user(User.ROLE_EDITOR)

    def test_submit_draft(self):
        submission = make_submission(self.author)
        workflow.submit_submission(submission, self.author)
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_SUBMITTED)
        self.assertIsNotNone(submission.submitted_at)
        self.assertTrue(submission.files.get().is_main_file)
        self.assertTrue(submission.timeline.filter(event='SUBMISSION_SUBMITTED').exists())

    def test_missing_fields_are_reported(self):
        submission = make_submission(self.author, with_file=False, abstract='', keywords=[])
        with self.assertRaises(WorkflowValidationError) as ctx:
            workflow.submit_submission(submission, self.author)
        self.assertEqual(
            ctx.exception.detail['missing_fields'], ['abstract', 'keywords', 'manuscript_file']
        )
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_DRAFT)

    def test_only_author_can_submit(self):
        from rest_framework.exceptions import PermissionDenied

        submission = make_submission(self.author)
        with self.assertRaises(PermissionDenied):
            workflow.submit_submission(submission, self.editor)

    def test_resubmission_after_formatting(self):
        submission = make_submission(self.author, status=S.STATUS_RETURNED_FOR_FORMATTING)
        workflow.submit_submission(submission, self.author)
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_SUBMITTED)
        self.assertIn('resubmitted', submission.timeline.last().description)


class ScreeningAndDecisionTest(TestCase):

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)
        self.editor = make_user(User.ROLE_EDITOR)
        self.other_editor = make_user(User.ROLE_EDITOR)

    def test_open_screening_assigns_editor(self):
        submission = make_submission(self.author, status=S.STATUS_SUBMITTED)
        workflow.open_screening(submission, self.editor)
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_INITIAL_REVIEW)
        self.assertTrue(submission.is_assigned_to(self.editor))

    def test_unassigned_editor_cannot_screen_assigned_submission(self):
        from rest_framework.exceptions import PermissionDenied

        submission = make_submission(self.author, status=S.STATUS_SUBMITTED)
        workflow.open_screening(submission, self.editor)
        with self.assertRaises(PermissionDenied):
            workflow.screen_submission(submission, self.other_editor, 'PROCEED_TO_REVIEW', 'Fine.')

    def test_screening_requires_comments(self):
        submission = make_submission(self.author, status=S.STATUS_INITIAL_REVIEW)
        with self.assertRaises(WorkflowValidationError) as ctx:
            workflow.screen_submission(submission, self.editor, 'REJECT', '  ')
        self.assertEqual(ctx.exception.get_codes(), 'comments_required')

    def test_screening_outcomes(self):
        for decision, expected in workflow.SCREENING_DECISIONS.items():
            with self.subTest(decision=decision):
                submission = make_submission(self.author, status=S.STATUS_INITIAL_REVIEW)
                workflow.screen_submission(submission, self.editor, decision, 'Screened.')
                submission.refresh_from_db()
                self.assertEqual(submission.status, expected)
                self.assertEqual(submission.decision_comments, 'Screened.')

    def test_decision_waits_for_reviews(self):
        submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
        workflow.ensure_handling_editor(submission, self.editor, allow_unassigned=True)
        complete_reviews(submission, 1)
        make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_IN_PROGRESS)

        with self.assertRaises(PreconditionFailed):
            workflow.make_decision(submission, self.editor, 'ACCEPT', 'Good work.',
                                   config=make_config(min_reviewers_for_decision=2))

        workflow.make_decision(submission, self.editor, 'REVISION_REQUIRED', 'Please revise.',
                               config=make_config(min_reviewers_for_decision=1))
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_REVISION_REQUIRED)

    def test_decision_ignores_recommendation_tally(self):
        submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
        workflow.ensure_handling_editor(submission, self.editor, allow_unassigned=True)
        for _ in range(2):
            make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_COMPLETED,
                        recommendation='REJECT')
        workflow.make_decision(submission, self.editor, 'ACCEPT', 'Accepting despite the reviews.')
        submission.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_ACCEPTED)

    def test_decision_closes_open_reviews(self):
        for decision in ('ACCEPT', 'REJECT'):
            with self.subTest(decision=decision):
                submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
                workflow.ensure_handling_editor(submission, self.editor, allow_unassigned=True)
                done = complete_reviews(submission, 2)
                pending = make_review(submission, make_user(User.ROLE_REVIEWER), due_in_days=-1)
                started = make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_IN_PROGRESS)

                workflow.make_decision(submission, self.editor, decision, 'Decided.')

                for review in (pending, started):
                    review.refresh_from_db()
                    self.assertEqual(review.status, Review.STATUS_DECLINED)
                    self.assertTrue(review.decline_reason)
                self.assertEqual(submission.reviews.filter(status=Review.STATUS_COMPLETED).count(), len(done))
                self.assertFalse(submission.reviews.filter(status__in=Review.OPEN_STATUSES).exists())

    def test_admin_assigns_editor_once(self):
        admin = make_user(User.ROLE_ADMIN)
        submission = make_submission(self.author, status=S.STATUS_SUBMITTED)
        workflow.assign_editor(submission, self.editor, admin)
        with self.assertRaises(PreconditionFailed) as ctx:
            workflow.assign_editor(submission, self.editor, admin)
        self.assertEqual(ctx.exception.get_codes(), 'already_assigned')


class RevisionTest(TestCase):

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)
        self.editor = make_user(User.ROLE_EDITOR)
        self.submission = make_submission(self.author, status=S.STATUS_REVISION_REQUIRED)
        workflow.ensure_handling_editor(self.submission, self.editor, allow_unassigned=True)

    def test_revisions_are_numbered_in_sequence(self):
        workflow.submit_revision(self.submission, self.author, 'Addressed all comments.', [pdf_upload('r1.pdf')])
        complete_reviews(self.submission, 2)
        workflow.handle_revision(self.submission, self.editor, 'SEND_FOR_RE_REVIEW', 'Back to review.',
                                 reviewer_ids=[make_user(User.ROLE_REVIEWER).pk])
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_UNDER_REVIEW)

        workflow.make_decision(self.submission, self.editor, 'REVISION_REQUIRED', 'One more round.')
        workflow.submit_revision(self.submission, self.author, 'Second response.')

        numbers = list(self.submission.revisions.order_by('revision_number').values_list('revision_number', flat=True))
        self.assertEqual(numbers, [1, 2])
        self.assertEqual(self.submission.revisions.get(revision_number=1).files.count(), 1)
        self.assertTrue(self.submission.timeline.filter(description__startswith='Revision 2 submitted').exists())

    def test_empty_revision_is_refused(self):
        with self.assertRaises(WorkflowValidationError) as ctx:
            workflow.submit_revision(self.submission, self.author, '  ', [])
        self.assertEqual(ctx.exception.get_codes(), 'empty_revision')
        self.assertFalse(self.submission.revisions.exists())

    def test_re_review_needs_reviewers(self):
        workflow.submit_revision(self.submission, self.author, 'Done.')
        with self.assertRaises(WorkflowValidationError) as ctx:
            workflow.handle_revision(self.submission, self.editor, 'SEND_FOR_RE_REVIEW', 'Again.')
        self.assertEqual(ctx.exception.get_codes(), 'reviewers_required')

    def test_accept_revision(self):
        complete_reviews(self.submission, 2)
        workflow.submit_revision(self.submission, self.author, 'All points addressed.')

        workflow.handle_revision(self.submission, self.editor, 'ACCEPT_REVISION', 'Ready to go.')

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_ACCEPTED)
        self.assertIsNotNone(self.submission.accepted_at)
        self.assertEqual(self.submission.decision_comments, 'Ready to go.')
        entry = self.submission.timeline.get(event='REVISION_DECISION')
        self.assertEqual((entry.from_status, entry.to_status), (S.STATUS_REVISED, S.STATUS_ACCEPTED))

    def test_accept_revision_requires_completed_reviews(self):
        workflow.submit_revision(self.submission, self.author, 'All points addressed.')
        with self.assertRaises(PreconditionFailed) as ctx:
            workflow.handle_revision(self.submission, self.editor, 'ACCEPT_REVISION', 'Ready to go.')
        self.assertEqual(ctx.exception.get_codes(), 'insufficient_reviews')
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_REVISED)

    def test_reject_revision(self):
        workflow.submit_revision(self.submission, self.author, 'Partial response.')

        workflow.handle_revision(self.submission, self.editor, 'REJECT_REVISION', 'Concerns remain.')

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_REJECTED)
        self.assertEqual(self.submission.decision_comments, 'Concerns remain.')
        self.assertEqual(workflow.allowed_transitions(self.submission.status), [])

    def test_re_review_invites_selected_reviewers(self):
        first = make_user(User.ROLE_REVIEWER)
        second = make_user(User.ROLE_REVIEWER)
        workflow.submit_revision(self.submission, self.author, 'Done.')

        workflow.handle_revision(self.submission, self.editor, 'SEND_FOR_RE_REVIEW', 'Please look again.',
                                 reviewer_ids=[first.pk, second.pk])

        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_UNDER_REVIEW)
        reviews = self.submission.reviews.all()
        self.assertEqual({review.reviewer_id for review in reviews}, {first.pk, second.pk})
        for review in reviews:
            self.assertEqual(review.status, Review.STATUS_PENDING)
            self.assertEqual(review.invited_by, self.editor)

    def test_unknown_reviewer_rolls_back_the_decision(self):
        import uuid

        known = make_user(User.ROLE_REVIEWER)
        workflow.submit_revision(self.submission, self.author, 'Done.')

        with self.assertRaises(WorkflowValidationError) as ctx:
            workflow.handle_revision(self.submission, self.editor, 'SEND_FOR_RE_REVIEW', 'Again.',
                                     reviewer_ids=[known.pk, uuid.uuid4()])

        self.assertEqual(ctx.exception.get_codes(), 'unknown_reviewer')
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, S.STATUS_REVISED)
        self.assertFalse(self.submission.reviews.exists())
        self.assertFalse(self.submission.timeline.filter(event='REVISION_DECISION').exists())

    def test_revision_only_when_required(self):
        submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
        with self.assertRaises(InvalidTransition):
            workflow.submit_revision(submission, self.author, 'Too early.')


class WithdrawTest(TestCase):

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)

    def test_withdraw_declines_open_reviews(self):
        submission = make_submission(self.author, status=S.STATUS_UNDER_REVIEW)
        open_review = make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_IN_PROGRESS)
        done_review = make_review(submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_COMPLETED)

        workflow.withdraw_submission(submission, self.author, 'Found an error in the data')

        submission.refresh_from_db()
        open_review.refresh_from_db()
        done_review.refresh_from_db()
        self.assertEqual(submission.status, S.STATUS_WITHDRAWN)
        self.assertEqual(open_review.status, Review.STATUS_DECLINED)
        self.assertEqual(done_review.status, Review.STATUS_COMPLETED)
        self.assertIn('Found an error', submission.timeline.last().description)

    def test_terminal_submission_cannot_be_withdrawn(self):
        submission = make_submission(self.author, status=S.STATUS_REJECTED)
        with self.assertRaises(InvalidTransition):
            workflow.withdraw_submission(submission, self.author)


class TimelineImmutabilityTest(TestCase):

    def test_entries_cannot_change(self):
        author = make_user(User.ROLE_AUTHOR)
        submission = make_submission(author)
        entry = workflow.add_timeline_event(submission, 'SUBMISSION_CREATED', 'Draft created', user=author)

        entry.description = 'Rewritten history'
        with self.assertRaises(TimelineImmutableError):
            entry.save()
        with self.assertRaises(TimelineImmutableError):
            entry.delete()

        self.assertEqual(SubmissionTimeline.objects.get(pk=entry.pk).description, 'Draft created')
        self.assertEqual(entry.performed_by_name, author.full_name)

    def test_bulk_changes_are_refused(self):
        author = make_user(User.ROLE_AUTHOR)
        submission = make_submission(author)
        workflow.add_timeline_event(submission, 'SUBMISSION_CREATED', 'Draft created', user=author)

        with self.assertRaises(TimelineImmutableError):
            submission.timeline.all().delete()
        with self.assertRaises(TimelineImmutableError):
            SubmissionTimeline.objects.filter(submission=submission).update(description='Rewritten')
        self.assertEqual(submission.timeline.get().description, 'Draft created')

    def test_submission_with_history_cannot_be_deleted(self):
        author = make_user(User.ROLE_AUTHOR)
        submission = make_submission(author)
        workflow.add_timeline_event(submission, 'SUBMISSION_CREATED', 'Draft created', user=author)

        with self.assertRaises(ProtectedError):
            submission.delete()
        with self.assertRaises(ProtectedError):
            author.delete()

        self.assertTrue(Submission.objects.filter(pk=submission.pk).exists())
        self.assertEqual(submission.timeline.count(), 1)

    def test_admin_cannot_delete_submissions_or_revisions(self):
        request = RequestFactory().get('/')
        request.user = make_user(User.ROLE_ADMIN, is_superuser=True, is_staff=True)
        for model in (Submission, Revision):
            with self.subTest(model=model.__name__):
                self.assertFalse(admin.site._registry[model].has_delete_permission(request))
