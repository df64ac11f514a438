from datetime import timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.common.models import SystemSetting
from apps.common.tests.helpers import authenticate, make_user, make_submission, make_review, complete_reviews
from apps.notifications.models import Notification
from apps.reviews.models import Review
from apps.submissions.models import Submission

User = get_user_model()


class EditorSubmissionAPITest(APITestCase):

    def setUp(self):
        self.author = make_user(User.ROLE_AUTHOR)
        self.editor = make_user(User.ROLE_EDITOR)
        self.reviewer = make_user(User.ROLE_REVIEWER)
        authenticate(self.client, self.editor)

    def _url(self, name, submission):
        return reverse(f'editor-submission-{name}', args=[submission.pk])

    def test_author_has_no_editor_access(self):
        authenticate(self.client, self.author)
        response = self.client.get(reverse('editor-submission-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_drafts_are_not_listed(self):
        make_submission(self.author)
        make_submission(self.author, status=Submission.STATUS_SUBMITTED)
        response = self.client.get(reverse('editor-submission-list'))
        self.assertEqual(response.data['count'], 1)

    def test_screening_flow(self):
        submission = make_submission(self.author, status=Submission.STATUS_SUBMITTED)

        response = self.client.post(self._url('open-screening', submission))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Submission.STATUS_INITIAL_REVIEW)
        self.assertEqual(response.data['editor_assignments'][0]['editor']['id'], str(self.editor.pk))

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self._url('screen', submission), {
                'decision': 'RETURN_FOR_FORMATTING', 'comments': 'Use the journal template.'
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Submission.STATUS_RETURNED_FOR_FORMATTING)
        self.assertTrue(Notification.objects.filter(user=self.author, notification_type='STATUS_CHANGED').exists())

    def test_screen_without_comments(self):
        submission = make_submission(self.author, status=Submission.STATUS_INITIAL_REVIEW)
        response = self.client.post(self._url('screen', submission), {'decision': 'REJECT'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'comments_required')

    def test_assign_reviewer(self):
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        authenticate(self.client, make_user(User.ROLE_ADMIN))

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self._url('assign-reviewer', submission),
                                        {'reviewer_id': str(self.reviewer.pk)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Review.STATUS_PENDING)
        self.assertFalse(response.data['is_overdue'])
        self.assertTrue(Notification.objects.filter(
            user=self.reviewer, notification_type='REVIEW_INVITATION').exists())

    def test_assign_author_as_reviewer_is_refused(self):
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        authenticate(self.client, make_user(User.ROLE_ADMIN))
        self.author.role = User.ROLE_REVIEWER
        self.author.save()
        response = self.client.post(self._url('assign-reviewer', submission),
                                    {'reviewer_id': str(self.author.pk)}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'reviewer_is_author')
        self.assertFalse(submission.reviews.exists())

    def test_unassigned_editor_cannot_decide(self):
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        complete_reviews(submission)
        response = self.client.post(self._url('decision', submission),
                                    {'decision': 'ACCEPT', 'comments': 'Good.'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_decision_uses_stored_minimum(self):
        admin = make_user(User.ROLE_ADMIN)
        authenticate(self.client, admin)
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        complete_reviews(submission, 1)

        response = self.client.post(self._url('decision', submission),
                                    {'decision': 'ACCEPT', 'comments': 'Good.'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_reviews')

        SystemSetting.objects.create(key='min_reviewers_for_decision', value='1', value_type=SystemSetting.TYPE_NUMBER)
        response = self.client.post(self._url('decision', submission),
                                    {'decision': 'ACCEPT', 'comments': 'Good.'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Submission.STATUS_ACCEPTED)
        self.assertIn(Submission.STATUS_PUBLISHED, response.data['allowed_transitions'])

    def test_revision_decision(self):
        submission = make_submission(self.author, status=Submission.STATUS_REVISED)
        submission.editor_assignments.create(editor=self.editor)

        response = self.client.post(self._url('revision-decision', submission), {
            'decision': 'SEND_FOR_RE_REVIEW', 'comments': 'One more look.',
            'reviewer_ids': [str(self.reviewer.pk)],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Submission.STATUS_UNDER_REVIEW)
        review = submission.reviews.get()
        self.assertEqual((review.reviewer, review.status), (self.reviewer, Review.STATUS_PENDING))

    def test_revision_decision_requires_revised_submission(self):
        submission = make_submission(self.author, status=Submission.STATUS_REVISION_REQUIRED)
        submission.editor_assignments.create(editor=self.editor)

        response = self.client.post(self._url('revision-decision', submission),
                                    {'decision': 'REJECT_REVISION', 'comments': 'No.'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        submission.refresh_from_db()
        self.assertEqual(submission.status, Submission.STATUS_REVISION_REQUIRED)

    def test_reviews_with_readiness(self):
        admin = make_user(User.ROLE_ADMIN)
        authenticate(self.client, admin)
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        complete_reviews(submission, 1)
        make_review(submission, self.reviewer, status=Review.STATUS_IN_PROGRESS)

        response = self.client.get(self._url('reviews', submission))

        self.assertEqual(len(response.data['reviews']), 2)
        readiness = response.data['decision_readiness']
        self.assertEqual((readiness['completed'], readiness['pending'], readiness['ready']), (1, 1, False))
        self.assertEqual(readiness['recommendations'], {'ACCEPT': 1})

    def test_available_reviewers_excludes_author_and_busy(self):
        admin = make_user(User.ROLE_ADMIN)
        authenticate(self.client, admin)
        busy = make_user(User.ROLE_REVIEWER)
        excluded = make_user(User.ROLE_REVIEWER)
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW,
                                     excluded_reviewers=[excluded.email])
        make_review(submission, busy)

        response = self.client.get(self._url('available-reviewers', submission))

        ids = {row['id'] for row in response.data}
        self.assertIn(str(self.reviewer.pk), ids)
        self.assertNotIn(str(busy.pk), ids)
        self.assertNotIn(str(excluded.pk), ids)
        self.assertNotIn(str(self.author.pk), ids)


class EditorReviewAPITest(APITestCase):

    def setUp(self):
        self.admin = make_user(User.ROLE_ADMIN)
        self.author = make_user(User.ROLE_AUTHOR)
        self.reviewer = make_user(User.ROLE_REVIEWER)
        self.submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        authenticate(self.client, self.admin)

    def test_overdue_list(self):
        late = make_review(self.submission, self.reviewer, due_in_days=-2)
        make_review(self.submission, make_user(User.ROLE_REVIEWER), due_in_days=5)
        make_review(self.submission, make_user(User.ROLE_REVIEWER), status=Review.STATUS_COMPLETED, due_in_days=-5)

        response = self.client.get(reverse('editor-review-overdue'))

        self.assertEqual([row['id'] for row in response.data], [str(late.pk)])
        self.assertTrue(response.data[0]['is_overdue'])

    def test_remind(self):
        review = make_review(self.submission, self.reviewer)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(reverse('editor-review-remind', args=[review.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['reminders_sent'], 1)
        self.assertTrue(Notification.objects.filter(user=self.reviewer, notification_type='REVIEW_REMINDER').exists())

    def test_extend_deadline(self):
        review = make_review(self.submission, self.reviewer, due_in_days=-1)
        new_due = timezone.now() + timedelta(days=10)
        response = self.client.post(reverse('editor-review-extend-deadline', args=[review.pk]),
                                    {'due_date': new_due.isoformat(), 'reason': 'Fieldwork'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_overdue'])

    def test_extend_deadline_requires_later_date(self):
        review = make_review(self.submission, self.reviewer, due_in_days=10)
        earlier = timezone.now() + timedelta(days=2)
        response = self.client.post(reverse('editor-review-extend-deadline', args=[review.pk]),
                                    {'due_date': earlier.isoformat(), 'reason': 'Why not'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'invalid_due_date')

    def test_remove_reviewer(self):
        review = make_review(self.submission, self.reviewer, status=Review.STATUS_IN_PROGRESS)
        response = self.client.post(reverse('editor-review-remove', args=[review.pk]),
                                    {'reason': 'Conflict of interest'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        review.refresh_from_db()
        self.assertEqual(review.status, Review.STATUS_DECLINED)
        self.assertTrue(review.removed_by_editor)

    def test_completed_review_cannot_be_removed(self):
        review = make_review(self.submission, self.reviewer, status=Review.STATUS_COMPLETED)
        response = self.client.post(reverse('editor-review-remove', args=[review.pk]),
                                    {'reason': 'Late'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'review_closed')

    def test_stats(self):
        make_review(self.submission, self.reviewer, due_in_days=-1)
        make_submission(self.author, status=Submission.STATUS_SUBMITTED)
        response = self.client.get(reverse('editor-stats'))
        self.assertEqual(response.data['overdue_reviews'], 1)
        self.assertEqual(response.data['awaiting_screening'], 1)
        self.assertEqual(response.data['awaiting_decision'], 1)
