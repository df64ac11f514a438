from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import PermissionDenied
from rest_framework.test import APITestCase

from apps.common.exceptions import InvalidTransition, PreconditionFailed, WorkflowValidationError
from apps.common.tests.helpers import authenticate, make_user, make_submission, make_payment, make_config
from apps.payments.models import Payment
from apps.publication import services
from apps.publication.models import Article, Issue, Conference, PublicationSettings
from apps.submissions.models import Submission

User = get_user_model()


class DoiTest(TestCase):

    def test_format(self):
        submission = make_submission(make_user(User.ROLE_AUTHOR))
        doi = services.generate_doi(submission, make_config(doi_prefix='10.5555'), year=2025)
        self.assertEqual(doi, f"10.5555/journal.2025.{str(submission.id)[:8]}")

    def test_existing_doi_is_kept(self):
        submission = make_submission(make_user(User.ROLE_AUTHOR), doi='10.1234/legacy.1')
        self.assertEqual(services.ensure_doi(submission, make_config(doi_prefix='10.5555')), '10.1234/legacy.1')

    def test_taken_doi_gets_a_longer_suffix(self):
        config = make_config(doi_prefix='10.5555')
        author = make_user(User.ROLE_AUTHOR)
        submission = make_submission(author)
        short = services.generate_doi(submission, config)
        make_submission(author, doi=short)

        doi = services.ensure_doi(submission, config)

        self.assertNotEqual(doi, short)
        self.assertTrue(doi.startswith(short))
        self.assertEqual(doi, services.generate_doi(submission, config, length=12))
        submission.refresh_from_db()
        self.assertEqual(submission.doi, doi)

    def test_doi_conflict_is_reported(self):
        config = make_config(doi_prefix='10.5555')
        author = make_user(User.ROLE_AUTHOR)
        submission = make_submission(author)
        for length in services.DOI_SUFFIX_LENGTHS:
            make_submission(author, doi=services.generate_doi(submission, config, length=length))

        with self.assertRaises(PreconditionFailed) as ctx:
            services.ensure_doi(submission, config)

        self.assertEqual(ctx.exception.get_codes(), 'doi_conflict')
        submission.refresh_from_db()
        self.assertIsNone(submission.doi)


class PublishServiceTest(TestCase):

    def setUp(self):
        self.admin = make_user(User.ROLE_ADMIN)
        self.author = make_user(User.ROLE_AUTHOR)
        self.submission = make_submission(self.author, status=Submission.STATUS_ACCEPTED)
        self.issue = Issue.objects.create(volume=3, number=2, is_current=True)
        self.config = make_config(doi_prefix='10.5555')

    def test_requires_paid_payment(self):
        make_payment(self.submission, status=Payment.STATUS_PENDING)
        with self.assertRaises(PreconditionFailed) as ctx:
            services.publish_submission(self.submission, self.admin, 'CURRENT_ISSUE', issue=self.issue,
                                        config=self.config)
        self.assertEqual(ctx.exception.get_codes(), 'payment_required')
        self.submission.refresh_from_db()
        self.assertEqual(self.submission.status, Submission.STATUS_ACCEPTED)
        self.assertIsNone(self.submission.doi)
        self.assertFalse(Article.objects.exists())

    def test_publish_to_issue(self):
        make_payment(self.submission)
        self.submission.coauthors.create(first_name='Ana', last_name='Lima', order=1)

        submission = services.publish_submission(
            self.submission, self.admin, 'CURRENT_ISSUE', issue=self.issue, config=self.config,
            options={'pages': '10-20', 'settings': {'allow_download': False}},
        )

        self.assertEqual(submission.status, Submission.STATUS_PUBLISHED)
        self.assertIsNotNone(submission.published_at)
        self.assertTrue(submission.doi.startswith('10.5555/journal.'))
        self.assertEqual((submission.volume, submission.issue), (3, 2))
        article = Article.objects.get(submission=submission)
        self.assertEqual(article.doi, submission.doi)
        self.assertEqual(article.pages, '10-20')
        self.assertEqual([a['last_name'] for a in article.authors], ['Tester', 'Lima'])
        self.assertFalse(PublicationSettings.objects.get(submission=submission).allow_download)
        entry = submission.timeline.last()
        self.assertEqual(entry.event, 'ARTICLE_PUBLISHED')
        self.assertEqual(entry.description, 'Article published to CURRENT ISSUE')

    def test_issue_destination_needs_issue(self):
        make_payment(self.submission)
        with self.assertRaises(WorkflowValidationError) as ctx:
            services.publish_submission(self.submission, self.admin, 'PAST_ISSUE', config=self.config)
        self.assertEqual(ctx.exception.get_codes(), 'issue_required')

    def test_conference_destination(self):
        make_payment(self.submission)
        conference = Conference.objects.create(name='Hydrology Summit', year=2025)
        submission = services.publish_submission(self.submission, self.admin, 'CONFERENCE',
                                                 conference=conference, config=self.config)
        self.assertEqual(submission.conference, conference)
        self.assertFalse(Article.objects.exists())

    def test_online_first(self):
        make_payment(self.submission)
        submission = services.publish_submission(self.submission, self.admin, 'ONLINE_FIRST', config=self.config)
        self.assertTrue(submission.online_first)
        self.assertIsNone(submission.volume)

    def test_only_admin_publishes(self):
        make_payment(self.submission)
        with self.assertRaises(PermissionDenied):
            services.publish_submission(self.submission, make_user(User.ROLE_EDITOR), 'ONLINE_FIRST',
                                        config=self.config)

    def test_not_accepted(self):
        submission = make_submission(self.author, status=Submission.STATUS_UNDER_REVIEW)
        make_payment(submission)
        with self.assertRaises(InvalidTransition):
            services.publish_submission(submission, self.admin, 'ONLINE_FIRST', config=self.config)

    def test_unpublish_keeps_doi(self):
        make_payment(self.submission)
        published = services.publish_submission(self.submission, self.admin, 'CURRENT_ISSUE',
                                                issue=self.issue, config=self.config)
        doi = published.doi

        submission = services.unpublish_submission(published, self.admin)

        self.assertEqual(submission.status, Submission.STATUS_ACCEPTED)
        self.assertEqual(submission.doi, doi)
        self.assertIsNone(submission.published_at)
        self.assertFalse(Article.objects.exists())
        self.assertFalse(PublicationSettings.objects.exists())

        republished = services.publish_submission(submission, self.admin, 'ONLINE_FIRST', config=self.config)
        self.assertEqual(republished.doi, doi)

    def test_ready_to_publish(self):
        make_payment(self.submission)
        unpaid = make_submission(self.author, status=Submission.STATUS_ACCEPTED)
        make_payment(unpaid, status=Payment.STATUS_PENDING)
        self.assertEqual(list(services.ready_to_publish()), [self.submission])


class IssueModelTest(TestCase):

    def test_single_current_issue(self):
        first = Issue.objects.create(volume=1, number=1, is_current=True)
        second = Issue.objects.create(volume=1, number=2, is_current=True)
        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertTrue(second.is_current)


class PublicationAPITest(APITestCase):

    def setUp(self):
        self.admin = make_user(User.ROLE_ADMIN)
        self.author = make_user(User.ROLE_AUTHOR)
        self.submission = make_submission(self.author, status=Submission.STATUS_ACCEPTED)
        self.issue = Issue.objects.create(volume=1, number=1, is_current=True)
        authenticate(self.client, self.admin)

    def test_publish(self):
        make_payment(self.submission)
        response = self.client.post(reverse('publication-publish', args=[self.submission.pk]), {
            'destination': 'CURRENT_ISSUE',
            'issue_id': str(self.issue.pk),
            'featured_article': True,
            'settings': {'show_views': False},
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Submission.STATUS_PUBLISHED)
        self.assertIsNotNone(response.data['doi'])

    def test_publish_unpaid_is_conflict(self):
        response = self.client.post(reverse('publication-publish', args=[self.submission.pk]),
                                    {'destination': 'ONLINE_FIRST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'payment_required')

    def test_editor_cannot_publish(self):
        authenticate(self.client, make_user(User.ROLE_EDITOR))
        make_payment(self.submission)
        response = self.client.post(reverse('publication-publish', args=[self.submission.pk]),
                                    {'destination': 'ONLINE_FIRST'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_ready_queue(self):
        make_payment(self.submission)
        response = self.client.get(reverse('publication-ready'))
        self.assertEqual([row['id'] for row in response.data], [str(self.submission.pk)])

    def test_preview_suggests_doi(self):
        response = self.client.get(reverse('publication-preview', args=[self.submission.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_paid'])
        self.assertIn(str(self.submission.id)[:8], response.data['doi'])
        self.submission.refresh_from_db()
        self.assertIsNone(self.submission.doi)

    def test_issue_with_articles_cannot_be_deleted(self):
        make_payment(self.submission)
        services.publish_submission(self.submission, self.admin, 'CURRENT_ISSUE', issue=self.issue)
        response = self.client.delete(reverse('issue-detail', args=[self.issue.pk]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'issue_has_articles')

    def test_create_issue(self):
        response = self.client.post(reverse('issue-list'), {'volume': 2, 'number': 1, 'is_current': True},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.issue.refresh_from_db()
        self.assertFalse(self.issue.is_current)


class PublicSiteTest(APITestCase):

    def setUp(self):
        cache.clear()
        self.admin = make_user(User.ROLE_ADMIN)
        self.author = make_user(User.ROLE_AUTHOR, last_name='Moreau')
        self.issue = Issue.objects.create(volume=4, number=1, is_current=True, published_at=timezone.now())
        submission = make_submission(self.author, status=Submission.STATUS_ACCEPTED,
                                     title='Soil Carbon Under No-Till Farming')
        make_payment(submission)
        self.submission = services.publish_submission(submission, self.admin, 'CURRENT_ISSUE', issue=self.issue)
        self.article = Article.objects.get(submission=self.submission)

    def test_current_issue(self):
        response = self.client.get(reverse('public-current-issue'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['articles'][0]['doi'], self.article.doi)

    def test_no_current_issue(self):
        Issue.objects.update(is_current=False)
        response = self.client.get(reverse('public-current-issue'))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_issue_by_number(self):
        response = self.client.get(reverse('public-issue', args=[4, 1]))
        self.assertEqual(response.data['article_count'], 1)

    def test_article_by_doi_counts_views(self):
        url = reverse('public-article', args=[self.article.doi])
        self.client.get(url)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['views'], 2)

    def test_private_article_is_hidden(self):
        PublicationSettings.objects.filter(submission=self.submission).update(is_private=True)
        response = self.client.get(reverse('public-article', args=[self.article.doi]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_download(self):
        response = self.client.get(reverse('public-article-download', args=[self.article.doi]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(b''.join(response.streaming_content).startswith(b'%PDF'))
        self.article.refresh_from_db()
        self.assertEqual(self.article.downloads, 1)

    def test_download_under_embargo(self):
        PublicationSettings.objects.filter(submission=self.submission).update(
            embargo_until=timezone.now() + timedelta(days=30)
        )
        response = self.client.get(reverse('public-article-download', args=[self.article.doi]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_search(self):
        response = self.client.get(reverse('public-search'), {'q': 'carbon', 'author': 'moreau'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(reverse('public-search'), {'q': 'glaciers'})
        self.assertEqual(response.data['count'], 0)

    def test_stats(self):
        response = self.client.get(reverse('public-stats'))
        self.assertEqual(response.data['total_articles'], 1)
        self.assertEqual(response.data['total_issues'], 1)

    def test_rss_feed(self):
        response = self.client.get(reverse('feed-rss'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn(b'Soil Carbon Under No-Till Farming', response.content)
        self.assertIn(f"https://doi.org/{self.article.doi}".encode(), response.content)
