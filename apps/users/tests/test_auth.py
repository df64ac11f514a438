from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.common.models import ActivityLog
from apps.common.tests.helpers import authenticate, make_user
from apps.users.roles import capabilities_for

User = get_user_model()


class CapabilitiesTest(TestCase):

    def test_role_capabilities(self):
        expectations = {
            User.ROLE_VISITOR: (False, False, False, False),
            User.ROLE_AUTHOR: (True, False, False, False),
            User.ROLE_REVIEWER: (True, True, False, False),
            User.ROLE_EDITOR: (True, True, True, False),
            User.ROLE_ADMIN: (True, True, True, True),
        }
        for role, expected in expectations.items():
            with self.subTest(role=role):
                caps = capabilities_for(make_user(role))
                self.assertEqual(
                    (caps.can_submit, caps.can_review, caps.can_handle_submissions, caps.can_publish),
                    expected
                )

    def test_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='x')
        self.assertEqual(user.role, User.ROLE_ADMIN)
        self.assertTrue(capabilities_for(user).can_administer)

    def test_inactive_user_has_no_capabilities(self):
        user = make_user(User.ROLE_EDITOR, is_active=False)
        self.assertFalse(capabilities_for(user).can_handle_submissions)

    def test_full_name_falls_back_to_email(self):
        user = make_user(User.ROLE_AUTHOR, first_name='', last_name='')
        self.assertEqual(user.full_name, user.email)


class AuthAPITest(APITestCase):

    def test_register(self):
        response = self.client.post(reverse('register'), {
            'email': 'new.author@example.com',
            'first_name': 'Nadia',
            'last_name': 'Okafor',
            'affiliation': 'University of Lagos',
            'password': 'Str0ng-passphrase!',
            'password_confirm': 'Str0ng-passphrase!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], User.ROLE_AUTHOR)
        self.assertNotIn('password', response.data)

    def test_register_cannot_claim_editor_role(self):
        response = self.client.post(reverse('register'), {
            'email': 'sneaky@example.com',
            'first_name': 'S',
            'last_name': 'N',
            'role': User.ROLE_EDITOR,
            'password': 'Str0ng-passphrase!',
            'password_confirm': 'Str0ng-passphrase!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', response.data)

    def test_register_duplicate_email(self):
        make_user(User.ROLE_AUTHOR, email='taken@example.com')
        response = self.client.post(reverse('register'), {
            'email': 'taken@example.com',
            'first_name': 'T',
            'last_name': 'K',
            'password': 'Str0ng-passphrase!',
            'password_confirm': 'Str0ng-passphrase!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_returns_tokens_and_logs(self):
        user = make_user(User.ROLE_REVIEWER, email='rev@example.com')
        response = self.client.post(reverse('token_obtain_pair'),
                                    {'email': 'rev@example.com', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], User.ROLE_REVIEWER)
        self.assertTrue(ActivityLog.objects.filter(user=user, action_type='LOGIN').exists())

    def test_login_wrong_password(self):
        make_user(User.ROLE_AUTHOR, email='a@example.com')
        response = self.client.post(reverse('token_obtain_pair'),
                                    {'email': 'a@example.com', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_is_rate_limited(self):
        make_user(User.ROLE_AUTHOR, email='a@example.com')
        cache.clear()
        payload = {'email': 'a@example.com', 'password': 'nope'}
        with override_settings(RATELIMIT_ENABLE=True):
            for _ in range(10):
                self.client.post(reverse('token_obtain_pair'), payload, format='json')
            response = self.client.post(reverse('token_obtain_pair'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_me_cannot_change_role(self):
        user = make_user(User.ROLE_AUTHOR)
        authenticate(self.client, user)
        response = self.client.patch(reverse('current_user'),
                                     {'affiliation': 'ETH Zurich', 'role': User.ROLE_ADMIN}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.affiliation, 'ETH Zurich')
        self.assertEqual(user.role, User.ROLE_AUTHOR)


class AdminUserAPITest(APITestCase):

    def setUp(self):
        self.admin = make_user(User.ROLE_ADMIN)
        self.user = make_user(User.ROLE_AUTHOR)
        authenticate(self.client, self.admin)

    def test_filter_by_role(self):
        make_user(User.ROLE_REVIEWER)
        response = self.client.get(reverse('admin-user-list'), {'role': User.ROLE_REVIEWER})
        self.assertEqual(response.data['count'], 1)

    def test_promote_to_editor(self):
        response = self.client.patch(reverse('admin-user-detail', args=[self.user.pk]),
                                     {'role': User.ROLE_EDITOR}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, User.ROLE_EDITOR)
        log = ActivityLog.objects.get(action_type='UPDATE', resource_type='USER')
        self.assertEqual(log.metadata['previous_role'], User.ROLE_AUTHOR)

    def test_non_admin_forbidden(self):
        authenticate(self.client, make_user(User.ROLE_EDITOR))
        response = self.client.get(reverse('admin-user-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
