from decimal import Decimal

from django.test import TestCase, override_settings
from django.urls import path
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase
from rest_framework.views import APIView

from apps.common.config import JournalConfig
from apps.common.exceptions import InvalidTransition, PreconditionFailed
from apps.common.models import SystemSetting


class JournalConfigTest(TestCase):

    def test_defaults_come_from_settings(self):
        with self.settings(JOURNAL_PORTAL={'JOURNAL_NAME': 'Tidal Studies', 'APC_AMOUNT': Decimal('50')}):
            config = JournalConfig.defaults()
        self.assertEqual(config.journal_name, 'Tidal Studies')
        self.assertEqual(config.apc_amount, Decimal('50'))
        self.assertEqual(config.review_deadline_days, 21)

    def test_stored_settings_override_defaults(self):
        SystemSetting.objects.create(key='review_deadline_days', value='14', value_type=SystemSetting.TYPE_NUMBER)
        SystemSetting.objects.create(key='apc_amount', value='120.50', value_type=SystemSetting.TYPE_NUMBER)
        SystemSetting.objects.create(key='journal_name', value='Hydrology Letters')

        config = JournalConfig.load()

        self.assertEqual(config.review_deadline_days, 14)
        self.assertEqual(config.apc_amount, Decimal('120.50'))
        self.assertEqual(config.journal_name, 'Hydrology Letters')

    def test_invalid_stored_value_is_ignored(self):
        SystemSetting.objects.create(key='min_reviewers_for_decision', value='two',
                                     value_type=SystemSetting.TYPE_NUMBER)
        self.assertEqual(JournalConfig.load().min_reviewers_for_decision,
                         JournalConfig.defaults().min_reviewers_for_decision)

    def test_unknown_keys_are_not_config(self):
        SystemSetting.objects.create(key='homepage_banner', value='Welcome')
        self.assertNotIn('homepage_banner', JournalConfig.load().as_dict())


class RefusedTransitionView(APIView):
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        raise InvalidTransition('DRAFT', 'PUBLISHED')


class MissingReviewsView(APIView):
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        raise PreconditionFailed('Two reviews needed.', code='insufficient_reviews')


class FieldErrorView(APIView):
    permission_classes = []
    authentication_classes = []

    def get(self, request):
        raise ValidationError({'title': ['This field is required.']}, code='required')


urlpatterns = [
    path('refused/', RefusedTransitionView.as_view()),
    path('missing-reviews/', MissingReviewsView.as_view()),
    path('field-error/', FieldErrorView.as_view()),
]


@override_settings(ROOT_URLCONF=__name__)
class ExceptionHandlerTest(APITestCase):

    def test_invalid_transition(self):
        response = self.client.get('/refused/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'invalid_transition')
        self.assertIn('DRAFT', response.data['detail'])

    def test_precondition_code(self):
        response = self.client.get('/missing-reviews/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'insufficient_reviews')

    def test_validation_error_code(self):
        response = self.client.get('/field-error/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'required')
        self.assertEqual(response.data['title'], ['This field is required.'])
