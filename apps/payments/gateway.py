"""
Stripe payment gateway.

Thin wrapper over the ``stripe`` SDK. Every SDK failure is raised as
``ExternalServiceError`` so callers never see Stripe exception types.
"""
import logging
from decimal import Decimal

import stripe
from django.conf import settings

from apps.common.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    """Webhook payload could not be verified."""


class StripeGateway:

    def __init__(self, api_key=None, webhook_secret=None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET

    @property
    def configured(self):
        return bool(self.api_key)

    def _require_configured(self):
        if not self.configured:
            raise ExternalServiceError('Payment gateway is not configured.')

    def create_payment_intent(self, amount, currency, metadata, description=''):
        """Create a PaymentIntent; ``amount`` is a Decimal in major units."""
        self._require_configured()
        try:
            intent = stripe.PaymentIntent.create(
                amount=int((Decimal(amount) * 100).quantize(Decimal('1'))),
                currency=currency.lower(),
                metadata=metadata,
                description=description,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent.create failed: {e}")
            raise ExternalServiceError('The payment gateway rejected the request.')
        return {'id': intent['id'], 'client_secret': intent['client_secret'], 'status': intent['status']}

    def retrieve_payment_intent(self, intent_id):
        self._require_configured()
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as e:
            logger.error(f"Stripe PaymentIntent.retrieve({intent_id}) failed: {e}")
            raise ExternalServiceError('Could not retrieve the payment from the gateway.')
        return {
            'id': intent['id'],
            'status': intent['status'],
            'metadata': dict(intent.get('metadata') or {}),
        }

    def construct_event(self, payload, signature):
        """Verify and parse a webhook payload."""
        if not self.webhook_secret:
            raise WebhookVerificationError('Webhook secret not configured')
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(f"Invalid signature: {e}")


def get_gateway():
    return StripeGateway()
