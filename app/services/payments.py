"""Card (Stripe) and PayPal payment adapters, spoken to over their REST APIs."""
import hashlib
import hmac
import json
import logging
import time

import requests

from app.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)


def _provider_message(response, default):
    try:
        body = response.json()
    except ValueError:
        return default
    error = body.get('error')
    if isinstance(error, dict):
        return error.get('message') or default
    return body.get('message') or body.get('error_description') or default


class StripeGateway:

    SIGNATURE_TOLERANCE = 300

    def __init__(self, secret_key, webhook_secret=None, api_url='https://api.stripe.com/v1',
                 currency='usd', timeout=30):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.api_url = api_url.rstrip('/')
        self.currency = currency
        self.timeout = timeout
        self.session = requests.Session()

    def _request(self, method, path, data=None):
        if not self.secret_key:
            raise ExternalServiceError('Card payments are not configured.')
        try:
            response = self.session.request(
                method, f'{self.api_url}{path}', data=data,
                auth=(self.secret_key, ''), timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error('Stripe request %s %s failed: %s', method, path, e)
            raise ExternalServiceError('The payment service is not responding. Please try again later.') from e
        if not response.ok:
            message = _provider_message(response, 'Payment intent creation failed')
            logger.error('Stripe %s %s answered %s: %s', method, path, response.status_code, message)
            raise ExternalServiceError(message)
        return response.json()

    def create_payment_intent(self, amount, description, receipt_email=None, metadata=None):
        """`amount` is in minor units (cents). Returns the intent as a dict."""
        data = {
            'amount': amount,
            'currency': self.currency,
            'description': description,
            'automatic_payment_methods[enabled]': 'true',
        }
        if receipt_email:
            data['receipt_email'] = receipt_email
        for key, value in (metadata or {}).items():
            data[f'metadata[{key}]'] = value
        return self._request('POST', '/payment_intents', data=data)

    def retrieve_payment_intent(self, payment_intent_id):
        return self._request('GET', f'/payment_intents/{payment_intent_id}')

    def construct_event(self, payload, signature_header, now=None):
        """
        Verifies a webhook delivery and returns the decoded event.

        `payload` must be the raw request body. Raises ValidationError on a
        missing, stale or mismatching signature.
        """
        if not signature_header or not self.webhook_secret:
            raise ValidationError('Webhook signature or secret missing')

        timestamp = None
        signatures = []
        for item in signature_header.split(','):
            key, _, value = item.strip().partition('=')
            if key == 't':
                timestamp = value
            elif key == 'v1':
                signatures.append(value)
        if not timestamp or not signatures:
            raise ValidationError('Malformed webhook signature')

        signed_payload = f'{timestamp}.'.encode('utf-8') + payload
        expected = hmac.new(self.webhook_secret.encode('utf-8'), signed_payload, hashlib.sha256).hexdigest()
        if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
            raise ValidationError('Webhook signature mismatch')

        now = time.time() if now is None else now
        try:
            age = abs(now - int(timestamp))
        except ValueError:
            raise ValidationError('Malformed webhook signature')
        if age > self.SIGNATURE_TOLERANCE:
            raise ValidationError('Webhook timestamp outside tolerance')

        try:
            return json.loads(payload)
        except ValueError:
            raise ValidationError('Webhook payload is not JSON')

    def close(self):
        self.session.close()


class PayPalGateway:

    def __init__(self, client_id, secret, api_url='https://api-m.paypal.com', timeout=30):
        self.client_id = client_id
        self.secret = secret
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def _access_token(self):
        if not self.client_id or not self.secret:
            raise ExternalServiceError('PayPal is not configured.')
        try:
            response = self.session.post(
                f'{self.api_url}/v1/oauth2/token',
                auth=(self.client_id, self.secret),
                data={'grant_type': 'client_credentials'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()['access_token']
        except (requests.exceptions.RequestException, KeyError, ValueError) as e:
            logger.error('PayPal token request failed: %s', e)
            raise ExternalServiceError('Failed to authenticate with PayPal') from e

    def _post(self, path, payload=None):
        token = self._access_token()
        try:
            response = self.session.post(
                f'{self.api_url}{path}',
                json=payload,
                headers={'Authorization': f'Bearer {token}'},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error('PayPal request %s failed: %s', path, e)
            raise ExternalServiceError('PayPal is not responding. Please try again later.') from e
        if not response.ok:
            message = _provider_message(response, 'PayPal request failed')
            logger.error('PayPal %s answered %s: %s', path, response.status_code, message)
            raise ExternalServiceError(message)
        return response.json()

    def create_order(self, amount, description, reference_id=None, currency='USD'):
        purchase_unit = {
            'amount': {'currency_code': currency, 'value': f'{amount:.2f}'},
            'description': description,
        }
        if reference_id is not None:
            purchase_unit['reference_id'] = str(reference_id)
        return self._post('/v2/checkout/orders', {'intent': 'CAPTURE', 'purchase_units': [purchase_unit]})

    def capture_order(self, paypal_order_id):
        return self._post(f'/v2/checkout/orders/{paypal_order_id}/capture')

    def close(self):
        self.session.close()
