import logging
import random
import re
import string
import time

import requests

from app.errors import ExternalServiceError
from app.utils import mask_mobile_number

logger = logging.getLogger(__name__)

SEPARATORS = re.compile(r'[\s\-()]')
DRC_NUMBER = re.compile(r'^(243[0-9]{9}|0[0-9]{9})$')

UNKNOWN_OPERATOR = 'Unknown Operator'

# Three digits after the 243 country code
OPERATOR_PREFIXES = {
    **{str(prefix): 'Airtel Money' for prefix in range(810, 820)},
    **{str(prefix): 'Orange Money' for prefix in range(820, 830)},
    **{str(prefix): 'M-PESA' for prefix in range(970, 980)},
    **{str(prefix): 'AfriMoney' for prefix in range(900, 910)},
}


def _random_suffix(length=5):
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))


def clean_number(mobile_number):
    return SEPARATORS.sub('', mobile_number or '')


def validate_mobile_number(mobile_number):
    """DRC numbers: 243 followed by 9 digits, or a local 0 followed by 9 digits."""
    return bool(DRC_NUMBER.match(clean_number(mobile_number)))


def format_mobile_number(mobile_number):
    number = clean_number(mobile_number)
    if number.startswith('0'):
        return '243' + number[1:]
    return number


def get_mobile_operator(mobile_number):
    prefix = format_mobile_number(mobile_number)[3:6]
    return OPERATOR_PREFIXES.get(prefix, UNKNOWN_OPERATOR)


def new_reference():
    return f'PMStreaming_{int(time.time() * 1000)}_{_random_suffix()}'


class KelpayService:
    """KELPAY mobile-money gateway. Runs in mock mode without credentials."""

    def __init__(self, api_url, merchant_code=None, token=None, callback_url=None, timeout=30):
        self.api_url = api_url.rstrip('/')
        self.merchant_code = merchant_code
        self.token = token
        self.callback_url = callback_url
        self.timeout = timeout
        self.session = requests.Session()
        if self.is_mock:
            logger.warning('KELPAY credentials not configured - using mock mode')

    @property
    def is_mock(self):
        return not self.merchant_code or not self.token

    def request_payment(self, mobile_number, amount, currency, description, reference):
        logger.info('Requesting KELPAY payment: reference=%s amount=%s %s mobile=%s',
                    reference, amount, currency, mask_mobile_number(mobile_number))

        if self.is_mock:
            return {
                'code': '0',
                'description': 'Payment request received (MOCK)',
                'reference': reference,
                'transactionid': f'MOCK_TXN_{int(time.time() * 1000)}_{_random_suffix()}',
            }

        request_data = {
            'merchantcode': self.merchant_code,
            'mobilenumber': mobile_number,
            'reference': reference,
            'amount': str(amount),
            'currency': currency,
            'description': description,
            'callbackurl': self.callback_url,
        }
        try:
            response = self.session.post(
                f'{self.api_url}/payment.asp',
                json=request_data,
                headers={'Authorization': f'Bearer {self.token}'},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error('KELPAY payment request failed: reference=%s error=%s', reference, e)
            raise ExternalServiceError('KELPAY API is not responding. Please try again later.') from e

        if not response.ok:
            try:
                description = response.json().get('description')
            except ValueError:
                description = None
            logger.error('KELPAY payment request failed: reference=%s status=%s', reference, response.status_code)
            raise ExternalServiceError(f'KELPAY API Error: {description or response.reason}')

        try:
            data = response.json()
        except ValueError as e:
            logger.error('KELPAY returned a non-JSON reply: reference=%s', reference)
            raise ExternalServiceError('KELPAY API Error: unreadable response') from e
        logger.info('KELPAY payment response received: reference=%s code=%s transaction=%s',
                    reference, data.get('code'), data.get('transactionid'))
        if str(data.get('code')) != '0' or not data.get('transactionid'):
            raise ExternalServiceError(f"KELPAY API Error: {data.get('description') or 'payment request refused'}")
        return data

    def close(self):
        self.session.close()
