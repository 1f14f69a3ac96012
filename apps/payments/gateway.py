"""
Payment gateway seam.

The concrete gateway is chosen once from settings.PAYMENT_GATEWAY (a dotted
path) and cached for the life of the process. Business logic only ever talks
to the PaymentGateway interface.

  RazorpayGateway  real Razorpay orders/refunds via the razorpay SDK
  MockGateway      offline stand-in for development and tests
"""
import logging
import uuid
from functools import lru_cache

import razorpay
from razorpay import errors as razorpay_errors
import requests
from django.conf import settings
from django.utils.module_loading import import_string

from apps.core.exceptions import GatewayError

logger = logging.getLogger(__name__)


class PaymentGateway:
    """Interface every gateway implements."""
    key_id = ''

    def create_order(self, amount_minor: int, currency: str, receipt: str, notes: dict) -> dict:
        """Return at least {'id', 'amount', 'currency'}."""
        raise NotImplementedError

    def refund(self, payment_id: str, amount_minor: int, notes: dict) -> dict:
        """Return at least {'id', 'amount'}."""
        raise NotImplementedError


class TimeoutSession(requests.Session):
    """requests session that applies a default timeout to every call."""

    def __init__(self, timeout):
        super().__init__()
        self.timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault('timeout', self.timeout)
        return super().request(method, url, **kwargs)


class RazorpayGateway(PaymentGateway):

    def __init__(self):
        self.key_id = settings.RAZORPAY_KEY_ID
        self.client = razorpay.Client(
            auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET),
            session=TimeoutSession(settings.PAYMENT_GATEWAY_TIMEOUT),
        )

    def create_order(self, amount_minor, currency, receipt, notes):
        return self._call(self.client.order.create, {
            'amount': amount_minor,
            'currency': currency,
            'receipt': receipt,
            'notes': notes,
            'payment_capture': 1,
        })

    def refund(self, payment_id, amount_minor, notes):
        return self._call(self.client.payment.refund, payment_id, {
            'amount': amount_minor,
            'notes': notes,
        })

    def _call(self, func, *args):
        try:
            return func(*args)
        except (
            razorpay_errors.BadRequestError,
            razorpay_errors.GatewayError,
            razorpay_errors.ServerError,
            requests.RequestException,
        ) as exc:
            # Gateway payloads stay in the log, never in the client-facing message
            logger.error('Razorpay call %s failed: %s', func.__qualname__, exc)
            raise GatewayError() from exc


class MockGateway(PaymentGateway):
    """Issues fake order/refund ids without any network traffic."""

    def __init__(self):
        self.key_id = settings.RAZORPAY_KEY_ID or 'rzp_test_mock'

    def create_order(self, amount_minor, currency, receipt, notes):
        order_id = f'order_mock_{uuid.uuid4().hex[:14]}'
        logger.info('Mock order %s created for receipt %s', order_id, receipt)
        return {
            'id': order_id,
            'entity': 'order',
            'amount': amount_minor,
            'currency': currency,
            'receipt': receipt,
            'status': 'created',
            'notes': notes,
        }

    def refund(self, payment_id, amount_minor, notes):
        refund_id = f'rfnd_mock_{uuid.uuid4().hex[:14]}'
        logger.info('Mock refund %s issued for payment %s', refund_id, payment_id)
        return {
            'id': refund_id,
            'entity': 'refund',
            'amount': amount_minor,
            'payment_id': payment_id,
            'status': 'processed',
            'notes': notes,
        }


@lru_cache(maxsize=None)
def get_gateway() -> PaymentGateway:
    gateway = import_string(settings.PAYMENT_GATEWAY)()
    logger.info('Payment gateway: %s', type(gateway).__name__)
    return gateway
