"""
Tests for gateway webhook ingestion and the dead-letter replay path.
"""
from decimal import Decimal

import pytest
from django.core.management import call_command

from apps.core.exceptions import InvalidInputError
from apps.payments import reconciler
from apps.payments.exceptions import InvalidSignatureError
from apps.payments.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
    WebhookEvent,
    WebhookStatus,
)
from tests.conftest import sign_webhook, webhook_body

pytestmark = pytest.mark.django_db


def deliver(body, event_id=''):
    return reconciler.handle_webhook(body, sign_webhook(body), event_id=event_id)


@pytest.fixture
def order(booking, requester, actor_for):
    return reconciler.create_payment_order(actor_for(requester), booking.id).unwrap()


class TestSignature:
    """Webhook signature and body checks"""

    def test_bad_signature_rejected_without_writes(self, order):
        body = webhook_body('payment.captured', 'pay_1', order['order_id'])

        result = reconciler.handle_webhook(body, 'deadbeef')

        assert isinstance(result.error, InvalidSignatureError)
        assert not WebhookEvent.objects.exists()
        assert Transaction.objects.get(gateway_order_id=order['order_id']).status == TransactionStatus.PROCESSING

    def test_non_ascii_signature_rejected(self, order):
        body = webhook_body('payment.captured', 'pay_1', order['order_id'])

        result = reconciler.handle_webhook(body, 'sigé')

        assert isinstance(result.error, InvalidSignatureError)
        assert not WebhookEvent.objects.exists()

    def test_malformed_json(self):
        body = b'{not json'

        result = deliver(body)

        assert isinstance(result.error, InvalidInputError)

    def test_unknown_event_is_ignored(self):
        body = webhook_body('order.paid', 'pay_1', 'order_1')

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.IGNORED


class TestPaymentCaptured:
    """payment.captured"""

    def test_matches_by_order_id_before_verify(self, booking, order):
        body = webhook_body('payment.captured', 'pay_race', order['order_id'], fee=3540)

        record = deliver(body, event_id='evt_1').unwrap()

        assert record.status == WebhookStatus.PROCESSED
        txn = Transaction.objects.get(booking=booking)
        assert record.transaction_id == txn.id
        assert txn.status == TransactionStatus.COMPLETED
        assert txn.gateway_payment_id == 'pay_race'
        assert txn.gateway_fee == Decimal('35.40')
        assert txn.platform_fee == Decimal('150.00')
        assert txn.net_amount == Decimal('1314.60')
        assert txn.processed_at is not None

    def test_duplicate_delivery_leaves_one_completed_row(self, booking, order):
        body = webhook_body('payment.captured', 'pay_dup', order['order_id'])

        deliver(body).unwrap()
        first = Transaction.objects.get(gateway_payment_id='pay_dup')
        deliver(body).unwrap()

        rows = Transaction.objects.filter(gateway_payment_id='pay_dup', transaction_type=TransactionType.PAYMENT)
        assert rows.count() == 1
        row = rows.get()
        assert row.status == TransactionStatus.COMPLETED
        assert row.processed_at == first.processed_at

    def test_settled_event_id_is_not_reapplied(self, order):
        body = webhook_body('payment.captured', 'pay_once', order['order_id'], event_id='evt_once')

        deliver(body).unwrap()
        again = deliver(body).unwrap()

        assert again.status == WebhookStatus.PROCESSED
        assert again.attempts == 1
        assert WebhookEvent.objects.filter(event_id='evt_once').count() == 1

    def test_event_id_header_takes_precedence(self, order):
        body = webhook_body('payment.captured', 'pay_hdr', order['order_id'], event_id='evt_body')

        record = deliver(body, event_id='evt_header').unwrap()

        assert record.event_id == 'evt_header'

    def test_refunded_transaction_is_not_downgraded(self, booking, order):
        txn = Transaction.objects.get(booking=booking)
        Transaction.objects.filter(pk=txn.pk).update(
            status=TransactionStatus.REFUNDED, gateway_payment_id='pay_r',
        )
        body = webhook_body('payment.captured', 'pay_r', order['order_id'])

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.IGNORED
        assert Transaction.objects.get(pk=txn.pk).status == TransactionStatus.REFUNDED


class TestPaymentFailed:
    """payment.failed"""

    def test_marks_transaction_failed(self, booking, order):
        body = webhook_body(
            'payment.failed', 'pay_fail', order['order_id'],
            error_description='Card declined by bank',
        )

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.PROCESSED
        txn = Transaction.objects.get(booking=booking)
        assert txn.status == TransactionStatus.FAILED
        assert txn.failure_reason == 'Card declined by bank'

    def test_failed_after_capture_is_ignored(self, booking, order):
        deliver(webhook_body('payment.captured', 'pay_ok', order['order_id'])).unwrap()

        record = deliver(webhook_body('payment.failed', 'pay_ok', order['order_id'])).unwrap()

        assert record.status == WebhookStatus.IGNORED
        assert Transaction.objects.get(booking=booking).status == TransactionStatus.COMPLETED

    def test_failed_payment_allows_a_new_order(self, booking, requester, actor_for, order):
        deliver(webhook_body('payment.failed', 'pay_fail', order['order_id'])).unwrap()

        retry = reconciler.create_payment_order(actor_for(requester), booking.id).unwrap()

        assert retry['order_id'] != order['order_id']
        assert Transaction.objects.get(booking=booking).status == TransactionStatus.PROCESSING


class TestDeadLetters:
    """Unmatched events are stored and replayed."""

    def test_unmatched_event_is_recorded(self):
        body = webhook_body('payment.captured', 'pay_ghost', 'order_ghost', event_id='evt_ghost')

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.UNMATCHED
        assert 'pay_ghost' in record.last_error

    def test_malformed_entity_is_recorded_as_failed(self):
        body = b'{"event": "payment.captured", "payload": {}}'

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.FAILED

    def test_redelivery_of_unmatched_event_retries(self, booking):
        body = webhook_body('payment.captured', 'pay_late', 'order_late', event_id='evt_late')
        deliver(body).unwrap()
        Transaction.objects.filter(booking=booking).update(
            gateway_order_id='order_late', status=TransactionStatus.PROCESSING,
        )

        record = deliver(body).unwrap()

        assert record.status == WebhookStatus.PROCESSED
        assert record.attempts == 2

    def test_replay_command_applies_dead_letters(self, booking):
        deliver(webhook_body('payment.captured', 'pay_late', 'order_late', event_id='evt_late')).unwrap()
        Transaction.objects.filter(booking=booking).update(
            gateway_order_id='order_late', status=TransactionStatus.PROCESSING,
        )

        call_command('replay_webhook_events')

        record = WebhookEvent.objects.get(event_id='evt_late')
        assert record.status == WebhookStatus.PROCESSED
        assert record.attempts == 2
        assert Transaction.objects.get(booking=booking).status == TransactionStatus.COMPLETED

    def test_replay_respects_max_attempts(self):
        deliver(webhook_body('payment.captured', 'pay_x', 'order_x', event_id='evt_x')).unwrap()
        WebhookEvent.objects.filter(event_id='evt_x').update(attempts=5)

        call_command('replay_webhook_events', max_attempts=5)

        assert WebhookEvent.objects.get(event_id='evt_x').attempts == 5
