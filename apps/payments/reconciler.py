"""
Payment reconciler — keeps Booking and Transaction rows consistent with what
the payment gateway reports. No HTTP/request awareness.

Public API (every call returns an apps.core.results.Result):
  create_payment_order(actor, booking_id, amount=None)
  verify_payment(actor, booking_id, order_id, payment_id, signature)
  handle_webhook(raw_body, signature, event_id='')
  process_refund(actor, transaction_id, amount=None, reason='')

Also used by the webhook view and the replay_webhook_events command:
  record_failed_delivery(raw_body, signature, event_id, error)
  process_event(record)
"""
import json
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.utils import timezone

from apps.bookings.exceptions import BookingNotFoundError
from apps.bookings.models import Booking, BookingStatus, PaymentStatus
from apps.core.exceptions import InvalidInputError
from apps.core.results import returns_result

from .exceptions import InvalidSignatureError, NotEligibleError, TransactionNotFoundError
from .gateway import get_gateway
from .models import (
    REFUND_TYPES,
    Transaction,
    TransactionStatus,
    TransactionType,
    WebhookEvent,
    WebhookStatus,
    from_minor_units,
    to_minor_units,
)
from .signatures import verify_payment_signature, verify_webhook_signature

logger = logging.getLogger(__name__)

EVENT_PAYMENT_CAPTURED = 'payment.captured'
EVENT_PAYMENT_FAILED = 'payment.failed'


# ── Helpers ───────────────────────────────────────────────────────────────────

def _order_handle(txn: Transaction, gateway) -> dict:
    return {
        'order_id': txn.gateway_order_id,
        'amount': to_minor_units(txn.amount),
        'currency': txn.currency,
        'key': gateway.key_id,
        'transaction_id': str(txn.id),
    }


def _lock_payment_transaction(booking: Booking) -> Transaction:
    """The booking's current payment row, created on demand if missing."""
    txn = (
        Transaction.objects
        .select_for_update()
        .filter(booking=booking, transaction_type=TransactionType.PAYMENT)
        .order_by('-created_at')
        .first()
    )
    if txn is None:
        txn = Transaction.objects.create(
            booking=booking,
            amount=booking.amount,
            currency=settings.PAYMENT_CURRENCY,
            transaction_type=TransactionType.PAYMENT,
        )
    return txn


def _refundable_balance(booking_id) -> Decimal:
    """Σ completed payments − Σ completed refunds for one booking."""
    totals = Transaction.objects.filter(booking_id=booking_id).aggregate(
        paid=Sum('amount', filter=Q(
            transaction_type=TransactionType.PAYMENT,
            status__in=[TransactionStatus.COMPLETED, TransactionStatus.REFUNDED],
        )),
        refunded=Sum('amount', filter=Q(
            transaction_type__in=REFUND_TYPES,
            status=TransactionStatus.COMPLETED,
        )),
    )
    return (totals['paid'] or Decimal('0')) - (totals['refunded'] or Decimal('0'))


def _parse_amount(amount, field='amount') -> Decimal:
    try:
        value = Decimal(str(amount))
        if not value.is_finite():
            raise InvalidOperation(amount)
        return value.quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(errors={field: ['Enter a valid amount.']})


# ── Core: Create Order ────────────────────────────────────────────────────────

@returns_result
@transaction.atomic
def create_payment_order(actor, booking_id, amount=None) -> dict:
    """
    Create (or reuse) a gateway order for a PENDING booking.

    The booking row stays locked across the gateway call, so two concurrent
    requests for the same booking cannot both create orders. A retry while the
    Transaction is already PROCESSING returns the existing order handle.
    """
    booking = (
        Booking.objects
        .select_for_update()
        .filter(id=booking_id, requester_id=actor.user_id)
        .first()
    )
    if booking is None:
        raise BookingNotFoundError()
    if booking.status != BookingStatus.PENDING or booking.payment_status == PaymentStatus.PAID:
        raise NotEligibleError('Booking not found or not eligible for payment')

    if amount is not None and _parse_amount(amount) != booking.amount:
        raise InvalidInputError(errors={'amount': ['Amount does not match the booking amount.']})

    gateway = get_gateway()
    txn = _lock_payment_transaction(booking)

    if txn.status == TransactionStatus.PROCESSING and txn.gateway_order_id:
        logger.info('Reusing order %s for booking %s', txn.gateway_order_id, booking.id)
        return _order_handle(txn, gateway)
    if txn.status not in (TransactionStatus.PENDING, TransactionStatus.FAILED):
        raise NotEligibleError()

    order = gateway.create_order(
        amount_minor=to_minor_units(booking.amount),
        currency=txn.currency,
        receipt=f'booking_{booking.id}',
        notes={'booking_id': str(booking.id), 'requester_id': str(actor.user_id)},
    )

    txn.gateway_order_id = order['id']
    txn.gateway_payment_id = None
    txn.failure_reason = ''
    txn.status = TransactionStatus.PROCESSING
    txn.save(update_fields=[
        'gateway_order_id', 'gateway_payment_id', 'failure_reason', 'status', 'updated_at',
    ])

    logger.info('Order %s created for booking %s', order['id'], booking.id)
    return _order_handle(txn, gateway)


# ── Core: Verify ──────────────────────────────────────────────────────────────

@returns_result
@transaction.atomic
def verify_payment(actor, booking_id, order_id, payment_id, signature) -> Booking:
    """
    Client-side checkout confirmation.

    Steps:
      1. HMAC check of "order_id|payment_id" (nothing is read or written on mismatch)
      2. Lock booking + its payment Transaction for this order
      3. Transaction -> COMPLETED with fees; Booking -> CONFIRMED / PAID

    A repeated verify for the same payment returns the booking unchanged.
    """
    if not verify_payment_signature(order_id, payment_id, signature):
        logger.warning('Payment signature mismatch for booking %s (order %s)', booking_id, order_id)
        raise InvalidSignatureError()

    booking = (
        Booking.objects
        .select_for_update()
        .filter(id=booking_id, requester_id=actor.user_id)
        .first()
    )
    if booking is None:
        raise BookingNotFoundError()

    txn = (
        Transaction.objects
        .select_for_update()
        .filter(booking=booking, gateway_order_id=order_id, transaction_type=TransactionType.PAYMENT)
        .first()
    )
    if txn is None:
        raise TransactionNotFoundError()

    if booking.payment_status == PaymentStatus.PAID:
        if txn.status == TransactionStatus.COMPLETED and txn.gateway_payment_id == payment_id:
            logger.info('Payment %s already verified for booking %s', payment_id, booking.id)
            return booking
        raise NotEligibleError('Booking is already paid')
    if booking.status != BookingStatus.PENDING or txn.status == TransactionStatus.REFUNDED:
        raise NotEligibleError()
    if txn.gateway_payment_id and txn.gateway_payment_id != payment_id \
            and txn.status == TransactionStatus.COMPLETED:
        raise NotEligibleError('A different payment was already captured for this order')

    now = timezone.now()
    txn.status = TransactionStatus.COMPLETED
    txn.gateway_payment_id = payment_id
    if not txn.gateway_response:
        txn.gateway_response = {
            'razorpay_order_id': order_id,
            'razorpay_payment_id': payment_id,
            'razorpay_signature': signature,
        }
    # The webhook may have already stamped this
    if txn.processed_at is None:
        txn.processed_at = now
    txn_fields = ['status', 'gateway_payment_id', 'gateway_response', 'processed_at', 'updated_at']
    txn_fields += txn.apply_fees()
    txn.save(update_fields=txn_fields)

    booking_fields = booking.transition_to(
        BookingStatus.CONFIRMED, changed_by=actor.user_id, reason='Payment verified',
    )
    booking.payment_status = PaymentStatus.PAID
    booking.save(update_fields=booking_fields + ['payment_status'])

    logger.info('Payment %s verified; booking %s confirmed', payment_id, booking.id)
    return booking


# ── Core: Webhook ─────────────────────────────────────────────────────────────

def _match_transaction(payment_id, order_id):
    """By gateway payment id first, then by order id (webhook beat verify)."""
    qs = Transaction.objects.select_for_update().filter(transaction_type=TransactionType.PAYMENT)
    txn = qs.filter(gateway_payment_id=payment_id).first()
    if txn is None and order_id:
        txn = qs.filter(gateway_order_id=order_id).first()
    return txn


def _apply_captured(txn: Transaction, entity: dict) -> str:
    if txn.status == TransactionStatus.REFUNDED:
        return WebhookStatus.IGNORED
    if txn.gateway_payment_id and txn.gateway_payment_id != entity['id'] \
            and txn.status == TransactionStatus.COMPLETED:
        logger.error(
            'Second capture %s on order %s already completed by %s',
            entity['id'], txn.gateway_order_id, txn.gateway_payment_id,
        )
        return WebhookStatus.FAILED

    txn.status = TransactionStatus.COMPLETED
    txn.gateway_payment_id = entity['id']
    txn.gateway_response = entity
    if txn.processed_at is None:
        txn.processed_at = timezone.now()
    fields = ['status', 'gateway_payment_id', 'gateway_response', 'processed_at', 'updated_at']
    fee = entity.get('fee')
    fields += txn.apply_fees(gateway_fee=from_minor_units(fee) if fee is not None else None)
    txn.save(update_fields=fields)
    return WebhookStatus.PROCESSED


def _apply_failed(txn: Transaction, entity: dict) -> str:
    # Never downgrade a settled payment
    if txn.status in (TransactionStatus.COMPLETED, TransactionStatus.REFUNDED):
        return WebhookStatus.IGNORED
    txn.status = TransactionStatus.FAILED
    txn.gateway_payment_id = entity['id']
    txn.failure_reason = entity.get('error_description') or ''
    txn.gateway_response = entity
    txn.save(update_fields=[
        'status', 'gateway_payment_id', 'failure_reason', 'gateway_response', 'updated_at',
    ])
    return WebhookStatus.PROCESSED


_EVENT_HANDLERS = {
    EVENT_PAYMENT_CAPTURED: _apply_captured,
    EVENT_PAYMENT_FAILED: _apply_failed,
}


def process_event(record: WebhookEvent) -> WebhookEvent:
    """
    Apply one stored webhook event to the ledger and save its outcome.
    Must run inside a transaction; the caller holds the record's row lock.
    """
    handler = _EVENT_HANDLERS.get(record.event)
    if handler is None:
        record.status = WebhookStatus.IGNORED
        record.save(update_fields=['status', 'attempts', 'updated_at'])
        logger.info('Webhook event %s ignored', record.event)
        return record

    try:
        entity = record.payload['payload']['payment']['entity']
        payment_id = entity['id']
    except (KeyError, TypeError):
        record.status = WebhookStatus.FAILED
        record.last_error = 'Malformed payment entity'
        record.save(update_fields=['status', 'last_error', 'attempts', 'updated_at'])
        logger.error('Webhook %s (%s) has no payment entity', record.event_id, record.event)
        return record

    txn = _match_transaction(payment_id, entity.get('order_id'))
    if txn is None:
        record.status = WebhookStatus.UNMATCHED
        record.last_error = f"No transaction for payment {payment_id} / order {entity.get('order_id')}"
        record.save(update_fields=['status', 'last_error', 'attempts', 'updated_at'])
        logger.warning('Webhook %s unmatched: %s', record.event_id, record.last_error)
        return record

    record.status = handler(txn, entity)
    record.transaction = txn
    record.last_error = '' if record.status != WebhookStatus.FAILED else 'Conflicting capture'
    record.processed_at = timezone.now()
    record.save(update_fields=[
        'status', 'transaction', 'last_error', 'processed_at', 'attempts', 'updated_at',
    ])
    logger.info('Webhook %s %s -> transaction %s [%s]', record.event_id, record.event, txn.id, record.status)
    return record


def _record_event(event_id, event_name, payload):
    """
    Fetch-or-create the ledger row for this delivery, locked.
    Returns (record, is_redelivery_of_settled_event).
    """
    if event_id:
        record = WebhookEvent.objects.select_for_update().filter(event_id=event_id).first()
        if record is None:
            try:
                with transaction.atomic():
                    return WebhookEvent.objects.create(
                        event_id=event_id, event=event_name, payload=payload,
                    ), False
            except IntegrityError:
                # Concurrent delivery of the same event won the insert
                record = WebhookEvent.objects.select_for_update().get(event_id=event_id)
        if record.is_settled:
            return record, True
        record.attempts += 1
        record.payload = payload
        record.save(update_fields=['attempts', 'payload', 'updated_at'])
        return record, False
    return WebhookEvent.objects.create(event=event_name, payload=payload), False


@returns_result
@transaction.atomic
def handle_webhook(raw_body: bytes, signature: str, event_id='') -> WebhookEvent:
    """
    Ingest one signed gateway notification.

    Idempotent: updates are assignments keyed by gateway payment id, and an
    event id already settled is acknowledged without re-applying. Events that
    match no Transaction are stored as UNMATCHED for replay.
    """
    if not verify_webhook_signature(raw_body, signature):
        logger.warning('Webhook signature verification failed (%d byte body)', len(raw_body))
        raise InvalidSignatureError('Invalid webhook signature')

    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidInputError('Webhook body must be valid JSON')
    if not isinstance(payload, dict):
        raise InvalidInputError('Webhook body must be a JSON object')

    event_id = event_id or payload.get('id') or None
    record, settled = _record_event(event_id, payload.get('event', ''), payload)
    if settled:
        logger.info('Webhook event %s already processed — skipping.', event_id)
        return record
    return process_event(record)


@transaction.atomic
def record_failed_delivery(raw_body: bytes, signature: str, event_id='', error=''):
    """
    Store a signed delivery whose processing crashed as a FAILED dead letter,
    so replay_webhook_events picks it up. Returns None when the body is not a
    signed JSON object.
    """
    if not verify_webhook_signature(raw_body, signature):
        return None
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(payload, dict):
        return None

    event_id = event_id or payload.get('id') or None
    record, settled = _record_event(event_id, payload.get('event', ''), payload)
    if settled:
        return record
    record.status = WebhookStatus.FAILED
    record.last_error = str(error) or 'Unexpected processing error'
    record.save(update_fields=['status', 'last_error', 'updated_at'])
    logger.warning('Webhook %s (%s) dead-lettered after error: %s', record.event_id, record.event, error)
    return record


# ── Core: Refund ──────────────────────────────────────────────────────────────

@returns_result
@transaction.atomic
def process_refund(actor, transaction_id, amount=None, reason='') -> dict:
    """
    Refund a completed payment, fully or partially.

    Steps (single transaction; a gateway failure rolls everything back):
      1. Lock the original payment Transaction and its Booking
      2. Check amount against the original and the booking's refundable balance
      3. gateway.refund()
      4. Insert refund Transaction; original -> REFUNDED; Booking -> REFUNDED
    """
    original = (
        Transaction.objects
        .select_for_update()
        .filter(id=transaction_id, transaction_type=TransactionType.PAYMENT)
        .first()
    )
    if original is None:
        raise TransactionNotFoundError()
    booking = Booking.objects.select_for_update().get(id=original.booking_id)
    if not (booking.is_party(actor.user_id) or actor.is_admin):
        raise TransactionNotFoundError()
    if original.status != TransactionStatus.COMPLETED:
        raise NotEligibleError('Transaction not eligible for refund')

    refund_amount = original.amount if amount is None else _parse_amount(amount)
    if refund_amount <= 0:
        raise NotEligibleError('Refund amount must be greater than zero')
    if refund_amount > original.amount or refund_amount > _refundable_balance(booking.id):
        raise NotEligibleError('Refund amount exceeds the refundable balance')

    refund = get_gateway().refund(
        payment_id=original.gateway_payment_id,
        amount_minor=to_minor_units(refund_amount),
        notes={'reason': reason, 'transaction_id': str(original.id)},
    )

    now = timezone.now()
    refund_type = (
        TransactionType.REFUND if refund_amount == original.amount
        else TransactionType.PARTIAL_REFUND
    )
    Transaction.objects.create(
        booking=booking,
        amount=refund_amount,
        currency=original.currency,
        payment_provider=original.payment_provider,
        gateway_payment_id=original.gateway_payment_id,
        gateway_transaction_id=refund['id'],
        status=TransactionStatus.COMPLETED,
        transaction_type=refund_type,
        processed_at=now,
        gateway_response=refund,
        refund_reason=reason,
    )

    original.status = TransactionStatus.REFUNDED
    original.refunded_at = now
    original.refund_amount = refund_amount
    original.refund_reason = reason
    original.save(update_fields=[
        'status', 'refunded_at', 'refund_amount', 'refund_reason', 'updated_at',
    ])

    booking.save(update_fields=booking.mark_refunded(changed_by=actor.user_id, reason=reason))

    logger.info('Refund %s of ₹%s issued for transaction %s', refund['id'], refund_amount, original.id)
    return {'refund_id': refund['id'], 'amount': refund_amount}
