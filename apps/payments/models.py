"""
Payment ledger models:
  - Transaction  : one row per money movement (payment, refund, partial refund)
  - WebhookEvent : gateway notifications, processed-event ledger + dead letters

Null-safety note on unique fields:
  PostgreSQL UNIQUE constraints treat every NULL as distinct. Gateway ids are
  only populated once the gateway has issued them, so uniqueness is declared
  as conditional UniqueConstraints in Meta.constraints (NULL-safe) instead of
  field-level unique=True.
"""
from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from apps.core.models import BaseModel
from apps.bookings.models import Booking

TWO_PLACES = Decimal('0.01')


class PaymentProvider(models.TextChoices):
    RAZORPAY = 'razorpay', 'Razorpay'
    PAYTM    = 'paytm',    'Paytm'
    PHONEPE  = 'phonepe',  'PhonePe'
    GPAY     = 'gpay',     'Google Pay'
    CASH     = 'cash',     'Cash'


class TransactionStatus(models.TextChoices):
    PENDING    = 'pending',    'Pending'
    PROCESSING = 'processing', 'Processing'
    COMPLETED  = 'completed',  'Completed'
    FAILED     = 'failed',     'Failed'
    CANCELLED  = 'cancelled',  'Cancelled'
    REFUNDED   = 'refunded',   'Refunded'


class TransactionType(models.TextChoices):
    PAYMENT        = 'payment',        'Payment'
    REFUND         = 'refund',         'Refund'
    PARTIAL_REFUND = 'partial_refund', 'Partial Refund'


REFUND_TYPES = (TransactionType.REFUND, TransactionType.PARTIAL_REFUND)


def to_minor_units(amount: Decimal) -> int:
    """Rupees -> paise, rounding half up."""
    return int((Decimal(amount) * 100).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor) -> Decimal:
    return (Decimal(amount_minor or 0) / 100).quantize(TWO_PLACES)


class Transaction(BaseModel):
    """
    A payment Transaction is created PENDING alongside its Booking, moves to
    PROCESSING once a gateway order exists, and COMPLETED on verify/webhook.
    Refunds are separate rows pointing at the same booking.
    """
    booking = models.ForeignKey(Booking, on_delete=models.PROTECT, related_name='transactions')
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    currency = models.CharField(max_length=3, default='INR')
    payment_provider = models.CharField(
        max_length=10, choices=PaymentProvider.choices, default=PaymentProvider.RAZORPAY,
    )

    gateway_order_id = models.CharField(max_length=100, blank=True, null=True)
    # nullable because it is only populated after the gateway confirms the payment
    gateway_payment_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    gateway_transaction_id = models.CharField(max_length=100, blank=True, null=True)

    status = models.CharField(
        max_length=12, choices=TransactionStatus.choices,
        default=TransactionStatus.PENDING, db_index=True,
    )
    transaction_type = models.CharField(
        max_length=15, choices=TransactionType.choices, default=TransactionType.PAYMENT,
    )
    gateway_response = models.JSONField(null=True, blank=True)
    failure_reason = models.TextField(blank=True)

    processed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    refund_reason = models.TextField(blank=True)

    platform_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    gateway_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    net_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    class Meta:
        verbose_name = 'Transaction'
        verbose_name_plural = 'Transactions'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['gateway_order_id'],
                condition=models.Q(gateway_order_id__isnull=False),
                name='uq_transaction_gateway_order_id',
            ),
            # Webhook idempotency key: one payment row per gateway payment id
            models.UniqueConstraint(
                fields=['gateway_payment_id'],
                condition=models.Q(gateway_payment_id__isnull=False, transaction_type='payment'),
                name='uq_transaction_gateway_payment_id',
            ),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} {str(self.id)[:8]} [{self.status}] — ₹{self.amount}"

    def apply_fees(self, gateway_fee=None) -> list:
        """
        platform_fee = amount × PLATFORM_FEE_PERCENT / 100
        net_amount   = amount − platform_fee − gateway_fee
        Returns the fields the caller must save.
        """
        if gateway_fee is not None:
            self.gateway_fee = Decimal(gateway_fee).quantize(TWO_PLACES)
        percent = Decimal(str(settings.PLATFORM_FEE_PERCENT))
        self.platform_fee = (self.amount * percent / 100).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        self.net_amount = self.amount - self.platform_fee - self.gateway_fee
        return ['platform_fee', 'gateway_fee', 'net_amount']


class WebhookStatus(models.TextChoices):
    PROCESSED = 'processed', 'Processed'
    IGNORED   = 'ignored',   'Ignored'
    UNMATCHED = 'unmatched', 'Unmatched'
    FAILED    = 'failed',    'Failed'


# Events that will never change outcome on retry
SETTLED_WEBHOOK_STATUSES = (WebhookStatus.PROCESSED, WebhookStatus.IGNORED)


class WebhookEvent(BaseModel):
    """
    Every signed gateway notification we accepted.
    UNMATCHED / FAILED rows are dead letters; replay_webhook_events retries them.
    """
    event_id = models.CharField(max_length=100, blank=True, null=True)
    event = models.CharField(max_length=60, db_index=True)
    payload = models.JSONField()
    status = models.CharField(
        max_length=10, choices=WebhookStatus.choices, default=WebhookStatus.UNMATCHED, db_index=True,
    )
    transaction = models.ForeignKey(
        Transaction, on_delete=models.SET_NULL, null=True, blank=True, related_name='webhook_events',
    )
    attempts = models.PositiveIntegerField(default=1)
    last_error = models.TextField(blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = 'Webhook Event'
        verbose_name_plural = 'Webhook Events'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['event_id'],
                condition=models.Q(event_id__isnull=False),
                name='uq_webhook_event_id',
            ),
        ]

    def __str__(self):
        return f"{self.event} {self.event_id or '-'} [{self.status}]"

    @property
    def is_settled(self):
        return self.status in SETTLED_WEBHOOK_STATUSES
