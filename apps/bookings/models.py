"""
Bookings app models:
  - Booking          : Core booking record with state machine
  - BookingStatusLog : Full audit trail of state transitions
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from apps.core.models import BaseModel, UUIDModel

from .exceptions import ImmutableFieldError, InvalidTransitionError


# ── Booking State Machine ─────────────────────────────────────────────────────

class BookingStatus(models.TextChoices):
    PENDING     = 'pending',     'Pending'
    CONFIRMED   = 'confirmed',   'Confirmed'
    IN_PROGRESS = 'in_progress', 'In Progress'
    COMPLETED   = 'completed',   'Completed'
    CANCELLED   = 'cancelled',   'Cancelled'
    REFUNDED    = 'refunded',    'Refunded'


class PaymentStatus(models.TextChoices):
    PENDING  = 'pending',  'Pending'
    PAID     = 'paid',     'Paid'
    FAILED   = 'failed',   'Failed'
    REFUNDED = 'refunded', 'Refunded'


class MaterialsProvidedBy(models.TextChoices):
    REQUESTER = 'devotee', 'Devotee'
    PROVIDER  = 'poojari', 'Poojari'
    BOTH      = 'both',    'Both'


class CancelledBy(models.TextChoices):
    REQUESTER     = 'requester',     'Requester'
    PROVIDER      = 'provider',      'Provider'
    ADMINISTRATOR = 'administrator', 'Administrator'


# Statuses that hold the (provider, date, time) slot
ACTIVE_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.IN_PROGRESS,
)

FINAL_STATUSES = (
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REFUNDED,
)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING:     {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED:   {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED:   set(),
    BookingStatus.CANCELLED:   set(),
    BookingStatus.REFUNDED:    set(),
}


class Booking(BaseModel):
    """
    Core booking record. Created by the requester in PENDING state.
    Status transitions go through transition_to() — not direct field writes.
    Never physically deleted: cancellation is a state.
    """
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bookings_made',
    )
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='bookings_received',
    )

    service_type = models.CharField(max_length=120)
    service_description = models.TextField(blank=True)
    scheduled_date = models.DateField(db_index=True)
    scheduled_time = models.TimeField()
    duration_hours = models.DecimalField(
        max_digits=3, decimal_places=1, default=1,
        validators=[MinValueValidator(Decimal('0.1'))],
    )
    amount = models.DecimalField(
        max_digits=10, decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text='Fixed at creation time; never updated.',
    )

    status = models.CharField(
        max_length=20, choices=BookingStatus.choices,
        default=BookingStatus.PENDING, db_index=True,
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING, db_index=True,
    )

    # Location
    address = models.TextField()
    city = models.CharField(max_length=100)
    state = models.CharField(max_length=100)
    pincode = models.CharField(max_length=6)
    latitude = models.DecimalField(max_digits=10, decimal_places=8, null=True, blank=True)
    longitude = models.DecimalField(max_digits=11, decimal_places=8, null=True, blank=True)

    # Materials
    special_requirements = models.TextField(blank=True)
    materials_required = models.JSONField(default=list, blank=True)
    materials_provided_by = models.CharField(
        max_length=10, choices=MaterialsProvidedBy.choices,
        default=MaterialsProvidedBy.REQUESTER,
    )

    # Contact & notes
    contact_phone = models.CharField(max_length=20)
    alternate_phone = models.CharField(max_length=20, blank=True)
    booking_notes = models.TextField(blank=True)
    provider_notes = models.TextField(blank=True)

    # Cancellation
    cancellation_reason = models.TextField(blank=True)
    cancelled_by = models.CharField(max_length=15, choices=CancelledBy.choices, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    reminder_sent = models.BooleanField(default=False)

    class Meta:
        verbose_name = 'Booking'
        verbose_name_plural = 'Bookings'
        ordering = ['-scheduled_date', '-scheduled_time']
        indexes = [
            models.Index(fields=['city', 'state'], name='booking_city_state_idx'),
        ]
        # DB-level guard: one active booking per provider+date+time
        constraints = [
            models.UniqueConstraint(
                fields=['provider', 'scheduled_date', 'scheduled_time'],
                condition=models.Q(status__in=['pending', 'confirmed', 'in_progress']),
                name='uq_active_booking_slot',
            )
        ]

    def __str__(self):
        return (
            f"#{self.id_short} | {self.service_type} | "
            f"{self.scheduled_date} {self.scheduled_time} [{self.status}]"
        )

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_amount = instance.__dict__.get('amount')
        return instance

    def save(self, *args, **kwargs):
        loaded = getattr(self, '_loaded_amount', None)
        if loaded is not None and self.amount != loaded:
            raise ImmutableFieldError('Booking amount cannot be changed after creation.')
        super().save(*args, **kwargs)
        self._loaded_amount = self.amount

    @property
    def id_short(self):
        """Returns the first 8 chars of UUID in uppercase."""
        return str(self.id)[:8].upper()

    @property
    def is_final(self):
        return self.status in FINAL_STATUSES

    def is_party(self, user_id) -> bool:
        return user_id in (self.requester_id, self.provider_id)

    # ── State transition helpers ──────────────────────────────────────────────

    def can_transition_to(self, new_status) -> bool:
        return new_status in ALLOWED_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status, changed_by, reason='') -> list:
        """
        Move along an edge of ALLOWED_TRANSITIONS, stamping confirmed_at /
        completed_at. Does not save; returns the fields the caller must save.
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(self.status, new_status)
        fields = self._transition(new_status, changed_by, reason)
        now = timezone.now()
        if new_status == BookingStatus.CONFIRMED:
            self.confirmed_at = now
            fields.append('confirmed_at')
        elif new_status == BookingStatus.COMPLETED:
            self.completed_at = now
            fields.append('completed_at')
        return fields

    def mark_refunded(self, changed_by, reason='') -> list:
        """Refunds end the booking from any state."""
        fields = self._transition(BookingStatus.REFUNDED, changed_by, reason)
        self.payment_status = PaymentStatus.REFUNDED
        return fields + ['payment_status']

    def _transition(self, new_status, changed_by, reason=''):
        old_status = self.status
        self.status = new_status
        BookingStatusLog.objects.create(
            booking=self,
            from_status=old_status,
            to_status=new_status,
            changed_by=str(changed_by),
            reason=reason,
        )
        return ['status', 'updated_at']


# ── Booking Audit Log ─────────────────────────────────────────────────────────

class BookingStatusLog(UUIDModel):
    """Immutable audit trail of every status transition on a booking."""
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='status_logs')
    from_status = models.CharField(max_length=20, choices=BookingStatus.choices, blank=True)
    to_status = models.CharField(max_length=20, choices=BookingStatus.choices)
    changed_by = models.CharField(max_length=80, help_text='user id / system / webhook')
    reason = models.TextField(blank=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = 'Booking Status Log'
        verbose_name_plural = 'Booking Status Logs'
        ordering = ['changed_at']

    def __str__(self):
        return f"Booking {str(self.booking_id)[:8]}: {self.from_status} → {self.to_status}"
