"""
Booking engine — pure business logic, no HTTP/request awareness.

Public API (every call returns an apps.core.results.Result):
  create_booking(actor, provider_id, details)
  update_booking_status(actor, booking_id, new_status, notes=None)
  cancel_booking(actor, booking_id, reason)
  get_provider_dashboard(provider_id)
  list_bookings(actor, status=None, page=1, limit=10)
  get_booking(actor, booking_id)
"""
import logging
from contextlib import contextmanager
from decimal import Decimal

from django.core.paginator import Paginator
from django.db import IntegrityError, connection, transaction
from django.db.models import Count, F, Q, Sum
from django.utils import timezone

from apps.accounts.models import Role
from apps.core.exceptions import ForbiddenError, InvalidInputError
from apps.core.results import returns_result
from apps.payments.models import (
    Transaction,
    TransactionStatus,
    TransactionType,
)
from apps.providers.models import ProviderProfile

from .exceptions import (
    AlreadyFinalError,
    BookingNotFoundError,
    ProviderUnavailableError,
    SlotConflictError,
)
from .models import (
    ACTIVE_STATUSES,
    Booking,
    BookingStatus,
    CancelledBy,
)

logger = logging.getLogger(__name__)

# Fields a requester may set when creating a booking
BOOKING_DETAIL_FIELDS = (
    'service_type', 'service_description', 'scheduled_date', 'scheduled_time',
    'duration_hours', 'amount', 'address', 'city', 'state', 'pincode',
    'latitude', 'longitude', 'special_requirements', 'materials_required',
    'materials_provided_by', 'contact_phone', 'alternate_phone', 'booking_notes',
)

REQUIRED_DETAIL_FIELDS = (
    'service_type', 'scheduled_date', 'scheduled_time', 'amount',
    'address', 'city', 'state', 'pincode', 'contact_phone',
)

UPCOMING_LIMIT = 5


# ── Lookup helpers ────────────────────────────────────────────────────────────

def _lock_bookable_provider(provider_id) -> ProviderProfile:
    """
    Lock the provider's profile row. Concurrent creates for the same provider
    queue behind this lock, so the slot check below sees committed rivals.
    """
    profile = (
        ProviderProfile.objects
        .select_for_update(of=('self',))
        .select_related('user')
        .filter(
            user_id=provider_id,
            user__role=Role.PROVIDER,
            user__is_active=True,
            is_available=True,
            is_verified=True,
        )
        .first()
    )
    if profile is None:
        raise ProviderUnavailableError()
    return profile


def _slot_holders(provider_id, scheduled_date, scheduled_time):
    # Plain read: callers hold the provider profile lock, and
    # update_booking_status locks the booking row before the profile row
    return Booking.objects.filter(
        provider_id=provider_id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        status__in=ACTIVE_STATUSES,
    )


def _find_active_booking(provider_id, scheduled_date, scheduled_time):
    return _slot_holders(provider_id, scheduled_date, scheduled_time).first()


def _lock_booking(booking_id) -> Booking:
    booking = Booking.objects.select_for_update().filter(id=booking_id).first()
    if booking is None:
        raise BookingNotFoundError()
    return booking


def _validate_details(details: dict) -> dict:
    data = {k: v for k, v in details.items() if k in BOOKING_DETAIL_FIELDS and v is not None}
    errors = {}
    for name in REQUIRED_DETAIL_FIELDS:
        if data.get(name) in (None, ''):
            errors[name] = ['This field is required.']
    if 'amount' in data and Decimal(data['amount']) < 0:
        errors['amount'] = ['Amount must not be negative.']
    if 'duration_hours' in data and Decimal(data['duration_hours']) <= 0:
        errors['duration_hours'] = ['Duration must be greater than zero.']
    if errors:
        raise InvalidInputError(errors=errors)
    return data


def _cancelled_by(booking: Booking, actor) -> str:
    if actor.user_id == booking.requester_id:
        return CancelledBy.REQUESTER
    if actor.user_id == booking.provider_id:
        return CancelledBy.PROVIDER
    return CancelledBy.ADMINISTRATOR


def _stamp_cancellation(booking: Booking, actor, reason: str) -> list:
    booking.cancellation_reason = reason or ''
    booking.cancelled_by = _cancelled_by(booking, actor)
    booking.cancelled_at = timezone.now()
    return ['cancellation_reason', 'cancelled_by', 'cancelled_at']


@contextmanager
def _consistent_read():
    """
    One transaction for a group of reads. On PostgreSQL the transaction is
    REPEATABLE READ so every query sees the same snapshot.
    """
    outermost = not connection.in_atomic_block
    with transaction.atomic():
        if outermost and connection.vendor == 'postgresql':
            with connection.cursor() as cursor:
                cursor.execute('SET TRANSACTION ISOLATION LEVEL REPEATABLE READ')
        yield


# ── Core: Booking Creation ────────────────────────────────────────────────────

@returns_result
@transaction.atomic
def create_booking(actor, provider_id, details: dict) -> Booking:
    """
    Create a PENDING booking plus its placeholder payment Transaction.

    Steps (single transaction):
      1. Lock the provider profile; it must be active, available and verified
      2. Check no active booking holds (provider, date, time)
      3. Insert Booking and pending Transaction

    Raises:
      ProviderUnavailableError — provider missing or not bookable
      SlotConflictError        — slot already held (pre-check or unique constraint)
      InvalidInputError        — missing/invalid details, or self-booking
    """
    if str(actor.user_id) == str(provider_id):
        raise InvalidInputError(errors={'provider_id': ['You cannot book yourself.']})

    data = _validate_details(details)
    _lock_bookable_provider(provider_id)

    if _find_active_booking(provider_id, data['scheduled_date'], data['scheduled_time']):
        raise SlotConflictError()

    try:
        # Savepoint: a constraint violation must not poison the outer transaction
        with transaction.atomic():
            booking = Booking.objects.create(
                requester_id=actor.user_id,
                provider_id=provider_id,
                status=BookingStatus.PENDING,
                **data,
            )
    except IntegrityError:
        logger.info(
            'Slot race lost for provider %s at %s %s',
            provider_id, data['scheduled_date'], data['scheduled_time'],
        )
        raise SlotConflictError()

    Transaction.objects.create(
        booking=booking,
        amount=booking.amount,
        status=TransactionStatus.PENDING,
        transaction_type=TransactionType.PAYMENT,
    )
    logger.info('Booking %s created by %s for provider %s', booking.id, actor.user_id, provider_id)
    return booking


# ── Core: Status Transitions ──────────────────────────────────────────────────

@returns_result
@transaction.atomic
def update_booking_status(actor, booking_id, new_status, notes=None) -> Booking:
    """
    Move a booking along the state machine on behalf of its requester or provider.
    Completing a booking bumps the provider's total_bookings counter.
    """
    if new_status not in BookingStatus.values:
        raise InvalidInputError(errors={'status': [f'Unknown status "{new_status}".']})

    booking = _lock_booking(booking_id)
    if not booking.is_party(actor.user_id):
        raise ForbiddenError('Only the requester or provider can update this booking.')

    update_fields = booking.transition_to(new_status, changed_by=actor.user_id, reason=notes or '')

    if new_status == BookingStatus.CANCELLED:
        update_fields += _stamp_cancellation(booking, actor, notes)
    if notes and actor.user_id == booking.provider_id:
        booking.provider_notes = notes
        update_fields.append('provider_notes')

    booking.save(update_fields=update_fields)

    if new_status == BookingStatus.COMPLETED:
        ProviderProfile.objects.filter(user_id=booking.provider_id).update(
            total_bookings=F('total_bookings') + 1,
        )

    logger.info('Booking %s moved to %s by %s', booking.id, new_status, actor.user_id)
    return booking


@returns_result
@transaction.atomic
def cancel_booking(actor, booking_id, reason) -> Booking:
    """
    Cancel a booking that is not yet final. Refunds are a separate, explicit call.
    Visible to the requester, the provider and administrators only.
    """
    if not (reason or '').strip():
        raise InvalidInputError(errors={'reason': ['Cancellation reason is required']})

    booking = _lock_booking(booking_id)
    if not (booking.is_party(actor.user_id) or actor.is_admin):
        raise BookingNotFoundError()
    if booking.is_final:
        raise AlreadyFinalError()

    update_fields = booking.transition_to(
        BookingStatus.CANCELLED, changed_by=actor.user_id, reason=reason,
    )
    update_fields += _stamp_cancellation(booking, actor, reason)
    booking.save(update_fields=update_fields)

    logger.info('Booking %s cancelled by %s (%s)', booking.id, actor.user_id, booking.cancelled_by)
    return booking


# ── Reads ─────────────────────────────────────────────────────────────────────

@returns_result
def get_provider_dashboard(provider_id) -> dict:
    """
    Counts by status, next bookings and earnings, all from one snapshot.
    Earnings = net_amount of completed payments on completed bookings.
    """
    today = timezone.localdate()
    with _consistent_read():
        counts = Booking.objects.filter(provider_id=provider_id).aggregate(
            total=Count('id'),
            **{
                status: Count('id', filter=Q(status=status))
                for status in BookingStatus.values
            },
        )
        upcoming = list(
            Booking.objects
            .filter(
                provider_id=provider_id,
                status__in=[BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS],
                scheduled_date__gte=today,
            )
            .select_related('requester')
            .order_by('scheduled_date', 'scheduled_time')[:UPCOMING_LIMIT]
        )
        earnings = Transaction.objects.filter(
            booking__provider_id=provider_id,
            booking__status=BookingStatus.COMPLETED,
            status=TransactionStatus.COMPLETED,
            transaction_type=TransactionType.PAYMENT,
        ).aggregate(total=Sum('net_amount'))['total'] or Decimal('0')

    return {
        'counts': counts,
        'upcoming': upcoming,
        'earnings': earnings,
    }


@returns_result
def list_bookings(actor, status=None, page=1, limit=10) -> dict:
    """Bookings where the actor is requester or provider, latest schedule first."""
    if status and status not in BookingStatus.values:
        raise InvalidInputError(errors={'status': ['Invalid status']})

    qs = (
        Booking.objects
        .filter(Q(requester_id=actor.user_id) | Q(provider_id=actor.user_id))
        .select_related('requester', 'provider')
        .order_by('-scheduled_date', '-scheduled_time')
    )
    if status:
        qs = qs.filter(status=status)

    paginator = Paginator(qs, limit)
    page_obj = paginator.get_page(page)
    return {
        'bookings': list(page_obj.object_list),
        'pagination': {
            'current_page': page_obj.number,
            'total_pages': paginator.num_pages,
            'total_items': paginator.count,
            'items_per_page': limit,
        },
    }


@returns_result
def get_booking(actor, booking_id) -> Booking:
    booking = (
        Booking.objects
        .select_related('requester', 'provider', 'provider__provider_profile')
        .prefetch_related('transactions', 'reviews')
        .filter(id=booking_id)
        .first()
    )
    if booking is None or not (booking.is_party(actor.user_id) or actor.is_admin):
        raise BookingNotFoundError()
    return booking
