"""
Tests for the booking engine: creation, slot conflicts, state machine,
cancellation and the provider dashboard.
"""
from decimal import Decimal

import pytest

from apps.bookings import engine
from apps.bookings.exceptions import (
    AlreadyFinalError,
    ImmutableFieldError,
    InvalidTransitionError,
    ProviderUnavailableError,
    SlotConflictError,
)
from apps.bookings.models import Booking, BookingStatus, BookingStatusLog, CancelledBy
from apps.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from apps.payments.models import Transaction, TransactionStatus, TransactionType
from apps.providers.models import ProviderProfile
from tests.conftest import booking_details

pytestmark = pytest.mark.django_db


class TestCreateBooking:
    """create_booking"""

    def test_creates_pending_booking_with_placeholder_transaction(self, requester, provider, actor_for):
        result = engine.create_booking(actor_for(requester), provider.id, booking_details())

        assert result.ok
        booking = result.value
        assert booking.status == BookingStatus.PENDING
        assert booking.payment_status == 'pending'
        assert booking.requester_id == requester.id
        assert booking.provider_id == provider.id

        txn = Transaction.objects.get(booking=booking)
        assert txn.status == TransactionStatus.PENDING
        assert txn.transaction_type == TransactionType.PAYMENT
        assert txn.amount == Decimal('1500.00')
        assert txn.currency == 'INR'

    def test_unverified_provider_is_unavailable(self, requester, provider, actor_for):
        ProviderProfile.objects.filter(user=provider).update(is_verified=False)

        result = engine.create_booking(actor_for(requester), provider.id, booking_details())

        assert isinstance(result.error, ProviderUnavailableError)
        assert result.error.status_code == 404
        assert not Booking.objects.exists()

    def test_unavailable_provider_is_rejected(self, requester, provider, actor_for):
        ProviderProfile.objects.filter(user=provider).update(is_available=False)

        result = engine.create_booking(actor_for(requester), provider.id, booking_details())

        assert isinstance(result.error, ProviderUnavailableError)

    def test_non_provider_user_cannot_be_booked(self, requester, other_requester, actor_for):
        result = engine.create_booking(actor_for(requester), other_requester.id, booking_details())

        assert isinstance(result.error, ProviderUnavailableError)

    def test_cannot_book_yourself(self, provider, actor_for):
        result = engine.create_booking(actor_for(provider), provider.id, booking_details())

        assert isinstance(result.error, InvalidInputError)
        assert 'provider_id' in result.error.errors

    def test_missing_required_fields(self, requester, provider, actor_for):
        details = booking_details()
        del details['address']
        details['city'] = ''

        result = engine.create_booking(actor_for(requester), provider.id, details)

        assert isinstance(result.error, InvalidInputError)
        assert set(result.error.errors) == {'address', 'city'}

    def test_negative_amount_rejected(self, requester, provider, actor_for):
        result = engine.create_booking(
            actor_for(requester), provider.id, booking_details(amount=Decimal('-1')),
        )

        assert isinstance(result.error, InvalidInputError)

    def test_zero_duration_rejected(self, requester, provider, actor_for):
        result = engine.create_booking(
            actor_for(requester), provider.id, booking_details(duration_hours=Decimal('0')),
        )

        assert isinstance(result.error, InvalidInputError)


class TestSlotConflicts:
    """At most one active booking per (provider, date, time)."""

    def test_second_booking_for_same_slot_conflicts(self, booking, other_requester, provider, actor_for):
        result = engine.create_booking(actor_for(other_requester), provider.id, booking_details())

        assert isinstance(result.error, SlotConflictError)
        assert Booking.objects.count() == 1
        assert Transaction.objects.count() == 1

    def test_different_time_is_fine(self, booking, other_requester, provider, actor_for):
        result = engine.create_booking(actor_for(other_requester), provider.id, booking_details(hour=14))

        assert result.ok

    def test_cancelled_booking_frees_the_slot(self, booking, requester, other_requester, provider, actor_for):
        engine.cancel_booking(actor_for(requester), booking.id, 'Plans changed').unwrap()

        result = engine.create_booking(actor_for(other_requester), provider.id, booking_details())

        assert result.ok

    def test_constraint_catches_race_past_precheck(self, booking, other_requester, provider, actor_for, monkeypatch):
        # Simulate a concurrent insert that the pre-check did not see
        monkeypatch.setattr(engine, '_find_active_booking', lambda *args: None)

        result = engine.create_booking(actor_for(other_requester), provider.id, booking_details())

        assert isinstance(result.error, SlotConflictError)
        assert Booking.objects.count() == 1

    def test_slot_check_takes_no_booking_row_locks(self, booking, provider):
        holders = engine._slot_holders(provider.id, booking.scheduled_date, booking.scheduled_time)

        assert not holders.query.select_for_update
        assert list(holders) == [booking]

    def test_in_progress_booking_still_holds_the_slot(self, booking, other_requester, provider, actor_for):
        for status in (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS):
            engine.update_booking_status(actor_for(provider), booking.id, status).unwrap()

        result = engine.create_booking(actor_for(other_requester), provider.id, booking_details())

        assert isinstance(result.error, SlotConflictError)


class TestUpdateBookingStatus:
    """update_booking_status"""

    def test_provider_confirms(self, booking, provider, actor_for):
        updated = engine.update_booking_status(
            actor_for(provider), booking.id, BookingStatus.CONFIRMED, notes='See you there',
        ).unwrap()

        assert updated.status == BookingStatus.CONFIRMED
        assert updated.confirmed_at is not None
        assert updated.provider_notes == 'See you there'

    def test_requester_notes_are_not_provider_notes(self, booking, requester, actor_for):
        updated = engine.update_booking_status(
            actor_for(requester), booking.id, BookingStatus.CONFIRMED, notes='Thanks',
        ).unwrap()

        assert updated.provider_notes == ''

    def test_full_lifecycle_is_logged_and_counts_completion(self, booking, complete, provider):
        complete(booking)

        assert booking.status == BookingStatus.COMPLETED
        assert booking.completed_at is not None
        transitions = list(
            BookingStatusLog.objects.filter(booking=booking).values_list('from_status', 'to_status')
        )
        assert transitions == [
            ('pending', 'confirmed'),
            ('confirmed', 'in_progress'),
            ('in_progress', 'completed'),
        ]
        assert ProviderProfile.objects.get(user=provider).total_bookings == 1

    def test_skipping_a_state_is_rejected(self, booking, provider, actor_for):
        result = engine.update_booking_status(actor_for(provider), booking.id, BookingStatus.COMPLETED)

        assert isinstance(result.error, InvalidTransitionError)
        assert str(result.error) == 'Cannot change status from pending to completed'
        booking.refresh_from_db()
        assert booking.status == BookingStatus.PENDING

    def test_completed_is_terminal(self, booking, complete, provider, actor_for):
        complete(booking)

        result = engine.update_booking_status(actor_for(provider), booking.id, BookingStatus.CANCELLED)

        assert isinstance(result.error, InvalidTransitionError)

    def test_refunded_cannot_be_set_directly(self, booking, provider, actor_for):
        result = engine.update_booking_status(actor_for(provider), booking.id, BookingStatus.REFUNDED)

        assert isinstance(result.error, InvalidTransitionError)

    def test_cancelling_via_status_records_metadata(self, booking, provider, actor_for):
        updated = engine.update_booking_status(
            actor_for(provider), booking.id, BookingStatus.CANCELLED, notes='Unwell',
        ).unwrap()

        assert updated.cancelled_by == CancelledBy.PROVIDER
        assert updated.cancellation_reason == 'Unwell'
        assert updated.cancelled_at is not None

    def test_stranger_is_forbidden(self, booking, other_requester, actor_for):
        result = engine.update_booking_status(actor_for(other_requester), booking.id, BookingStatus.CONFIRMED)

        assert isinstance(result.error, ForbiddenError)

    def test_unknown_booking(self, provider, actor_for):
        result = engine.update_booking_status(
            actor_for(provider), '00000000-0000-0000-0000-000000000000', BookingStatus.CONFIRMED,
        )

        assert isinstance(result.error, NotFoundError)

    def test_amount_is_immutable(self, booking):
        booking.amount = Decimal('1.00')

        with pytest.raises(ImmutableFieldError):
            booking.save()


class TestCancelBooking:
    """cancel_booking"""

    def test_requester_cancels(self, booking, requester, actor_for):
        cancelled = engine.cancel_booking(actor_for(requester), booking.id, 'Travelling').unwrap()

        assert cancelled.status == BookingStatus.CANCELLED
        assert cancelled.cancelled_by == CancelledBy.REQUESTER
        assert cancelled.cancellation_reason == 'Travelling'

    def test_admin_cancels(self, booking, admin_user, actor_for):
        cancelled = engine.cancel_booking(actor_for(admin_user), booking.id, 'Duplicate').unwrap()

        assert cancelled.cancelled_by == CancelledBy.ADMINISTRATOR

    def test_stranger_sees_not_found(self, booking, other_requester, actor_for):
        result = engine.cancel_booking(actor_for(other_requester), booking.id, 'Nope')

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.parametrize('final_status', [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
    def test_final_booking_is_unchanged(self, booking, requester, actor_for, final_status):
        Booking.objects.filter(pk=booking.pk).update(status=final_status)
        before = Booking.objects.get(pk=booking.pk)
        logs_before = BookingStatusLog.objects.count()

        result = engine.cancel_booking(actor_for(requester), booking.id, 'Too late')

        assert isinstance(result.error, AlreadyFinalError)
        after = Booking.objects.get(pk=booking.pk)
        assert after.status == before.status
        assert after.cancellation_reason == before.cancellation_reason
        assert after.cancelled_at == before.cancelled_at
        assert after.updated_at == before.updated_at
        assert BookingStatusLog.objects.count() == logs_before

    def test_reason_is_required(self, booking, requester, actor_for):
        result = engine.cancel_booking(actor_for(requester), booking.id, '   ')

        assert isinstance(result.error, InvalidInputError)


class TestProviderDashboard:
    """get_provider_dashboard"""

    def test_counts_upcoming_and_earnings(self, requester, other_requester, provider, make_booking,
                                          pay, actor_for):
        done = make_booking(requester, hour=8)
        pay(done, payment_id='pay_done')
        for status in (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
            engine.update_booking_status(actor_for(provider), done.id, status).unwrap()

        confirmed = make_booking(other_requester, hour=12)
        pay(confirmed, payment_id='pay_upcoming')
        make_booking(requester, hour=16)

        dashboard = engine.get_provider_dashboard(provider.id).unwrap()

        assert dashboard['counts']['total'] == 3
        assert dashboard['counts']['completed'] == 1
        assert dashboard['counts']['confirmed'] == 1
        assert dashboard['counts']['pending'] == 1
        assert [b.id for b in dashboard['upcoming']] == [confirmed.id]
        # 1500 - 10% platform fee, no gateway fee reported
        assert dashboard['earnings'] == Decimal('1350.00')

    def test_empty_dashboard(self, provider):
        dashboard = engine.get_provider_dashboard(provider.id).unwrap()

        assert dashboard['counts']['total'] == 0
        assert dashboard['upcoming'] == []
        assert dashboard['earnings'] == Decimal('0')


class TestReads:
    """list_bookings and get_booking"""

    def test_list_includes_both_roles(self, requester, provider, make_booking, actor_for):
        make_booking(requester, hour=9)
        make_booking(requester, hour=11)

        mine = engine.list_bookings(actor_for(requester)).unwrap()
        theirs = engine.list_bookings(actor_for(provider), status='pending').unwrap()

        assert mine['pagination']['total_items'] == 2
        assert len(theirs['bookings']) == 2

    def test_list_paginates(self, requester, make_booking, actor_for):
        for hour in (6, 7, 8):
            make_booking(requester, hour=hour)

        page = engine.list_bookings(actor_for(requester), page=2, limit=2).unwrap()

        assert page['pagination'] == {
            'current_page': 2, 'total_pages': 2, 'total_items': 3, 'items_per_page': 2,
        }
        assert len(page['bookings']) == 1

    def test_get_booking_hidden_from_strangers(self, booking, other_requester, admin_user, actor_for):
        assert isinstance(engine.get_booking(actor_for(other_requester), booking.id).error, NotFoundError)
        assert engine.get_booking(actor_for(admin_user), booking.id).ok
