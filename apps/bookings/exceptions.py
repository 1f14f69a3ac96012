"""
Custom exceptions for the booking engine.
Raised in engine.py / models.py and mapped to responses in views.py.
"""
from apps.core.exceptions import ConflictError, NotFoundError, StateError


class ProviderUnavailableError(NotFoundError):
    """Provider missing, inactive, unverified or not accepting bookings."""
    code = 'provider_unavailable'
    default_message = 'Poojari not found or not available'


class BookingNotFoundError(NotFoundError):
    default_message = 'Booking not found'


class SlotConflictError(ConflictError):
    """Raised when an active booking already holds the (provider, date, time) slot."""
    code = 'slot_conflict'
    default_message = 'Poojari is not available at the selected time'


class InvalidTransitionError(StateError):
    """Raised when a status change is not an edge of the booking state machine."""
    code = 'invalid_transition'

    def __init__(self, from_status, to_status):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f'Cannot change status from {from_status} to {to_status}')


class AlreadyFinalError(ConflictError):
    """Raised when cancelling a booking that is already completed, cancelled or refunded."""
    code = 'already_final'
    default_message = 'Cannot cancel this booking'


class ImmutableFieldError(StateError):
    code = 'immutable_field'
