"""
Payment reconciler exceptions.
"""
from apps.core.exceptions import NotFoundError, SecurityError, StateError


class TransactionNotFoundError(NotFoundError):
    default_message = 'Transaction not found'


class NotEligibleError(StateError):
    """Booking or transaction is not in a state that allows this payment step."""
    code = 'not_eligible'
    default_message = 'This booking is not eligible for the requested payment operation'


class InvalidSignatureError(SecurityError):
    code = 'invalid_signature'
    default_message = 'Payment verification failed'
