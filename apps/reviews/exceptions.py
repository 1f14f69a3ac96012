from apps.core.exceptions import ConflictError, NotFoundError


class ReviewNotFoundError(NotFoundError):
    default_message = 'Review not found'


class NotCompletedError(NotFoundError):
    """Booking missing, not the requester's, or not yet completed."""
    default_message = 'Booking not found or not completed'


class DuplicateReviewError(ConflictError):
    default_message = 'Review already exists for this booking'
