"""
Domain error taxonomy shared by every app.

Core operations raise these inside their transaction so the transaction
rolls back; `apps.core.results.returns_result` turns them into a `Result`
at the operation boundary and `apps.core.http` maps them to JSON responses.
"""


class DomainError(Exception):
    """Base exception for all expected, classified failures."""
    status_code = 400
    code = 'error'
    default_message = 'The request could not be completed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)

    @property
    def message(self):
        return str(self)


class InvalidInputError(DomainError):
    """Malformed or missing input. Carries a field -> messages map."""
    code = 'validation_error'
    default_message = 'Validation failed'

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = errors or {}


class NotFoundError(DomainError):
    """Entity absent, or not visible to the acting user."""
    status_code = 404
    code = 'not_found'
    default_message = 'Not found'


class ForbiddenError(DomainError):
    """Actor lacks permission on an otherwise-existing entity."""
    status_code = 403
    code = 'forbidden'
    default_message = 'You do not have permission to perform this action.'


class ConflictError(DomainError):
    """Slot overlap, duplicate record or already-final state."""
    code = 'conflict'


class StateError(DomainError):
    """Operation not allowed in the entity's current state."""
    code = 'invalid_state'


class GatewayError(DomainError):
    """The external payment provider failed or timed out."""
    status_code = 502
    code = 'gateway_error'
    default_message = 'The payment gateway could not process the request. Please try again.'


class SecurityError(DomainError):
    """
    Signature mismatch or other integrity violation.
    Always a rejection, never retried automatically.
    """
    code = 'integrity_error'
    default_message = 'Request integrity check failed'
