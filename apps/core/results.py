"""
Result type returned by every public core operation.

Inside an operation, failures are raised so `transaction.atomic` rolls the
whole unit back. `returns_result` sits outside the atomic block and turns a
`DomainError` into `Result(error=...)`; anything else still propagates.
"""
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Optional

from .exceptions import DomainError, SecurityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    value: Any = None
    error: Optional[DomainError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self):
        """Return the value, or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value


def returns_result(func):
    """Wrap a core operation so it returns a Result instead of raising."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return Result(value=func(*args, **kwargs))
        except SecurityError as exc:
            logger.warning('%s rejected: %s', func.__name__, exc)
            return Result(error=exc)
        except DomainError as exc:
            logger.info('%s failed: %s', func.__name__, exc)
            return Result(error=exc)
    return wrapper
