"""
Identity seam.

Authentication happens upstream; the core only ever sees an Actor: the
stable user id and role of an already-authenticated caller.
"""
from dataclasses import dataclass
from uuid import UUID

from .models import Role


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_provider(self) -> bool:
        return self.role == Role.PROVIDER


def actor_from_user(user) -> Actor:
    role = Role.ADMIN if user.is_staff else user.role
    return Actor(user_id=user.pk, role=role)
