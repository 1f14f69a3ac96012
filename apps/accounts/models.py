"""
User model — every requester, provider and administrator.
Phone number is the canonical identity key handed over by the identity provider.

Phone normalisation guarantees deduplication regardless of how the
number was typed:
  +91 98765 43210  ->  9876543210
  091-9876543210   ->  9876543210
  09876543210      ->  9876543210
  9876543210       ->  9876543210  (already clean)
"""
import re
from django.contrib.auth.models import AbstractUser
from django.db import models
from apps.core.models import UUIDModel


def normalize_phone(raw: str) -> str:
    """
    Normalise an Indian mobile number to exactly 10 digits.

    Steps:
      1. Strip all non-digit characters (spaces, dashes, +, parentheses)
      2. Remove leading country code 91 if the result is 12 digits
      3. Remove leading 0 if the result is 11 digits
      4. Validate final length is 10

    Raises ValueError if the result is not 10 digits.
    """
    digits = re.sub(r'\D', '', raw or '')

    if len(digits) == 12 and digits.startswith('91'):
        digits = digits[2:]
    elif len(digits) == 11 and digits.startswith('0'):
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError(
            f"Cannot normalise phone number '{raw}' — "
            f"expected 10 digits after normalisation, got {len(digits)}."
        )
    return digits


class Role(models.TextChoices):
    REQUESTER = 'devotee', 'Devotee'
    PROVIDER  = 'poojari', 'Poojari'
    ADMIN     = 'admin',   'Administrator'


class User(UUIDModel, AbstractUser):
    name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=20, unique=True, null=True, blank=True)
    role = models.CharField(
        max_length=10, choices=Role.choices, default=Role.REQUESTER, db_index=True,
    )

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'

    def __str__(self):
        return f"{self.name or self.username} ({self.get_role_display()})"

    def save(self, *args, **kwargs):
        if self.phone:
            self.phone = normalize_phone(self.phone)
        super().save(*args, **kwargs)

    @property
    def is_provider(self):
        return self.role == Role.PROVIDER
