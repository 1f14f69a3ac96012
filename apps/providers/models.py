"""
Provider models: ProviderProfile.
Each provider (poojari) user has exactly one profile. The profile row also
carries the denormalised rating aggregate owned by apps.reviews.aggregator.
"""
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from apps.core.models import BaseModel


class ProviderProfile(BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='provider_profile',
    )
    bio = models.TextField(blank=True)
    experience_years = models.PositiveIntegerField(
        null=True, blank=True, validators=[MaxValueValidator(100)],
    )
    languages = models.JSONField(default=list, blank=True)
    specializations = models.JSONField(default=list, blank=True)
    pricing_per_hour = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
    )
    pricing_per_service = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True,
        validators=[MinValueValidator(0)],
    )

    # Rating aggregate: written only by apps.reviews.aggregator
    rating = models.DecimalField(
        max_digits=3, decimal_places=2, default=Decimal('0.00'),
        validators=[MinValueValidator(0), MaxValueValidator(5)],
    )
    total_reviews = models.PositiveIntegerField(default=0)

    total_bookings = models.PositiveIntegerField(default=0)
    is_verified = models.BooleanField(default=False, db_index=True)
    is_available = models.BooleanField(default=True, db_index=True)
    featured = models.BooleanField(default=False, db_index=True)

    class Meta:
        verbose_name = 'Provider Profile'
        verbose_name_plural = 'Provider Profiles'
        ordering = ['-rating', '-total_reviews']

    def __str__(self):
        return f"{self.user} — {self.rating} ({self.total_reviews} reviews)"

    @property
    def is_bookable(self):
        return self.is_available and self.is_verified and self.user.is_active
