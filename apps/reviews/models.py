from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from apps.core.models import BaseModel
from apps.bookings.models import Booking

RATING_VALIDATORS = [MinValueValidator(1), MaxValueValidator(5)]


class Review(BaseModel):
    """
    A requester's review of a completed booking.
    Each create / rating change / delete is mirrored into the provider's
    rating aggregate by apps.reviews.aggregator inside the same transaction.
    """
    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='reviews')
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews_written',
    )
    provider = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews_received',
    )
    rating = models.PositiveSmallIntegerField(validators=RATING_VALIDATORS)
    comment = models.TextField(blank=True)
    service_quality = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    punctuality = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    communication = models.PositiveSmallIntegerField(null=True, blank=True, validators=RATING_VALIDATORS)
    would_recommend = models.BooleanField(null=True, blank=True)
    is_verified = models.BooleanField(default=False)
    helpful_count = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = 'Review'
        verbose_name_plural = 'Reviews'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['requester', 'booking'],
                name='uq_review_requester_booking',
            ),
        ]

    def __str__(self):
        return f"{self.rating}★ review of booking {str(self.booking_id)[:8]}"
