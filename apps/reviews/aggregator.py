"""
Rating aggregator — incremental maintenance of ProviderProfile.rating and
ProviderProfile.total_reviews.

Every function locks the provider profile row and must be called inside the
same transaction.atomic block as the Review insert / update / delete that
triggered it, so a review never exists without its contribution (and vice
versa) and concurrent reviews cannot lose updates.

  on_review_created(provider_id, rating)
  on_review_updated(provider_id, old_rating, new_rating)
  on_review_deleted(provider_id, rating)
  recompute(provider_id)      full-scan repair, used by recompute_provider_ratings
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count

from apps.core.exceptions import NotFoundError
from apps.providers.models import ProviderProfile

from .models import Review

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal('0.01')
ZERO_RATING = Decimal('0.00')


def _round(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _lock_profile(provider_id) -> ProviderProfile:
    profile = ProviderProfile.objects.select_for_update().filter(user_id=provider_id).first()
    if profile is None:
        raise NotFoundError('Poojari profile not found')
    return profile


def _save(profile: ProviderProfile):
    profile.save(update_fields=['rating', 'total_reviews', 'updated_at'])
    logger.info(
        'Provider %s rating now %s over %d reviews',
        profile.user_id, profile.rating, profile.total_reviews,
    )


def on_review_created(provider_id, rating) -> ProviderProfile:
    profile = _lock_profile(provider_id)
    old_sum = profile.rating * profile.total_reviews
    new_total = profile.total_reviews + 1
    profile.rating = _round((old_sum + Decimal(rating)) / new_total)
    profile.total_reviews = new_total
    _save(profile)
    return profile


def on_review_updated(provider_id, old_rating, new_rating) -> ProviderProfile:
    profile = _lock_profile(provider_id)
    if new_rating == old_rating or profile.total_reviews == 0:
        return profile
    old_sum = profile.rating * profile.total_reviews
    new_sum = old_sum - Decimal(old_rating) + Decimal(new_rating)
    profile.rating = _round(new_sum / profile.total_reviews)
    _save(profile)
    return profile


def on_review_deleted(provider_id, rating) -> ProviderProfile:
    profile = _lock_profile(provider_id)
    if profile.total_reviews > 1:
        old_sum = profile.rating * profile.total_reviews
        new_total = profile.total_reviews - 1
        profile.rating = _round((old_sum - Decimal(rating)) / new_total)
        profile.total_reviews = new_total
    else:
        # Deleting the only review
        profile.rating = ZERO_RATING
        profile.total_reviews = 0
    _save(profile)
    return profile


def recompute(provider_id) -> tuple:
    """
    Return (rating, total_reviews) recomputed from the live reviews.
    Does not write; the caller decides whether to repair.
    """
    stats = Review.objects.filter(provider_id=provider_id).aggregate(
        avg=Avg('rating'), count=Count('id'),
    )
    if not stats['count']:
        return ZERO_RATING, 0
    return _round(Decimal(str(stats['avg']))), stats['count']
