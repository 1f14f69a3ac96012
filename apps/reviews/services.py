"""
Review operations. Each mutation and its rating-aggregate update share one
transaction.

Public API (every call returns an apps.core.results.Result):
  create_review(actor, booking_id, rating, comment='', ...)
  update_review(actor, review_id, patch)
  delete_review(actor, review_id)
  get_review(review_id)
"""
import logging
from dataclasses import dataclass
from typing import Any

from django.db import IntegrityError, transaction

from apps.bookings.models import Booking, BookingStatus
from apps.core.exceptions import ForbiddenError, InvalidInputError
from apps.core.patch import UNSET, apply_patch, changed_fields
from apps.core.results import returns_result

from . import aggregator
from .exceptions import DuplicateReviewError, NotCompletedError, ReviewNotFoundError
from .models import Review

logger = logging.getLogger(__name__)

SCORE_FIELDS = ('rating', 'service_quality', 'punctuality', 'communication')


@dataclass
class ReviewPatch:
    """Fields left as UNSET are not touched."""
    rating: Any = UNSET
    comment: Any = UNSET
    service_quality: Any = UNSET
    punctuality: Any = UNSET
    communication: Any = UNSET
    would_recommend: Any = UNSET


def _check_scores(values: dict):
    errors = {}
    for name in SCORE_FIELDS:
        value = values.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
            errors[name] = ['Rating must be between 1 and 5']
    if 'rating' in values and values['rating'] is None:
        errors['rating'] = ['Rating must be between 1 and 5']
    if errors:
        raise InvalidInputError(errors=errors)


def _lock_own_review(actor, review_id) -> Review:
    review = Review.objects.select_for_update().filter(id=review_id).first()
    if review is None:
        raise ReviewNotFoundError()
    if review.requester_id != actor.user_id:
        raise ForbiddenError('You can only modify your own reviews.')
    return review


@returns_result
@transaction.atomic
def create_review(actor, booking_id, rating, comment='', service_quality=None,
                  punctuality=None, communication=None, would_recommend=None) -> Review:
    _check_scores({
        'rating': rating,
        'service_quality': service_quality,
        'punctuality': punctuality,
        'communication': communication,
    })

    booking = (
        Booking.objects
        .select_for_update()
        .filter(id=booking_id, requester_id=actor.user_id, status=BookingStatus.COMPLETED)
        .first()
    )
    if booking is None:
        raise NotCompletedError()
    if Review.objects.filter(requester_id=actor.user_id, booking=booking).exists():
        raise DuplicateReviewError()

    try:
        with transaction.atomic():
            review = Review.objects.create(
                booking=booking,
                requester_id=actor.user_id,
                provider_id=booking.provider_id,
                rating=rating,
                comment=comment or '',
                service_quality=service_quality,
                punctuality=punctuality,
                communication=communication,
                would_recommend=would_recommend,
                is_verified=True,
            )
    except IntegrityError:
        raise DuplicateReviewError()

    aggregator.on_review_created(booking.provider_id, rating)
    logger.info('Review %s created for booking %s', review.id, booking.id)
    return review


@returns_result
@transaction.atomic
def update_review(actor, review_id, patch: ReviewPatch) -> Review:
    review = _lock_own_review(actor, review_id)
    _check_scores(changed_fields(patch))

    old_rating = review.rating
    update_fields = apply_patch(review, patch)
    if update_fields:
        review.save(update_fields=update_fields + ['updated_at'])

    if patch.rating is not UNSET and patch.rating != old_rating:
        aggregator.on_review_updated(review.provider_id, old_rating, patch.rating)

    logger.info('Review %s updated (%s)', review.id, ', '.join(update_fields) or 'no changes')
    return review


@returns_result
@transaction.atomic
def delete_review(actor, review_id) -> None:
    review = _lock_own_review(actor, review_id)
    provider_id, rating = review.provider_id, review.rating
    review.delete()
    aggregator.on_review_deleted(provider_id, rating)
    logger.info('Review %s deleted', review_id)


@returns_result
def get_review(review_id) -> Review:
    review = (
        Review.objects
        .select_related('requester', 'provider', 'booking')
        .filter(id=review_id)
        .first()
    )
    if review is None:
        raise ReviewNotFoundError()
    return review
