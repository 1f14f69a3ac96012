"""
Tests for review operations and the provider rating aggregate.
"""
from decimal import Decimal

import pytest

from apps.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from apps.core.patch import UNSET
from apps.providers.models import ProviderProfile
from apps.reviews import aggregator, services
from apps.reviews.exceptions import DuplicateReviewError, NotCompletedError, ReviewNotFoundError
from apps.reviews.models import Review
from apps.reviews.services import ReviewPatch

pytestmark = pytest.mark.django_db


def profile_of(provider):
    return ProviderProfile.objects.get(user=provider)


@pytest.fixture
def completed(requester, make_booking, complete):
    """Two completed bookings for the same requester and provider."""
    return [complete(make_booking(requester, hour=hour)) for hour in (8, 12)]


class TestRatingAggregate:
    """Incremental rating maintenance"""

    def test_create_update_delete_sequence(self, requester, provider, actor_for, completed):
        actor = actor_for(requester)
        first_booking, second_booking = completed

        first = services.create_review(actor, first_booking.id, 4).unwrap()
        profile = profile_of(provider)
        assert (profile.rating, profile.total_reviews) == (Decimal('4.00'), 1)

        second = services.create_review(actor, second_booking.id, 2).unwrap()
        profile = profile_of(provider)
        assert (profile.rating, profile.total_reviews) == (Decimal('3.00'), 2)

        services.update_review(actor, first.id, ReviewPatch(rating=5)).unwrap()
        profile = profile_of(provider)
        assert (profile.rating, profile.total_reviews) == (Decimal('3.50'), 2)

        services.delete_review(actor, second.id).unwrap()
        profile = profile_of(provider)
        assert (profile.rating, profile.total_reviews) == (Decimal('5.00'), 1)

        services.delete_review(actor, first.id).unwrap()
        profile = profile_of(provider)
        assert (profile.rating, profile.total_reviews) == (Decimal('0.00'), 0)

    def test_aggregate_matches_recompute(self, requester, provider, actor_for, completed):
        actor = actor_for(requester)
        for booking, rating in zip(completed, (5, 4)):
            services.create_review(actor, booking.id, rating).unwrap()

        profile = profile_of(provider)

        assert aggregator.recompute(provider.id) == (profile.rating, profile.total_reviews)
        assert profile.rating == Decimal('4.50')

    def test_rounding_is_half_up(self, provider):
        ProviderProfile.objects.filter(user=provider).update(rating=Decimal('4.00'), total_reviews=2)

        profile = aggregator.on_review_created(provider.id, 5)

        # 13 / 3 = 4.333...
        assert profile.rating == Decimal('4.33')

    def test_unknown_provider(self, requester):
        with pytest.raises(NotFoundError):
            aggregator.on_review_created(requester.id, 5)


class TestCreateReview:
    """create_review"""

    def test_booking_must_be_completed(self, booking, requester, actor_for):
        result = services.create_review(actor_for(requester), booking.id, 5)

        assert isinstance(result.error, NotCompletedError)
        assert not Review.objects.exists()

    def test_only_the_requester_can_review(self, provider, actor_for, completed):
        result = services.create_review(actor_for(provider), completed[0].id, 5)

        assert isinstance(result.error, NotCompletedError)

    def test_second_review_is_a_duplicate(self, requester, provider, actor_for, completed):
        actor = actor_for(requester)
        services.create_review(actor, completed[0].id, 5).unwrap()

        result = services.create_review(actor, completed[0].id, 1)

        assert isinstance(result.error, DuplicateReviewError)
        assert profile_of(provider).total_reviews == 1

    @pytest.mark.parametrize('rating', [0, 6, None, '5'])
    def test_rating_out_of_range(self, requester, actor_for, completed, rating):
        result = services.create_review(actor_for(requester), completed[0].id, rating)

        assert isinstance(result.error, InvalidInputError)
        assert 'rating' in result.error.errors

    def test_stores_sub_scores(self, requester, actor_for, completed):
        review = services.create_review(
            actor_for(requester), completed[0].id, 5, comment='Very punctual',
            service_quality=5, punctuality=4, communication=5, would_recommend=True,
        ).unwrap()

        assert review.punctuality == 4
        assert review.would_recommend is True
        assert review.is_verified is True


class TestUpdateAndDeleteReview:
    """update_review / delete_review"""

    @pytest.fixture
    def review(self, requester, actor_for, completed):
        return services.create_review(actor_for(requester), completed[0].id, 4).unwrap()

    def test_comment_change_leaves_aggregate_alone(self, requester, provider, actor_for, review):
        before = profile_of(provider)

        updated = services.update_review(
            actor_for(requester), review.id, ReviewPatch(comment='Lovely ceremony'),
        ).unwrap()

        assert updated.comment == 'Lovely ceremony'
        assert updated.rating == 4
        after = profile_of(provider)
        assert (after.rating, after.total_reviews) == (before.rating, before.total_reviews)

    def test_unset_fields_are_untouched(self, requester, actor_for, review):
        patch = ReviewPatch(would_recommend=False)
        assert patch.comment is UNSET

        services.update_review(actor_for(requester), review.id, patch).unwrap()

        review.refresh_from_db()
        assert review.would_recommend is False
        assert review.rating == 4

    def test_update_by_non_author_forbidden(self, provider, actor_for, review):
        result = services.update_review(actor_for(provider), review.id, ReviewPatch(rating=1))

        assert isinstance(result.error, ForbiddenError)
        review.refresh_from_db()
        assert review.rating == 4

    def test_update_rejects_bad_rating(self, requester, provider, actor_for, review):
        result = services.update_review(actor_for(requester), review.id, ReviewPatch(rating=9))

        assert isinstance(result.error, InvalidInputError)
        assert profile_of(provider).rating == Decimal('4.00')

    def test_delete_by_non_author_forbidden(self, other_requester, actor_for, review):
        result = services.delete_review(actor_for(other_requester), review.id)

        assert isinstance(result.error, ForbiddenError)
        assert Review.objects.filter(pk=review.pk).exists()

    def test_get_missing_review(self):
        result = services.get_review('00000000-0000-0000-0000-000000000000')

        assert isinstance(result.error, ReviewNotFoundError)
