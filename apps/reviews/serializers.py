def serialize_review(review) -> dict:
    return {
        'id': str(review.id),
        'booking_id': str(review.booking_id),
        'requester_id': str(review.requester_id),
        'provider_id': str(review.provider_id),
        'rating': review.rating,
        'comment': review.comment,
        'service_quality': review.service_quality,
        'punctuality': review.punctuality,
        'communication': review.communication,
        'would_recommend': review.would_recommend,
        'is_verified': review.is_verified,
        'helpful_count': review.helpful_count,
        'created_at': review.created_at.isoformat(),
        'updated_at': review.updated_at.isoformat(),
    }


def serialize_review_detail(review) -> dict:
    data = serialize_review(review)
    data['requester'] = {'id': str(review.requester.id), 'name': review.requester.name}
    data['provider'] = {'id': str(review.provider.id), 'name': review.provider.name}
    data['booking'] = {
        'id': str(review.booking.id),
        'service_type': review.booking.service_type,
        'scheduled_date': review.booking.scheduled_date.isoformat(),
    }
    return data
