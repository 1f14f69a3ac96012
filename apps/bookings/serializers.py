"""
Plain-dict renderings of bookings for the JSON API.
"""
from apps.payments.serializers import serialize_transaction
from apps.reviews.serializers import serialize_review


def _user_summary(user):
    return {
        'id': str(user.id),
        'name': user.name,
        'phone': user.phone,
    }


def serialize_booking(booking) -> dict:
    return {
        'id': str(booking.id),
        'requester_id': str(booking.requester_id),
        'provider_id': str(booking.provider_id),
        'service_type': booking.service_type,
        'service_description': booking.service_description,
        'scheduled_date': booking.scheduled_date.isoformat(),
        'scheduled_time': booking.scheduled_time.strftime('%H:%M'),
        'duration_hours': str(booking.duration_hours),
        'amount': str(booking.amount),
        'status': booking.status,
        'payment_status': booking.payment_status,
        'address': booking.address,
        'city': booking.city,
        'state': booking.state,
        'pincode': booking.pincode,
        'latitude': str(booking.latitude) if booking.latitude is not None else None,
        'longitude': str(booking.longitude) if booking.longitude is not None else None,
        'special_requirements': booking.special_requirements,
        'materials_required': booking.materials_required,
        'materials_provided_by': booking.materials_provided_by,
        'contact_phone': booking.contact_phone,
        'alternate_phone': booking.alternate_phone,
        'booking_notes': booking.booking_notes,
        'provider_notes': booking.provider_notes,
        'cancellation_reason': booking.cancellation_reason,
        'cancelled_by': booking.cancelled_by or None,
        'cancelled_at': booking.cancelled_at.isoformat() if booking.cancelled_at else None,
        'confirmed_at': booking.confirmed_at.isoformat() if booking.confirmed_at else None,
        'completed_at': booking.completed_at.isoformat() if booking.completed_at else None,
        'created_at': booking.created_at.isoformat(),
    }


def serialize_booking_with_parties(booking) -> dict:
    data = serialize_booking(booking)
    data['requester'] = _user_summary(booking.requester)
    data['provider'] = _user_summary(booking.provider)
    return data


def serialize_booking_detail(booking) -> dict:
    data = serialize_booking_with_parties(booking)
    profile = getattr(booking.provider, 'provider_profile', None)
    if profile is not None:
        data['provider']['rating'] = str(profile.rating)
        data['provider']['total_reviews'] = profile.total_reviews
    data['transactions'] = [serialize_transaction(t) for t in booking.transactions.all()]
    reviews = list(booking.reviews.all())
    data['review'] = serialize_review(reviews[0]) if reviews else None
    return data


def serialize_booking_page(page: dict) -> dict:
    return {
        'bookings': [serialize_booking_with_parties(b) for b in page['bookings']],
        'pagination': page['pagination'],
    }


def serialize_dashboard(dashboard: dict) -> dict:
    return {
        'stats': dashboard['counts'],
        'upcoming_bookings': [
            {**serialize_booking(b), 'requester': _user_summary(b.requester)}
            for b in dashboard['upcoming']
        ],
        'total_earnings': str(dashboard['earnings']),
    }
