"""
Booking API views — thin JSON layer over apps.bookings.engine.

Each view validates input with a Django form, calls one engine operation and
maps its Result to a JSON response. No business rules live here.
"""
import logging

from django.views.decorators.http import require_GET, require_http_methods

from apps.core.exceptions import ForbiddenError
from apps.core.http import (
    actor_required,
    error_response,
    form_data,
    json_body,
    result_response,
)

from . import engine
from .forms import BookingCreateForm, BookingListForm, CancelForm, StatusUpdateForm
from .serializers import (
    serialize_booking,
    serialize_booking_detail,
    serialize_booking_page,
    serialize_dashboard,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# /bookings/
# ─────────────────────────────────────────────────────────────────────────────

@require_http_methods(['GET', 'POST'])
@actor_required
def booking_collection(request):
    if request.method == 'POST':
        return _create_booking(request)
    return _list_bookings(request)


def _create_booking(request):
    data = json_body(request)
    # Mobile client sends poojariId
    if 'provider_id' not in data and 'poojari_id' in data:
        data['provider_id'] = data.pop('poojari_id')
    cleaned = form_data(BookingCreateForm, data)
    provider_id = cleaned.pop('provider_id')

    result = engine.create_booking(request.actor, provider_id, cleaned)
    return result_response(
        result, serialize_booking, status=201, message='Booking created successfully',
    )


def _list_bookings(request):
    cleaned = form_data(BookingListForm, request.GET.dict())
    result = engine.list_bookings(
        request.actor,
        status=cleaned.get('status') or None,
        page=cleaned.get('page') or 1,
        limit=cleaned.get('limit') or 10,
    )
    return result_response(result, serialize_booking_page)


# ─────────────────────────────────────────────────────────────────────────────
# /bookings/<id>/...
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
@actor_required
def booking_detail(request, booking_id):
    result = engine.get_booking(request.actor, booking_id)
    return result_response(result, serialize_booking_detail)


@require_http_methods(['PUT'])
@actor_required
def booking_status(request, booking_id):
    cleaned = form_data(StatusUpdateForm, json_body(request))
    result = engine.update_booking_status(
        request.actor, booking_id, cleaned['status'], notes=cleaned.get('notes') or None,
    )
    return result_response(result, serialize_booking, message='Booking status updated successfully')


@require_http_methods(['PUT'])
@actor_required
def booking_cancel(request, booking_id):
    cleaned = form_data(CancelForm, json_body(request))
    result = engine.cancel_booking(request.actor, booking_id, cleaned['reason'])
    return result_response(result, serialize_booking, message='Booking cancelled successfully')


# ─────────────────────────────────────────────────────────────────────────────
# /bookings/provider/dashboard/
# ─────────────────────────────────────────────────────────────────────────────

@require_GET
@actor_required
def provider_dashboard(request):
    if not request.actor.is_provider:
        return error_response(ForbiddenError('Only poojaris can view the dashboard.'))
    result = engine.get_provider_dashboard(request.actor.user_id)
    return result_response(result, serialize_dashboard)
