"""
Review API views (mounted at /api/v1/reviews/).

  POST   /          create_review (requester of a completed booking)
  GET    /<uuid>/   get_review    (public)
  PUT    /<uuid>/   update_review (author only)
  DELETE /<uuid>/   delete_review (author only)
"""
from django.views.decorators.http import require_http_methods, require_POST

from apps.core.http import actor_required, form_data, json_body, result_response, supplied
from apps.core.patch import patch_from_data

from . import services
from .forms import ReviewCreateForm, ReviewUpdateForm
from .serializers import serialize_review, serialize_review_detail


@require_POST
@actor_required
def review_create(request):
    cleaned = form_data(ReviewCreateForm, json_body(request))
    result = services.create_review(
        request.actor,
        cleaned.pop('booking_id'),
        cleaned.pop('rating'),
        comment=cleaned.get('comment', ''),
        service_quality=cleaned.get('service_quality'),
        punctuality=cleaned.get('punctuality'),
        communication=cleaned.get('communication'),
        would_recommend=cleaned.get('would_recommend'),
    )
    return result_response(result, serialize_review, status=201, message='Review created successfully')


@require_http_methods(['GET', 'PUT', 'DELETE'])
def review_detail(request, review_id):
    if request.method == 'GET':
        result = services.get_review(review_id)
        return result_response(result, serialize_review_detail)
    if request.method == 'PUT':
        return _update_review(request, review_id)
    return _delete_review(request, review_id)


@actor_required
def _update_review(request, review_id):
    data = json_body(request)
    cleaned = supplied(form_data(ReviewUpdateForm, data), data)
    patch = patch_from_data(services.ReviewPatch, cleaned)
    result = services.update_review(request.actor, review_id, patch)
    return result_response(result, serialize_review, message='Review updated successfully')


@actor_required
def _delete_review(request, review_id):
    result = services.delete_review(request.actor, review_id)
    return result_response(result, message='Review deleted successfully')
