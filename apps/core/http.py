"""
JSON transport helpers shared by the API views.

  json_body(request)           parse a JSON object body (camelCase keys -> snake_case)
  form_data(form_class, data)  validate with a Django form, return cleaned_data
  supplied(cleaned, data)      keep only the cleaned keys the client actually sent
  error_response(exc)          DomainError -> JsonResponse
  result_response(result, serializer, status=200, message='')
  actor_required               view decorator attaching request.actor
"""
import json
import re
from functools import wraps

from django.http import JsonResponse

from apps.accounts.identity import actor_from_user

from .exceptions import DomainError, InvalidInputError


_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_RE.sub("_", key).lower()


def json_body(request) -> dict:
    if not request.body:
        return {}
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidInputError('Request body must be valid JSON')
    if not isinstance(data, dict):
        raise InvalidInputError('Request body must be a JSON object')
    return {to_snake(k): v for k, v in data.items()}


def form_data(form_class, data: dict) -> dict:
    """Run a Django form over `data` and return its cleaned_data."""
    form = form_class(data=data)
    if not form.is_valid():
        raise InvalidInputError(errors=form.errors.get_json_data())
    return form.cleaned_data


def supplied(cleaned: dict, data: dict) -> dict:
    return {k: v for k, v in cleaned.items() if k in data}


def error_response(exc: DomainError) -> JsonResponse:
    payload = {
        'success': False,
        'message': exc.message,
        'code': exc.code,
    }
    errors = getattr(exc, 'errors', None)
    if errors:
        payload['errors'] = errors
    return JsonResponse(payload, status=exc.status_code)


def result_response(result, serializer=None, status=200, message='') -> JsonResponse:
    if not result.ok:
        return error_response(result.error)
    payload = {'success': True}
    if message:
        payload['message'] = message
    if serializer is not None:
        payload['data'] = serializer(result.value)
    return JsonResponse(payload, status=status)


def actor_required(view_func):
    """Require an authenticated user. Attaches request.actor for the view."""
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse(
                {'success': False, 'message': 'Authentication required.', 'code': 'unauthenticated'},
                status=401,
            )
        request.actor = actor_from_user(request.user)
        try:
            return view_func(request, *args, **kwargs)
        except InvalidInputError as exc:
            return error_response(exc)
    return wrapper
