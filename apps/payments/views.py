"""
Payment API views.

Flow:
  1. create_order  → gateway order for a PENDING booking → client opens checkout
  2. verify        → client posts order/payment ids + signature → booking CONFIRMED
  3. webhook       → gateway server-side event → authoritative Transaction state
  4. refund        → requester / provider / admin refunds a completed payment
"""
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from apps.core.http import actor_required, error_response, form_data, json_body, result_response

from . import reconciler
from .forms import CreateOrderForm, RefundForm, VerifyPaymentForm
from .serializers import serialize_order, serialize_refund, serialize_verified

logger = logging.getLogger(__name__)


@require_POST
@actor_required
def create_order(request):
    cleaned = form_data(CreateOrderForm, json_body(request))
    result = reconciler.create_payment_order(
        request.actor, cleaned['booking_id'], amount=cleaned.get('amount'),
    )
    return result_response(result, serialize_order)


@require_POST
@actor_required
def verify(request):
    cleaned = form_data(VerifyPaymentForm, json_body(request))
    result = reconciler.verify_payment(
        request.actor,
        cleaned['booking_id'],
        order_id=cleaned['razorpay_order_id'],
        payment_id=cleaned['razorpay_payment_id'],
        signature=cleaned['razorpay_signature'],
    )
    return result_response(result, serialize_verified, message='Payment verified successfully')


@require_POST
@actor_required
def refund(request):
    cleaned = form_data(RefundForm, json_body(request))
    result = reconciler.process_refund(
        request.actor,
        cleaned['transaction_id'],
        amount=cleaned.get('amount'),
        reason=cleaned['reason'],
    )
    return result_response(result, serialize_refund, message='Refund processed successfully')


# ─────────────────────────────────────────────────────────────────────────────
# Webhook
# ─────────────────────────────────────────────────────────────────────────────

@csrf_exempt
@require_POST
def webhook(request):
    """
    Razorpay fires this endpoint for every payment event.
    Must be CSRF-exempt; security comes from HMAC-SHA256 signature check.
    """
    signature = request.headers.get('X-Razorpay-Signature', '')
    event_id = request.headers.get('X-Razorpay-Event-Id', '')
    logger.info('Webhook: Received event. Signature length: %d', len(signature))

    try:
        result = reconciler.handle_webhook(request.body, signature, event_id=event_id)
    except Exception as exc:
        logger.exception('Webhook processing error: %s', exc)
        return _dead_letter(request.body, signature, event_id, exc)

    if not result.ok:
        return error_response(result.error)
    return JsonResponse({'success': True, 'status': result.value.status})


def _dead_letter(raw_body, signature, event_id, error):
    """
    Acknowledge a crashed delivery only once it is stored for replay.
    Otherwise answer 500 so the gateway redelivers it.
    """
    try:
        record = reconciler.record_failed_delivery(raw_body, signature, event_id=event_id, error=error)
    except Exception as exc:
        logger.exception('Webhook could not be dead-lettered: %s', exc)
        record = None
    if record is None:
        return JsonResponse(
            {'success': False, 'message': 'Webhook could not be processed', 'code': 'retry'},
            status=500,
        )
    return JsonResponse({'success': True, 'status': record.status})
