"""
Razorpay HMAC-SHA256 signature checks.

  verify_payment_signature(order_id, payment_id, signature)  client checkout callback
  verify_webhook_signature(raw_body, signature)              server-to-server webhook
"""
import hashlib
import hmac

from django.conf import settings


def compute_signature(message: bytes, secret: str) -> str:
    return hmac.new(key=secret.encode(), msg=message, digestmod=hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str) -> bool:
    """Verify Razorpay payment signature over "order_id|payment_id"."""
    message = f"{order_id}|{payment_id}".encode()
    computed = compute_signature(message, settings.RAZORPAY_KEY_SECRET)
    return hmac.compare_digest(computed.encode(), (signature or '').encode())


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    """Verify Razorpay webhook signature over the exact bytes received."""
    computed = compute_signature(raw_body, settings.RAZORPAY_WEBHOOK_SECRET)
    return hmac.compare_digest(computed.encode(), (signature or '').encode())
