def _money(value):
    return str(value) if value is not None else None


def serialize_transaction(txn) -> dict:
    return {
        'id': str(txn.id),
        'booking_id': str(txn.booking_id),
        'amount': _money(txn.amount),
        'currency': txn.currency,
        'payment_provider': txn.payment_provider,
        'gateway_order_id': txn.gateway_order_id,
        'gateway_payment_id': txn.gateway_payment_id,
        'gateway_transaction_id': txn.gateway_transaction_id,
        'status': txn.status,
        'transaction_type': txn.transaction_type,
        'failure_reason': txn.failure_reason,
        'processed_at': txn.processed_at.isoformat() if txn.processed_at else None,
        'refunded_at': txn.refunded_at.isoformat() if txn.refunded_at else None,
        'refund_amount': _money(txn.refund_amount),
        'platform_fee': _money(txn.platform_fee),
        'gateway_fee': _money(txn.gateway_fee),
        'net_amount': _money(txn.net_amount),
        'created_at': txn.created_at.isoformat(),
    }


def serialize_order(handle: dict) -> dict:
    return {
        'order_id': handle['order_id'],
        'amount': handle['amount'],
        'currency': handle['currency'],
        'key': handle['key'],
    }


def serialize_verified(booking) -> dict:
    return {
        'booking_id': str(booking.id),
        'status': booking.status,
        'payment_status': booking.payment_status,
    }


def serialize_refund(refund: dict) -> dict:
    return {
        'refund_id': refund['refund_id'],
        'amount': _money(refund['amount']),
    }
