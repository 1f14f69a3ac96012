"""
Pytest configuration and fixtures
"""
import hashlib
import hmac
import json
from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.test import Client
from django.utils import timezone

from apps.accounts.identity import actor_from_user
from apps.accounts.models import Role, User
from apps.bookings import engine
from apps.bookings.models import BookingStatus
from apps.payments import reconciler
from apps.providers.models import ProviderProfile

KEY_SECRET = 'test-key-secret'
WEBHOOK_SECRET = 'test-webhook-secret'
MODEL_BACKEND = 'django.contrib.auth.backends.ModelBackend'


def sign_payment(order_id, payment_id):
    message = f'{order_id}|{payment_id}'.encode()
    return hmac.new(KEY_SECRET.encode(), message, hashlib.sha256).hexdigest()


def sign_webhook(raw_body: bytes):
    return hmac.new(WEBHOOK_SECRET.encode(), raw_body, hashlib.sha256).hexdigest()


def webhook_body(event, payment_id, order_id, event_id=None, **entity):
    payload = {
        'entity': 'event',
        'event': event,
        'payload': {
            'payment': {
                'entity': {
                    'id': payment_id,
                    'entity': 'payment',
                    'order_id': order_id,
                    'amount': 150000,
                    'currency': 'INR',
                    **entity,
                },
            },
        },
    }
    if event_id:
        payload['id'] = event_id
    return json.dumps(payload).encode()


def booking_details(hour=10, days_ahead=3, **overrides):
    details = {
        'service_type': 'Satyanarayan Pooja',
        'service_description': 'Full pooja with katha',
        'scheduled_date': timezone.localdate() + timedelta(days=days_ahead),
        'scheduled_time': time(hour, 0),
        'duration_hours': Decimal('2.0'),
        'amount': Decimal('1500.00'),
        'address': '12 Temple Street',
        'city': 'Bengaluru',
        'state': 'Karnataka',
        'pincode': '560001',
        'contact_phone': '9876543210',
    }
    details.update(overrides)
    return details


# ── Users ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def requester(db):
    return User.objects.create_user(
        username='devotee', password='pass', name='Asha Devotee',
        phone='9000000001', role=Role.REQUESTER,
    )


@pytest.fixture
def other_requester(db):
    return User.objects.create_user(
        username='devotee2', password='pass', name='Ravi Devotee',
        phone='9000000002', role=Role.REQUESTER,
    )


@pytest.fixture
def provider(db):
    user = User.objects.create_user(
        username='poojari', password='pass', name='Pandit Sharma',
        phone='9000000003', role=Role.PROVIDER,
    )
    ProviderProfile.objects.create(
        user=user, is_verified=True, is_available=True,
        pricing_per_hour=Decimal('750.00'), languages=['Hindi', 'Kannada'],
    )
    return user


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='admin', password='pass', name='Support',
        phone='9000000004', role=Role.ADMIN, is_staff=True,
    )


@pytest.fixture
def actor_for():
    return actor_from_user


# ── Bookings & payments ───────────────────────────────────────────────────────

@pytest.fixture
def make_booking(provider):
    def _make(user, hour=10, days_ahead=3, **overrides):
        details = booking_details(hour=hour, days_ahead=days_ahead, **overrides)
        return engine.create_booking(actor_from_user(user), provider.id, details).unwrap()
    return _make


@pytest.fixture
def booking(requester, make_booking):
    return make_booking(requester)


@pytest.fixture
def complete(provider):
    """Drive a booking pending -> confirmed -> in_progress -> completed as its provider."""
    def _complete(booking):
        actor = actor_from_user(provider)
        for status in (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED):
            engine.update_booking_status(actor, booking.id, status).unwrap()
        booking.refresh_from_db()
        return booking
    return _complete


@pytest.fixture
def pay():
    """Create an order for a booking and verify it with a valid signature."""
    def _pay(booking, payment_id='pay_test_0001'):
        actor = actor_from_user(booking.requester)
        order = reconciler.create_payment_order(actor, booking.id).unwrap()
        reconciler.verify_payment(
            actor, booking.id, order['order_id'], payment_id,
            sign_payment(order['order_id'], payment_id),
        ).unwrap()
        booking.refresh_from_db()
        return order
    return _pay


# ── HTTP ──────────────────────────────────────────────────────────────────────

@pytest.fixture
def api_client():
    """Client logged in as the given user (or anonymous)."""
    def _client(user=None):
        client = Client()
        if user is not None:
            client.force_login(user, backend=MODEL_BACKEND)
        return client
    return _client
