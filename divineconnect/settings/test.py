from decimal import Decimal

from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

RAZORPAY_KEY_ID = 'rzp_test_key'
RAZORPAY_KEY_SECRET = 'test-key-secret'
RAZORPAY_WEBHOOK_SECRET = 'test-webhook-secret'

PAYMENT_GATEWAY = 'apps.payments.gateway.MockGateway'
PAYMENT_GATEWAY_TIMEOUT = 2
PLATFORM_FEE_PERCENT = Decimal('10')

AXES_ENABLED = False

LOGGING['loggers']['apps']['level'] = 'WARNING'
