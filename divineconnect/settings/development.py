from .base import *

DEBUG = True

SECRET_KEY = SECRET_KEY or 'django-insecure-divineconnect-dev'

INTERNAL_IPS = ['127.0.0.1']

# No network calls to Razorpay unless explicitly configured
PAYMENT_GATEWAY = config('PAYMENT_GATEWAY', default='apps.payments.gateway.MockGateway')

# Relax axes in dev
AXES_ENABLED = False

LOG_LEVEL = 'DEBUG'
LOGGING['loggers']['apps']['level'] = LOG_LEVEL
