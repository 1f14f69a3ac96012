"""
WSGI config for the DivineConnect booking & payment core.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'divineconnect.settings.production')

application = get_wsgi_application()
