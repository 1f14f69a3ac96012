"""
URL configuration for the DivineConnect booking & payment core.
"""
from django.contrib import admin
from django.conf import settings
from django.urls import path, include

urlpatterns = [
    path(settings.ADMIN_URL, admin.site.urls),
    path('api/v1/bookings/', include('apps.bookings.urls', namespace='bookings')),
    path('api/v1/payments/', include('apps.payments.urls', namespace='payments')),
    path('api/v1/reviews/', include('apps.reviews.urls', namespace='reviews')),
]
