"""
Booking API URLs (mounted at /api/v1/bookings/).

  GET  /                         List the caller's bookings
  POST /                         Create a booking
  GET  /provider/dashboard/      Poojari dashboard
  GET  /<uuid>/                  Booking detail
  PUT  /<uuid>/status/           Move along the state machine
  PUT  /<uuid>/cancel/           Cancel
"""
from django.urls import path
from . import views

app_name = 'bookings'

urlpatterns = [
    path('',                                views.booking_collection,  name='collection'),
    path('provider/dashboard/',             views.provider_dashboard,  name='provider_dashboard'),
    path('<uuid:booking_id>/',              views.booking_detail,      name='detail'),
    path('<uuid:booking_id>/status/',       views.booking_status,      name='status'),
    path('<uuid:booking_id>/cancel/',       views.booking_cancel,      name='cancel'),
]
