from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    path('create-order/',  views.create_order,  name='create_order'),
    path('verify/',        views.verify,        name='verify'),
    path('webhook/',       views.webhook,       name='webhook'),
    path('refund/',        views.refund,        name='refund'),
]
