from django.urls import path
from . import views

app_name = 'reviews'

urlpatterns = [
    path('',                    views.review_create,  name='create'),
    path('<uuid:review_id>/',   views.review_detail,  name='detail'),
]
