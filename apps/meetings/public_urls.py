from django.urls import path
from . import views

app_name = 'public_calendar'

urlpatterns = [
    path('<uuid:user_id>/', views.public_availability, name='availability'),
    path('<uuid:user_id>/book/', views.public_book, name='book'),
    path('<uuid:user_id>/cancel/<str:token>/', views.public_cancel, name='cancel'),
]
