from django.urls import path
from . import views

app_name = 'meetings'

urlpatterns = [
    path('', views.booking_list, name='booking-list'),
    path('preferences/', views.calendar_preferences, name='preferences'),
    path('<uuid:booking_id>/', views.booking_detail, name='booking-detail'),
]
