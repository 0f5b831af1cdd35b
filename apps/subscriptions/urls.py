from django.urls import path
from . import views

app_name = 'subscriptions'

urlpatterns = [
    path('revenuecat/webhook/', views.revenuecat_webhook, name='revenuecat-webhook'),
    path('status/', views.subscription_status, name='status'),
    path('sync/', views.sync_subscription, name='sync'),
]
