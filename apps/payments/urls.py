from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # Paystack
    path('paystack/webhook/', views.paystack_webhook, name='paystack-webhook'),
    path('paystack/callback/', views.paystack_callback, name='paystack-callback'),
]
