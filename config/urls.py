"""
URL configuration for the XS Card backend.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/4.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenRefreshView

from apps.cards.views import save_contact_page
from config.views import health_check

urlpatterns = [
    # Health check (for Render)
    path('api/health/', health_check, name='health-check'),

    # Admin
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='api-schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='api-schema'), name='api-docs'),

    # Authentication
    path('api/auth/', include('apps.accounts.urls')),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # API endpoints
    path('api/cards/', include('apps.cards.urls')),
    path('api/events/', include('apps.events.urls')),
    path('api/payments/', include('apps.payments.urls')),
    path('api/subscriptions/', include('apps.subscriptions.urls')),
    path('api/meetings/', include('apps.meetings.urls')),

    # Public booking pages (no auth)
    path('public/calendar/', include('apps.meetings.public_urls')),

    # Save-contact page behind the card QR code (no auth)
    path('saveContact', save_contact_page, name='save-contact'),
]


# Custom error handlers
handler404 = 'config.views.error_404'
handler500 = 'config.views.error_500'
