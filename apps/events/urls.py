from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'events'

router = DefaultRouter()
router.register(r'', views.EventViewSet, basename='event')

urlpatterns = [
    # Non-event routes come first so the router's detail pattern never shadows them
    path('credits/', views.listing_credits, name='listing-credits'),
    path('organiser/', views.organiser_profile, name='organiser-profile'),
    path('tickets/', views.my_tickets, name='my-tickets'),
    path('tickets/<uuid:ticket_id>/qr/', views.ticket_qr, name='ticket-qr'),
    path('bulk-registrations/', views.my_bulk_registrations, name='bulk-registration-list'),
    path(
        'bulk-registrations/<uuid:bulk_registration_id>/',
        views.bulk_registration_detail,
        name='bulk-registration-detail'
    ),

    # Event ViewSet routes
    # GET    /api/events/                       - Published events
    # POST   /api/events/                       - Create draft event
    # GET    /api/events/mine/                  - My events
    # GET    /api/events/{id}/                  - Event detail
    # PATCH  /api/events/{id}/                  - Edit draft
    # DELETE /api/events/{id}/                  - Cancel event
    # POST   /api/events/{id}/publish/          - Publish
    # POST   /api/events/{id}/register/         - Register
    # DELETE /api/events/{id}/register/         - Unregister
    # POST   /api/events/{id}/bulk-register/    - Bulk tickets
    # POST   /api/events/{id}/check-in/         - Scan ticket
    # GET    /api/events/{id}/check-in/stats/   - Check-in stats
    # GET    /api/events/{id}/attendees/        - Door list
    path('', include(router.urls)),
]
