from django.contrib import admin
from apps.meetings.models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['owner', 'booker_name', 'starts_at', 'duration', 'source', 'status']
    list_filter = ['source', 'status', 'starts_at']
    search_fields = ['owner__email', 'booker_name', 'booker_email']
    readonly_fields = ['cancellation_token', 'cancelled_at', 'created_at']
    date_hierarchy = 'starts_at'
