from django.contrib import admin
from apps.events.models import (
    BulkRegistration,
    CheckInToken,
    Event,
    EventOrganiser,
    EventRegistration,
    ListingCreditBucket,
    OrganiserStatus,
    Ticket,
)


class TicketInline(admin.TabularInline):
    """Read-only tickets of a bulk registration."""
    model = Ticket
    extra = 0
    fields = ['attendee_index', 'attendee_name', 'attendee_email', 'status', 'checked_in']
    readonly_fields = fields
    can_delete = False


@admin.register(EventOrganiser)
class EventOrganiserAdmin(admin.ModelAdmin):
    list_display = ['business_name', 'user', 'status', 'paystack_subaccount_code', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['business_name', 'business_email', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
    actions = ['approve_organisers', 'suspend_organisers']

    @admin.action(description='Approve selected organisers')
    def approve_organisers(self, request, queryset):
        updated = queryset.update(status=OrganiserStatus.ACTIVE)
        self.message_user(request, f'Approved {updated} organiser(s).')

    @admin.action(description='Suspend selected organisers')
    def suspend_organisers(self, request, queryset):
        updated = queryset.update(status=OrganiserStatus.SUSPENDED)
        self.message_user(request, f'Suspended {updated} organiser(s).')


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    """Admin interface for events."""

    list_display = [
        'title',
        'organiser',
        'status',
        'event_type',
        'ticket_price',
        'event_date',
        'city',
        'current_attendees',
        'max_attendees',
    ]
    list_filter = ['status', 'event_type', 'category', 'visibility', 'city']
    search_fields = ['title', 'description', 'location', 'organiser__email']
    readonly_fields = [
        'current_attendees',
        'payment_reference',
        'payment_url',
        'listing_fee',
        'credit_applied',
        'payment_initiated_at',
        'published_at',
        'created_at',
        'updated_at',
    ]
    date_hierarchy = 'event_date'
    ordering = ['-event_date']

    fieldsets = (
        ('Basic Information', {
            'fields': ('organiser', 'title', 'description', 'category', 'image_url')
        }),
        ('When & Where', {
            'fields': ('event_date', 'end_date', 'location', 'city')
        }),
        ('Tickets', {
            'fields': (
                'event_type',
                'ticket_price',
                'currency',
                'max_attendees',
                'current_attendees',
                'allow_bulk_registrations',
            )
        }),
        ('Publishing', {
            'fields': (
                'status',
                'visibility',
                'listing_fee',
                'credit_applied',
                'payment_reference',
                'payment_url',
                'payment_initiated_at',
                'published_at',
            ),
            'classes': ('collapse',),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(EventRegistration)
class EventRegistrationAdmin(admin.ModelAdmin):
    list_display = ['user', 'event', 'status', 'payment_status', 'amount', 'created_at']
    list_filter = ['status', 'payment_status']
    search_fields = ['user__email', 'event__title', 'payment_reference']
    readonly_fields = ['payment_reference', 'payment_url', 'created_at', 'updated_at']


@admin.register(BulkRegistration)
class BulkRegistrationAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'event', 'quantity', 'total_amount', 'status', 'payment_status', 'created_at']
    list_filter = ['status', 'payment_status']
    search_fields = ['user__email', 'event__title', 'payment_reference']
    readonly_fields = [
        'attendee_details',
        'payment_reference',
        'payment_url',
        'failure_reason',
        'completed_at',
        'created_at',
        'updated_at',
    ]
    inlines = [TicketInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['attendee_name', 'attendee_email', 'event', 'ticket_type', 'status', 'checked_in']
    list_filter = ['status', 'ticket_type', 'checked_in']
    search_fields = ['attendee_name', 'attendee_email', 'event__title']
    readonly_fields = ['checked_in_at', 'checked_in_by', 'created_at', 'updated_at']


@admin.register(CheckInToken)
class CheckInTokenAdmin(admin.ModelAdmin):
    list_display = ['ticket', 'event', 'used', 'expires_at', 'checked_in_at']
    list_filter = ['used']
    readonly_fields = ['token', 'issued_timestamp', 'created_at']


@admin.register(ListingCreditBucket)
class ListingCreditBucketAdmin(admin.ModelAdmin):
    list_display = ['user', 'period', 'tier', 'credits_allocated', 'credits_used']
    list_filter = ['period', 'tier']
    search_fields = ['user__email']
