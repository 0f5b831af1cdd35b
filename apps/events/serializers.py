from decimal import Decimal

from rest_framework import serializers

from apps.accounts.serializers import UserMinimalSerializer
from .models import (
    BulkRegistration,
    Event,
    EventCategory,
    EventOrganiser,
    EventRegistration,
    Ticket,
    Visibility,
)


class EventSerializer(serializers.ModelSerializer):
    """Full event representation."""

    organiser = UserMinimalSerializer(read_only=True)
    remaining_capacity = serializers.SerializerMethodField()

    class Meta:
        model = Event
        fields = [
            'id',
            'organiser',
            'title',
            'description',
            'category',
            'event_type',
            'ticket_price',
            'currency',
            'image_url',
            'event_date',
            'end_date',
            'location',
            'city',
            'max_attendees',
            'current_attendees',
            'remaining_capacity',
            'allow_bulk_registrations',
            'status',
            'visibility',
            'listing_fee',
            'credit_applied',
            'published_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_remaining_capacity(self, obj):
        return obj.remaining_capacity()


class EventListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for event lists."""

    class Meta:
        model = Event
        fields = [
            'id',
            'title',
            'category',
            'event_type',
            'ticket_price',
            'event_date',
            'city',
            'location',
            'image_url',
            'max_attendees',
            'current_attendees',
            'allow_bulk_registrations',
            'status',
        ]
        read_only_fields = fields


class EventCreateSerializer(serializers.Serializer):
    """Input for creating an event."""

    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=EventCategory.choices, default=EventCategory.OTHER)
    ticket_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal('0.00'), default=Decimal('0.00')
    )
    image_url = serializers.URLField(required=False, allow_blank=True)
    event_date = serializers.DateTimeField()
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    location = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    max_attendees = serializers.IntegerField(min_value=1)
    allow_bulk_registrations = serializers.BooleanField(default=False)
    visibility = serializers.ChoiceField(choices=Visibility.choices, default=Visibility.PUBLIC)

    def validate(self, attrs):
        end_date = attrs.get('end_date')
        event_date = attrs.get('event_date')
        if end_date and event_date and end_date < event_date:
            raise serializers.ValidationError({'end_date': 'End date cannot be before the event date'})
        return attrs


class EventUpdateSerializer(EventCreateSerializer):
    """Partial input for editing a draft event."""

    def __init__(self, *args, **kwargs):
        kwargs['partial'] = True
        super().__init__(*args, **kwargs)


class PublishResultSerializer(serializers.Serializer):
    status = serializers.CharField()
    event = EventSerializer(required=False)
    credit_applied = serializers.CharField(required=False)
    remaining_credits = serializers.IntegerField(required=False)
    payment_url = serializers.URLField(required=False)
    reference = serializers.CharField(required=False)
    listing_fee = serializers.IntegerField(required=False)


class EventOrganiserSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventOrganiser
        fields = [
            'id',
            'business_name',
            'business_email',
            'phone',
            'bank_name',
            'account_holder',
            'status',
            'paystack_subaccount_code',
            'created_at',
        ]
        read_only_fields = fields


class OrganiserRegistrationSerializer(serializers.Serializer):
    business_name = serializers.CharField(max_length=200)
    business_email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bank_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    bank_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    account_number = serializers.RegexField(r'^\d{6,20}$', required=False, allow_blank=True)
    account_holder = serializers.CharField(max_length=200, required=False, allow_blank=True)


class TicketSerializer(serializers.ModelSerializer):
    event_title = serializers.CharField(source='event.title', read_only=True)
    event_date = serializers.DateTimeField(source='event.event_date', read_only=True)

    class Meta:
        model = Ticket
        fields = [
            'id',
            'event',
            'event_title',
            'event_date',
            'registration',
            'bulk_registration',
            'attendee_name',
            'attendee_email',
            'attendee_phone',
            'attendee_index',
            'ticket_type',
            'status',
            'checked_in',
            'checked_in_at',
            'created_at',
        ]
        read_only_fields = fields


class AttendeeSerializer(serializers.ModelSerializer):
    """Door list entry for organisers."""

    class Meta:
        model = Ticket
        fields = [
            'id',
            'user',
            'attendee_name',
            'attendee_email',
            'attendee_phone',
            'ticket_type',
            'checked_in',
            'checked_in_at',
        ]
        read_only_fields = fields


class EventRegistrationSerializer(serializers.ModelSerializer):
    class Meta:
        model = EventRegistration
        fields = [
            'id',
            'event',
            'user',
            'status',
            'payment_status',
            'amount',
            'payment_reference',
            'payment_url',
            'created_at',
        ]
        read_only_fields = fields


class RegistrationResultSerializer(serializers.Serializer):
    registration = EventRegistrationSerializer()
    ticket = TicketSerializer()
    payment_required = serializers.BooleanField()
    payment_url = serializers.URLField(required=False)
    reference = serializers.CharField(required=False)


class BulkAttendeeSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class BulkRegistrationCreateSerializer(serializers.Serializer):
    """
    Input for a bulk purchase.

    Each attendee is checked for shape here; counts, bounds and duplicate
    emails are business rules enforced by the service.
    """

    quantity = serializers.IntegerField()
    attendees = serializers.ListField(child=BulkAttendeeSerializer(), allow_empty=True)


class BulkRegistrationSerializer(serializers.ModelSerializer):
    event_title = serializers.CharField(source='event.title', read_only=True)

    class Meta:
        model = BulkRegistration
        fields = [
            'id',
            'event',
            'event_title',
            'quantity',
            'attendee_details',
            'total_amount',
            'status',
            'payment_status',
            'payment_reference',
            'payment_url',
            'failure_reason',
            'completed_at',
            'created_at',
        ]
        read_only_fields = fields


class BulkRegistrationDetailSerializer(BulkRegistrationSerializer):
    tickets = serializers.SerializerMethodField()

    class Meta(BulkRegistrationSerializer.Meta):
        fields = BulkRegistrationSerializer.Meta.fields + ['tickets']
        read_only_fields = fields

    def get_tickets(self, obj):
        tickets = obj.tickets.order_by('attendee_index')
        return TicketSerializer(tickets, many=True).data


class CheckInSerializer(serializers.Serializer):
    qr_data = serializers.JSONField()


class CreditStatusSerializer(serializers.Serializer):
    tier = serializers.CharField()
    welcome_credit_used = serializers.BooleanField()
    period = serializers.CharField()
    monthly_credits = serializers.DictField()
    price_after_credits = serializers.IntegerField()
