from rest_framework import serializers

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Booking as shown to the calendar owner."""

    ends_at = serializers.DateTimeField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id',
            'booker_name',
            'booker_email',
            'booker_phone',
            'message',
            'starts_at',
            'ends_at',
            'duration',
            'location',
            'source',
            'status',
            'cancelled_at',
            'created_at',
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Input for an owner adding a meeting to their own calendar."""

    booker_name = serializers.CharField(max_length=150)
    booker_email = serializers.EmailField(required=False, allow_blank=True, default='')
    booker_phone = serializers.CharField(max_length=30, required=False, allow_blank=True, default='')
    message = serializers.CharField(required=False, allow_blank=True, default='')
    starts_at = serializers.DateTimeField()
    duration = serializers.IntegerField(min_value=1)
    location = serializers.CharField(max_length=255, required=False, default='Online meeting')


class PublicBookingSerializer(serializers.Serializer):
    """Input for booking a slot on a public calendar."""

    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=30)
    message = serializers.CharField(required=False, allow_blank=True, default='')
    date = serializers.DateField()
    time = serializers.RegexField(r'^([01][0-9]|2[0-3]):[0-5][0-9]$')
    duration = serializers.IntegerField(min_value=1)


class PublicBookingResultSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    starts_at = serializers.DateTimeField()
    duration = serializers.IntegerField()
    location = serializers.CharField()


class AvailabilityQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    days = serializers.IntegerField(required=False, min_value=1)


class SlotSerializer(serializers.Serializer):
    time = serializers.CharField()
    available = serializers.BooleanField()
    available_durations = serializers.ListField(child=serializers.IntegerField())
    all_durations = serializers.ListField(child=serializers.IntegerField())


class PublicAvailabilitySerializer(serializers.Serializer):
    user = serializers.DictField()
    availability = serializers.DictField(child=SlotSerializer(many=True))
    allowed_durations = serializers.ListField(child=serializers.IntegerField())
    timezone = serializers.CharField()
