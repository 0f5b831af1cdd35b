from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .serializers import (
    BookingSerializer,
    BookingCreateSerializer,
    PublicBookingSerializer,
    PublicBookingResultSerializer,
    AvailabilityQuerySerializer,
    PublicAvailabilitySerializer,
)
from .services import (
    get_preferences,
    update_preferences,
    list_bookings,
    create_owner_booking,
    delete_booking,
    get_public_availability,
    create_public_booking,
    cancel_booking_by_token,
    # Exceptions
    CalendarOwnerNotFoundError,
    BookingDisabledError,
    InvalidPreferencesError,
    InvalidBookingError,
    SlotUnavailableError,
    BookingNotFoundError,
    BookingInPastError,
)


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


def _owner_errors(e):
    if isinstance(e, CalendarOwnerNotFoundError):
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)


# =============================================================================
# Owner endpoints
# =============================================================================

@extend_schema(
    methods=['GET'],
    parameters=[
        OpenApiParameter('upcoming', bool, required=False),
        OpenApiParameter('include_cancelled', bool, required=False),
    ],
    responses={200: BookingSerializer(many=True)},
    description="Bookings on the caller's calendar.",
    tags=['meetings'],
)
@extend_schema(
    methods=['POST'],
    request=BookingCreateSerializer,
    responses={201: BookingSerializer},
    description="Add a meeting to the caller's calendar.",
    tags=['meetings'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def booking_list(request):
    if request.method == 'GET':
        bookings = list_bookings(
            owner=request.user,
            include_cancelled=request.query_params.get('include_cancelled') == 'true',
            upcoming=request.query_params.get('upcoming') == 'true',
        )
        return Response(BookingSerializer(bookings, many=True).data)

    serializer = BookingCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    booking = create_owner_booking(owner=request.user, **serializer.validated_data)
    return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={204: None, 404: ErrorResponseSerializer},
    description="Remove a booking from the caller's calendar.",
    tags=['meetings'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def booking_detail(request, booking_id):
    try:
        delete_booking(owner=request.user, booking_id=booking_id)
    except BookingNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    methods=['GET'],
    responses={200: OpenApiTypes.OBJECT},
    description="The caller's calendar preferences merged over the defaults.",
    tags=['meetings'],
)
@extend_schema(
    methods=['PUT'],
    request=OpenApiTypes.OBJECT,
    responses={200: OpenApiTypes.OBJECT, 400: ErrorResponseSerializer},
    description="Replace the caller's calendar preferences.",
    tags=['meetings'],
)
@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def calendar_preferences(request):
    if request.method == 'GET':
        return Response(get_preferences(request.user))

    try:
        preferences = update_preferences(user=request.user, data=request.data)
    except InvalidPreferencesError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(preferences)


# =============================================================================
# Public calendar
# =============================================================================

@extend_schema(
    parameters=[AvailabilityQuerySerializer],
    responses={200: PublicAvailabilitySerializer, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Bookable slots on a user's calendar. No authentication.",
    tags=['public calendar'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_availability(request, user_id):
    query = AvailabilityQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    try:
        result = get_public_availability(
            user_id=user_id,
            start_date=query.validated_data.get('start_date'),
            days=query.validated_data.get('days'),
        )
    except (CalendarOwnerNotFoundError, BookingDisabledError) as e:
        return _owner_errors(e)

    return Response(result)


@extend_schema(
    request=PublicBookingSerializer,
    responses={
        201: PublicBookingResultSerializer,
        400: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
        409: ErrorResponseSerializer,
    },
    description="Book a slot on a user's calendar. Both parties are emailed.",
    tags=['public calendar'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_book(request, user_id):
    serializer = PublicBookingSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        booking = create_public_booking(
            user_id=user_id,
            name=data['name'],
            email=data['email'],
            phone=data['phone'],
            message=data['message'],
            booking_date=data['date'],
            booking_time=data['time'],
            duration=data['duration'],
        )
    except (CalendarOwnerNotFoundError, BookingDisabledError) as e:
        return _owner_errors(e)
    except InvalidBookingError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except SlotUnavailableError as e:
        return Response({'error': str(e)}, status=status.HTTP_409_CONFLICT)

    return Response(PublicBookingResultSerializer(booking).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: OpenApiTypes.OBJECT, 400: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Cancel a booking from the link in the booker's confirmation email.",
    tags=['public calendar'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def public_cancel(request, user_id, token):
    try:
        booking = cancel_booking_by_token(user_id=user_id, token=token)
    except BookingNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except BookingInPastError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'status': booking.status,
        'message': 'Your booking has been cancelled',
        'starts_at': booking.starts_at,
    })
