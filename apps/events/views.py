from django.db.models import Q
from django.http import HttpResponse
from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema

from .models import BulkRegistration, Event, EventOrganiser, EventStatus, Ticket, Visibility
from .serializers import (
    EventSerializer,
    EventListSerializer,
    EventCreateSerializer,
    EventUpdateSerializer,
    PublishResultSerializer,
    EventOrganiserSerializer,
    OrganiserRegistrationSerializer,
    TicketSerializer,
    AttendeeSerializer,
    RegistrationResultSerializer,
    EventRegistrationSerializer,
    BulkRegistrationCreateSerializer,
    BulkRegistrationSerializer,
    BulkRegistrationDetailSerializer,
    CheckInSerializer,
    CreditStatusSerializer,
)
from .services import (
    create_event,
    update_event,
    cancel_event,
    publish_event,
    get_credit_status,
    register_organiser,
    register_for_event,
    unregister_from_event,
    create_bulk_registration,
    get_bulk_registration,
    cancel_bulk_registration,
    generate_ticket_qr,
    process_check_in,
    get_check_in_stats,
    get_attendees,
    # Exceptions
    EventNotFoundError,
    EventNotPublishedError,
    InvalidEventDataError,
    NotEventOwnerError,
    EventStateError,
    OrganiserNotActiveError,
    OrganiserAlreadyExistsError,
    CapacityExceededError,
    AlreadyRegisteredError,
    PaymentPendingError,
    RegistrationNotFoundError,
    InvalidAttendeesError,
    BulkRegistrationsNotAllowedError,
    BulkRegistrationNotFoundError,
    BulkRegistrationStateError,
    PaymentInitializationError,
    PaymentMismatchError,
    TicketNotFoundError,
    CheckInError,
    NotBulkRegistrationOwnerError,
)


class EventPagination(PageNumberPagination):
    """Custom pagination for events."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class EventViewSet(viewsets.ModelViewSet):
    """
    ViewSet for events.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Published public events (filter by category, city)
    create: Create a draft event
    retrieve: Event detail (drafts only for their organiser)
    partial_update: Edit a draft event (organiser only)
    destroy: Cancel the event and its tickets (organiser only)
    """

    queryset = Event.objects.select_related('organiser')
    serializer_class = EventSerializer
    pagination_class = EventPagination
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    lookup_value_regex = '[0-9a-f-]{36}'

    def get_queryset(self):
        queryset = Event.objects.select_related('organiser')

        if self.action == 'list':
            queryset = queryset.filter(status=EventStatus.PUBLISHED, visibility=Visibility.PUBLIC)
            category = self.request.query_params.get('category')
            city = self.request.query_params.get('city')
            if category:
                queryset = queryset.filter(category=category)
            if city:
                queryset = queryset.filter(city__iexact=city)
            return queryset

        if self.action == 'mine':
            return queryset.filter(organiser=self.request.user).order_by('-created_at')

        # Detail: published events for everyone, any status for the organiser
        visible = Q(status__in=[EventStatus.PUBLISHED, EventStatus.CANCELLED])
        if self.request.user.is_authenticated:
            visible |= Q(organiser=self.request.user)
        return queryset.filter(visible)

    def get_serializer_class(self):
        """Use different serializers for different actions."""
        if self.action in ('list', 'mine'):
            return EventListSerializer
        elif self.action == 'create':
            return EventCreateSerializer
        elif self.action == 'partial_update':
            return EventUpdateSerializer
        return EventSerializer

    def get_permissions(self):
        """Set permissions based on action."""
        if self.action in ('list', 'retrieve'):
            return [AllowAny()]
        return [IsAuthenticated()]

    def create(self, request, *args, **kwargs):
        """Create a draft event."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            event = create_event(organiser=request.user, **serializer.validated_data)
        except OrganiserNotActiveError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except InvalidEventDataError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        """Edit a draft event."""
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            event = update_event(event_id=kwargs['pk'], user=request.user, **serializer.validated_data)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (NotEventOwnerError, OrganiserNotActiveError) as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except (EventStateError, InvalidEventDataError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(EventSerializer(event).data)

    def destroy(self, request, *args, **kwargs):
        """Cancel an event."""
        try:
            cancel_event(event_id=kwargs['pk'], user=request.user)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotEventOwnerError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except EventStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def mine(self, request):
        """Events organised by the current user."""
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response(serializer.data)

    @extend_schema(request=None, responses={200: PublishResultSerializer})
    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        """Publish an event, using a listing credit or starting a fee checkout."""
        try:
            result = publish_event(event_id=pk, user=request.user)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotEventOwnerError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except EventStateError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentInitializationError as e:
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        if 'event' in result:
            result['event'] = EventSerializer(result['event']).data
        return Response(result)

    @extend_schema(request=None, responses={201: RegistrationResultSerializer, 200: EventRegistrationSerializer})
    @action(detail=True, methods=['post', 'delete'])
    def register(self, request, pk=None):
        """Register for (POST) or leave (DELETE) an event."""
        if request.method == 'DELETE':
            try:
                registration = unregister_from_event(event_id=pk, user=request.user)
            except (EventNotFoundError, RegistrationNotFoundError) as e:
                return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
            return Response(EventRegistrationSerializer(registration).data)

        try:
            result = register_for_event(event_id=pk, user=request.user)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except PaymentPendingError as e:
            return Response(
                {'error': str(e), 'payment_url': e.payment_url},
                status=status.HTTP_400_BAD_REQUEST
            )
        except (EventNotPublishedError, InvalidEventDataError, AlreadyRegisteredError,
                CapacityExceededError, PaymentMismatchError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentInitializationError as e:
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(RegistrationResultSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=BulkRegistrationCreateSerializer, responses={201: BulkRegistrationSerializer})
    @action(detail=True, methods=['post'], url_path='bulk-register')
    def bulk_register(self, request, pk=None):
        """Buy tickets for several named attendees in one payment."""
        serializer = BulkRegistrationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = create_bulk_registration(
                event_id=pk,
                user=request.user,
                quantity=serializer.validated_data['quantity'],
                attendees=serializer.validated_data['attendees'],
            )
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (InvalidAttendeesError, EventNotPublishedError,
                BulkRegistrationsNotAllowedError, CapacityExceededError) as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        except PaymentInitializationError as e:
            return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

        bulk = result['bulk_registration']
        data = {
            'bulk_registration_id': str(bulk.id),
            'status': bulk.status,
            'quantity': bulk.quantity,
            'total_amount': str(bulk.total_amount),
            'payment_required': result['payment_required'],
        }
        if result['payment_required']:
            data['payment_url'] = result['payment_url']
            data['reference'] = result['reference']
        else:
            data['ticket_ids'] = [str(ticket.id) for ticket in result['tickets']]
        return Response(data, status=status.HTTP_201_CREATED)

    @extend_schema(request=CheckInSerializer, responses={200: TicketSerializer})
    @action(detail=True, methods=['post'], url_path='check-in')
    def check_in(self, request, pk=None):
        """Scan a ticket QR code at the door (organiser only)."""
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ticket = process_check_in(
                event_id=pk,
                organiser=request.user,
                qr_data=serializer.validated_data['qr_data'],
            )
        except CheckInError as e:
            return Response({'error': str(e), 'code': e.code}, status=e.status_code)

        return Response({
            'message': 'Check-in successful',
            'ticket': TicketSerializer(ticket).data,
        })

    @action(detail=True, methods=['get'], url_path='check-in/stats')
    def check_in_stats(self, request, pk=None):
        """Check-in progress for the organiser."""
        try:
            stats = get_check_in_stats(event_id=pk, organiser=request.user)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotEventOwnerError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        return Response(stats)

    @action(detail=True, methods=['get'])
    def attendees(self, request, pk=None):
        """Door list for the organiser."""
        try:
            tickets = get_attendees(event_id=pk, organiser=request.user)
        except EventNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotEventOwnerError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        return Response(AttendeeSerializer(tickets, many=True).data)


@extend_schema(
    responses={200: CreditStatusSerializer},
    description="Listing credits left for publishing paid events.",
    tags=['events'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def listing_credits(request):
    """Get the current user's listing credit status."""
    return Response(get_credit_status(user=request.user))


@extend_schema(
    methods=['GET'],
    responses={200: EventOrganiserSerializer},
    description="Get the current user's organiser profile.",
    tags=['events'],
)
@extend_schema(
    methods=['POST'],
    request=OrganiserRegistrationSerializer,
    responses={201: EventOrganiserSerializer},
    description="Register as an event organiser with payout details.",
    tags=['events'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def organiser_profile(request):
    """Get or create the organiser profile."""
    if request.method == 'GET':
        organiser = EventOrganiser.objects.filter(user=request.user).first()
        if organiser is None:
            return Response(
                {'error': 'You are not registered as an organiser'},
                status=status.HTTP_404_NOT_FOUND
            )
        return Response(EventOrganiserSerializer(organiser).data)

    serializer = OrganiserRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        organiser = register_organiser(user=request.user, **serializer.validated_data)
    except OrganiserAlreadyExistsError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response(EventOrganiserSerializer(organiser).data, status=status.HTTP_201_CREATED)


@extend_schema(
    responses={200: TicketSerializer(many=True)},
    description="Get all tickets held by the current user.",
    tags=['events'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_tickets(request):
    """Get the current user's tickets."""
    tickets = Ticket.objects.filter(user=request.user).select_related('event').order_by('-created_at')
    return Response(TicketSerializer(tickets, many=True).data)


@extend_schema(
    responses={(200, 'image/png'): OpenApiTypes.BINARY},
    description="Check-in QR code for one of the current user's active tickets.",
    tags=['events'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ticket_qr(request, ticket_id):
    """PNG QR code for a ticket."""
    try:
        png = generate_ticket_qr(ticket_id=ticket_id, user=request.user)
    except TicketNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except EventStateError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return HttpResponse(png, content_type='image/png')


@extend_schema(
    responses={200: BulkRegistrationSerializer(many=True)},
    description="Get the current user's bulk registrations, newest first.",
    tags=['events'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_bulk_registrations(request):
    """List the current user's bulk registrations."""
    bulks = BulkRegistration.objects.filter(user=request.user).select_related('event')
    return Response(BulkRegistrationSerializer(bulks, many=True).data)


@extend_schema(
    methods=['GET'],
    responses={200: BulkRegistrationDetailSerializer},
    description="Bulk registration with its tickets.",
    tags=['events'],
)
@extend_schema(
    methods=['DELETE'],
    responses={200: BulkRegistrationSerializer},
    description="Cancel a bulk registration that is still awaiting payment.",
    tags=['events'],
)
@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def bulk_registration_detail(request, bulk_registration_id):
    """Get or cancel a bulk registration."""
    try:
        if request.method == 'GET':
            bulk = get_bulk_registration(bulk_registration_id=bulk_registration_id, user=request.user)
            return Response(BulkRegistrationDetailSerializer(bulk).data)

        bulk = cancel_bulk_registration(bulk_registration_id=bulk_registration_id, user=request.user)
        return Response(BulkRegistrationSerializer(bulk).data)
    except BulkRegistrationNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except NotBulkRegistrationOwnerError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except BulkRegistrationStateError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
