from django.http import HttpResponse
from django.urls import reverse
from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .serializers import (
    CardSerializer,
    CardListSerializer,
    CardCreateSerializer,
    CardUpdateSerializer,
    CardColorSerializer,
    WalletPreviewSerializer,
    PublicCardSerializer,
    CardAddressSerializer,
    ContactSerializer,
    ContactCreateSerializer,
    ContactUpdateSerializer,
    SavedContactSerializer,
    SaveContactPageSerializer,
)
from .services import (
    list_cards,
    create_card,
    get_card,
    update_card,
    delete_card,
    set_card_color,
    generate_card_qr,
    get_contact_vcard,
    detect_platform,
    generate_wallet_pass,
    preview_wallet_pass,
    get_public_card,
    save_contact,
    remaining_contacts,
    list_contacts,
    get_contact,
    update_contact,
    delete_contact,
    CardNotFoundError,
    ContactNotFoundError,
    ContactLimitReachedError,
    WalletNotConfiguredError,
    WalletPassError,
)


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class WalletSaveUrlSerializer(serializers.Serializer):
    platform = serializers.CharField()
    mock = serializers.BooleanField()
    save_url = serializers.URLField(required=False)
    object = serializers.DictField(required=False)


def _not_found(e):
    return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)


@extend_schema(
    methods=['GET'],
    responses={200: CardListSerializer},
    description="The caller's cards with scan analytics. Free plans see only the first card.",
    tags=['cards'],
)
@extend_schema(
    methods=['POST'],
    request=CardCreateSerializer,
    responses={201: CardSerializer},
    description="Create a card at the next position.",
    tags=['cards'],
)
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def card_list(request):
    if request.method == 'GET':
        result = list_cards(user=request.user)
        return Response(CardListSerializer(result).data)

    serializer = CardCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    card = create_card(user=request.user, **serializer.validated_data)
    return Response(CardSerializer(card).data, status=status.HTTP_201_CREATED)


@extend_schema(
    methods=['GET'],
    responses={200: CardSerializer, 404: ErrorResponseSerializer},
    tags=['cards'],
)
@extend_schema(
    methods=['PATCH'],
    request=CardUpdateSerializer,
    responses={200: CardSerializer, 404: ErrorResponseSerializer},
    tags=['cards'],
)
@extend_schema(
    methods=['DELETE'],
    responses={204: None, 404: ErrorResponseSerializer},
    tags=['cards'],
)
@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def card_detail(request, index):
    try:
        if request.method == 'GET':
            card = get_card(user_id=request.user.id, index=index)
            return Response(CardSerializer(card).data)

        if request.method == 'DELETE':
            delete_card(user=request.user, index=index)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = CardUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        card = update_card(user=request.user, index=index, data=serializer.validated_data)
        return Response(CardSerializer(card).data)
    except CardNotFoundError as e:
        return _not_found(e)


@extend_schema(
    request=CardColorSerializer,
    responses={200: CardSerializer, 404: ErrorResponseSerializer},
    description="Set the card's colour scheme.",
    tags=['cards'],
)
@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def card_color(request, index):
    serializer = CardColorSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        card = set_card_color(user=request.user, index=index, color=serializer.validated_data['color'])
    except CardNotFoundError as e:
        return _not_found(e)

    return Response(CardSerializer(card).data)


@extend_schema(
    responses={(200, 'image/png'): OpenApiTypes.BINARY, 404: ErrorResponseSerializer},
    description="Public QR code that opens the card's save-contact page.",
    tags=['cards'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def card_qr(request, user_id, index):
    try:
        png = generate_card_qr(user_id=user_id, index=index)
    except CardNotFoundError as e:
        return _not_found(e)

    return HttpResponse(png, content_type='image/png')


@extend_schema(
    responses={(200, 'text/vcard'): OpenApiTypes.STR, 404: ErrorResponseSerializer},
    description="Public vCard download. Each download counts as a scan.",
    tags=['cards'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def card_contact(request, user_id, index):
    try:
        vcard, filename = get_contact_vcard(user_id=user_id, index=index)
    except CardNotFoundError as e:
        return _not_found(e)

    response = HttpResponse(vcard, content_type='text/vcard; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


@extend_schema(
    parameters=[OpenApiParameter('platform', str, enum=['ios', 'android'], required=False)],
    responses={
        (200, 'application/vnd.apple.pkpass'): OpenApiTypes.BINARY,
        (200, 'application/json'): WalletSaveUrlSerializer,
        404: ErrorResponseSerializer,
        503: ErrorResponseSerializer,
    },
    description="Apple Wallet pass (ios) or Google Wallet save URL (android). "
                "The platform is detected from the User-Agent when not given.",
    tags=['cards'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def wallet_pass(request, index):
    platform = request.query_params.get('platform') or detect_platform(request.headers.get('User-Agent', ''))
    if platform not in ('ios', 'android'):
        return Response({'error': 'Platform must be ios or android'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = generate_wallet_pass(user=request.user, index=index, platform=platform)
    except CardNotFoundError as e:
        return _not_found(e)
    except WalletNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    except WalletPassError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if 'content' in result:
        response = HttpResponse(result['content'], content_type=result['content_type'])
        response['Content-Disposition'] = f'attachment; filename="{result["filename"]}"'
        return response
    return Response(result)


@extend_schema(
    responses={200: WalletPreviewSerializer, 404: ErrorResponseSerializer},
    description="Fields and colours of the card's wallet pass.",
    tags=['cards'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def wallet_preview(request, index):
    try:
        preview = preview_wallet_pass(user=request.user, index=index)
    except CardNotFoundError as e:
        return _not_found(e)

    return Response(preview)


def _card_address(request):
    """``userId``/``cardIndex`` from the QR link's query string, or the body."""
    data = request.query_params.dict()
    if request.method == 'POST':
        for key in ('userId', 'cardIndex'):
            if key not in data and key in request.data:
                data[key] = request.data[key]
    serializer = CardAddressSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data['userId'], serializer.validated_data['cardIndex']


@extend_schema(
    methods=['GET'],
    parameters=[
        OpenApiParameter('userId', OpenApiTypes.UUID, required=True),
        OpenApiParameter('cardIndex', int, required=False),
    ],
    responses={200: SaveContactPageSerializer, 404: ErrorResponseSerializer},
    description="Public page opened by the card QR code: the card and its vCard link.",
    tags=['contacts'],
)
@extend_schema(
    methods=['POST'],
    request=ContactCreateSerializer,
    responses={201: SavedContactSerializer, 403: ErrorResponseSerializer, 404: ErrorResponseSerializer},
    description="Leave your details for the card owner, who is notified by email.",
    tags=['contacts'],
)
@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def save_contact_page(request):
    user_id, index = _card_address(request)

    if request.method == 'GET':
        try:
            card = get_public_card(user_id=user_id, index=index)
        except CardNotFoundError as e:
            return _not_found(e)
        return Response({
            'user_id': str(user_id),
            'card_index': index,
            'card': PublicCardSerializer(card).data,
            'vcard_url': request.build_absolute_uri(reverse('cards:card-contact', args=[user_id, index])),
        })

    serializer = ContactCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        contact = save_contact(user_id=user_id, index=index, **serializer.validated_data)
    except CardNotFoundError as e:
        return _not_found(e)
    except ContactLimitReachedError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    return Response(
        {
            'message': 'Contact saved successfully',
            'contact': ContactSerializer(contact).data,
            'remaining_contacts': remaining_contacts(contact.owner),
        },
        status=status.HTTP_201_CREATED,
    )


@extend_schema(
    responses={200: ContactSerializer(many=True)},
    description="Contacts people left for the caller, newest first.",
    tags=['contacts'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def contact_list(request):
    contacts = list_contacts(user=request.user)
    return Response(ContactSerializer(contacts, many=True).data)


@extend_schema(
    methods=['GET'],
    responses={200: ContactSerializer, 404: ErrorResponseSerializer},
    tags=['contacts'],
)
@extend_schema(
    methods=['PATCH'],
    request=ContactUpdateSerializer,
    responses={200: ContactSerializer, 404: ErrorResponseSerializer},
    tags=['contacts'],
)
@extend_schema(
    methods=['DELETE'],
    responses={204: None, 404: ErrorResponseSerializer},
    tags=['contacts'],
)
@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def contact_detail(request, contact_id):
    try:
        if request.method == 'GET':
            contact = get_contact(user=request.user, contact_id=contact_id)
            return Response(ContactSerializer(contact).data)

        if request.method == 'DELETE':
            delete_contact(user=request.user, contact_id=contact_id)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = ContactUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        contact = update_contact(user=request.user, contact_id=contact_id, data=serializer.validated_data)
        return Response(ContactSerializer(contact).data)
    except ContactNotFoundError as e:
        return _not_found(e)
