import json
import logging

from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .serializers import (
    SubscriptionSerializer,
    SubscriptionStatusSerializer,
    RevenueCatWebhookAckSerializer,
)
from .services import (
    verify_webhook_authorization,
    process_revenuecat_event,
    sync_subscription as sync_subscription_state,
    get_subscription_status,
    InvalidWebhookPayloadError,
    SubscriberNotFoundError,
    RevenueCatError,
)

logger = logging.getLogger(__name__)


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


@extend_schema(
    request=None,
    responses={
        200: RevenueCatWebhookAckSerializer,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
        404: ErrorResponseSerializer,
        502: ErrorResponseSerializer,
    },
    description="RevenueCat webhook receiver. Requires the configured Authorization header.",
    tags=['subscriptions'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def revenuecat_webhook(request):
    """Receive RevenueCat subscription events."""
    if not verify_webhook_authorization(request.headers.get('Authorization', '')):
        logger.warning("Rejected RevenueCat webhook with invalid authorization")
        return Response({'error': 'Invalid authorization'}, status=status.HTTP_401_UNAUTHORIZED)

    try:
        body = json.loads(request.body)
    except ValueError:
        return Response({'error': 'Invalid JSON body'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = process_revenuecat_event(body)
    except InvalidWebhookPayloadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except SubscriberNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except RevenueCatError as e:
        # Non-2xx makes RevenueCat redeliver the event later
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({'received': True, **result})


@extend_schema(
    responses={200: SubscriptionStatusSerializer},
    description="Current plan and stored subscription state of the caller.",
    tags=['subscriptions'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def subscription_status(request):
    result = get_subscription_status(user=request.user)
    return Response(SubscriptionStatusSerializer(result).data)


@extend_schema(
    request=None,
    responses={200: SubscriptionSerializer, 502: ErrorResponseSerializer},
    description="Re-read the caller's entitlement from RevenueCat, e.g. after a restore.",
    tags=['subscriptions'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_subscription(request):
    try:
        subscription = sync_subscription_state(user=request.user)
    except RevenueCatError as e:
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    return Response(SubscriptionSerializer(subscription).data)
