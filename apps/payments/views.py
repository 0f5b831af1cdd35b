import json
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .services import verify_webhook_signature
from .services.webhooks import process_webhook, process_callback

logger = logging.getLogger(__name__)


class WebhookAckSerializer(serializers.Serializer):
    received = serializers.BooleanField()
    outcome = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


@extend_schema(
    request=None,
    responses={200: WebhookAckSerializer, 400: ErrorResponseSerializer},
    description="Paystack webhook receiver. Requires a valid x-paystack-signature.",
    tags=['payments'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def paystack_webhook(request):
    """Receive Paystack events."""
    payload = request.body
    signature = request.headers.get('x-paystack-signature', '')

    if not signature:
        return Response({'error': 'Missing signature'}, status=status.HTTP_400_BAD_REQUEST)
    if not verify_webhook_signature(payload, signature):
        logger.warning("Rejected Paystack webhook with invalid signature")
        return Response({'error': 'Invalid signature'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        body = json.loads(payload)
    except ValueError:
        return Response({'error': 'Invalid JSON body'}, status=status.HTTP_400_BAD_REQUEST)

    record = process_webhook(body if isinstance(body, dict) else {})
    return Response({'received': True, 'outcome': record.outcome})


@extend_schema(
    parameters=[OpenApiParameter('reference', str, required=True)],
    responses={302: None},
    description="Paystack checkout return URL; redirects to the success or failure page.",
    tags=['payments'],
)
@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def paystack_callback(request):
    """Verify the returning payer's transaction and redirect."""
    reference = request.query_params.get('reference') or request.query_params.get('trxref')
    if not reference:
        return HttpResponseRedirect(
            f"{settings.PAYMENT_FAILED_URL}?{urlencode({'reason': 'missing_reference'})}"
        )

    success, reason = process_callback(reference)
    if success:
        return HttpResponseRedirect(
            f"{settings.PAYMENT_SUCCESS_URL}?{urlencode({'reference': reference})}"
        )
    return HttpResponseRedirect(
        f"{settings.PAYMENT_FAILED_URL}?{urlencode({'reference': reference, 'reason': reason})}"
    )
