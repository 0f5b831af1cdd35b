import logging
from urllib.parse import urlencode, urlsplit

from django.conf import settings
from django.http import HttpResponseRedirect
from rest_framework import status, serializers
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.tokens import RefreshToken
from drf_spectacular.utils import extend_schema

from .models import OAuthProvider
from .serializers import (
    UserRegistrationSerializer,
    UserLoginSerializer,
    UserSerializer,
    DeleteAccountSerializer,
    LogoutSerializer,
    VerifyEmailSerializer,
    PasswordResetRequestSerializer,
    PasswordResetConfirmSerializer,
    OAuthStartSerializer,
    OAuthCallbackSerializer,
)
from .services import (
    register_user,
    authenticate_user,
    logout_user,
    issue_verification_token,
    verify_user_email,
    request_password_reset,
    confirm_password_reset,
    delete_user_account,
    build_authorization_url,
    complete_oauth_login,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    PasswordConfirmationError,
    OAuthNotConfiguredError,
    OAuthStateError,
    OAuthExchangeError,
    UserNotFoundError,
    InvalidTokenError,
    EmailAlreadyVerifiedError,
)

logger = logging.getLogger(__name__)


# Response serializers for API documentation
class TokensResponseSerializer(serializers.Serializer):
    refresh = serializers.CharField()
    access = serializers.CharField()


class AuthResponseSerializer(serializers.Serializer):
    message = serializers.CharField()
    user = UserSerializer()
    tokens = TokensResponseSerializer()


class MessageResponseSerializer(serializers.Serializer):
    message = serializers.CharField()


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


class AppRedirect(HttpResponseRedirect):
    """Redirect that may target the mobile app's custom URL scheme."""

    @property
    def allowed_schemes(self):
        return ['http', 'https', urlsplit(settings.OAUTH_APP_REDIRECT_URI).scheme]


def _tokens_for(user):
    refresh = RefreshToken.for_user(user)
    return {
        'refresh': str(refresh),
        'access': str(refresh.access_token),
    }


def _app_redirect(**params):
    return AppRedirect(f"{settings.OAUTH_APP_REDIRECT_URI}?{urlencode(params)}")


@extend_schema(
    request=UserRegistrationSerializer,
    responses={
        201: AuthResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Register a new user account, receive JWT tokens and a verification email.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Register a new user account."""
    serializer = UserRegistrationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    data = serializer.validated_data.copy()
    data.pop('password_confirm', None)

    try:
        user = register_user(**data)
    except UserRegistrationError as e:
        return Response(
            {'error': str(e)},
            status=status.HTTP_400_BAD_REQUEST
        )

    return Response({
        'message': 'Registration successful. Please verify your email.',
        'user': UserSerializer(user).data,
        'tokens': _tokens_for(user),
    }, status=status.HTTP_201_CREATED)


@extend_schema(
    request=UserLoginSerializer,
    responses={
        200: AuthResponseSerializer,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
        403: ErrorResponseSerializer,
    },
    description="Authenticate with email and password to receive JWT tokens.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Login with email and password."""
    serializer = UserLoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        user = authenticate_user(**serializer.validated_data)
    except InvalidCredentialsError:
        return Response({
            'error': 'Invalid credentials'
        }, status=status.HTTP_401_UNAUTHORIZED)
    except InactiveAccountError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_403_FORBIDDEN)

    return Response({
        'message': 'Login successful',
        'user': UserSerializer(user).data,
        'tokens': _tokens_for(user),
    })


@extend_schema(
    request=LogoutSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Logout and blacklist the refresh token.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Logout and blacklist refresh token."""
    serializer = LogoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        logout_user(user=request.user, refresh=serializer.validated_data['refresh'])
    except InvalidTokenError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Logout successful'
    })


@extend_schema(
    methods=['GET'],
    parameters=[VerifyEmailSerializer],
    responses={200: MessageResponseSerializer, 400: ErrorResponseSerializer},
    description="Verification link from the email.",
    tags=['auth'],
)
@extend_schema(
    methods=['POST'],
    request=VerifyEmailSerializer,
    responses={200: MessageResponseSerializer, 400: ErrorResponseSerializer},
    description="Verify user's email address with verification token.",
    tags=['auth'],
)
@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def verify_email(request):
    """Verify email with token."""
    data = request.query_params if request.method == 'GET' else request.data
    serializer = VerifyEmailSerializer(data=data)
    serializer.is_valid(raise_exception=True)

    try:
        verify_user_email(token=serializer.validated_data['token'])
    except InvalidTokenError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Email verified successfully'
    })


@extend_schema(
    request=None,
    responses={200: MessageResponseSerializer, 400: ErrorResponseSerializer},
    description="Send a new verification email to the current user.",
    tags=['auth'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def resend_verification(request):
    try:
        issue_verification_token(user=request.user)
    except EmailAlreadyVerifiedError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Verification email sent'
    })


@extend_schema(
    request=PasswordResetRequestSerializer,
    responses={200: MessageResponseSerializer},
    description="Request a password reset email. Always returns success so accounts cannot be discovered.",
    tags=['auth'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def forgot_password(request):
    """Request password reset email."""
    serializer = PasswordResetRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        request_password_reset(email=serializer.validated_data['email'])
    except UserNotFoundError:
        logger.info("Password reset requested for unknown email")

    return Response({
        'message': 'If an account exists, a password reset email has been sent'
    })


@extend_schema(
    request=PasswordResetConfirmSerializer,
    responses={
        200: MessageResponseSerializer,
        400: ErrorResponseSerializer,
    },
    description="Set a new password with the token from the reset email.",
    tags=['auth'],
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def reset_password(request):
    """Confirm password reset with token."""
    serializer = PasswordResetConfirmSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        confirm_password_reset(
            token=serializer.validated_data['token'],
            new_password=serializer.validated_data['new_password'],
        )
    except InvalidTokenError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'message': 'Password reset successful'
    })


@extend_schema(
    methods=['GET'],
    responses={200: UserSerializer},
    description="Get the current authenticated user's profile.",
    tags=['auth'],
)
@extend_schema(
    methods=['PATCH'],
    request=UserSerializer,
    responses={200: UserSerializer, 400: ErrorResponseSerializer},
    description="Update the current user's profile.",
    tags=['auth'],
)
@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def current_user(request):
    """Get or update the current user's profile."""
    if request.method == 'GET':
        return Response(UserSerializer(request.user).data)

    serializer = UserSerializer(request.user, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    return Response(serializer.data)


@extend_schema(
    request=DeleteAccountSerializer,
    responses={
        204: None,
        400: ErrorResponseSerializer,
        401: ErrorResponseSerializer,
    },
    description="Delete the account. Personal data is anonymized.",
    tags=['auth'],
)
@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def delete_account(request):
    """Account deletion (anonymization)."""
    serializer = DeleteAccountSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    if not serializer.validated_data['confirm']:
        return Response({
            'error': 'Confirmation required'
        }, status=status.HTTP_400_BAD_REQUEST)

    try:
        delete_user_account(
            user_id=request.user.id,
            password=serializer.validated_data['password'],
        )
    except PasswordConfirmationError as e:
        return Response({
            'error': str(e)
        }, status=status.HTTP_401_UNAUTHORIZED)

    return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema(
    parameters=[OAuthStartSerializer],
    responses={302: None, 400: ErrorResponseSerializer, 500: ErrorResponseSerializer},
    description="Start the OAuth flow; redirects to the provider consent screen.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def oauth_start(request, provider):
    """Redirect to the provider with the app-supplied state."""
    if provider not in OAuthProvider.values or not provider:
        return Response({'error': 'Unknown provider'}, status=status.HTTP_404_NOT_FOUND)

    serializer = OAuthStartSerializer(data=request.query_params)
    if not serializer.is_valid():
        return Response({'error': 'Missing state parameter'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        url = build_authorization_url(provider=provider, state=serializer.validated_data['state'])
    except OAuthNotConfiguredError as e:
        return Response({'error': str(e)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HttpResponseRedirect(url)


@extend_schema(
    parameters=[OAuthCallbackSerializer],
    responses={302: None},
    description="Provider callback; redirects back into the app with JWT tokens or an error.",
    tags=['auth'],
)
@api_view(['GET'])
@permission_classes([AllowAny])
def oauth_callback(request, provider):
    """Finish the OAuth flow and hand tokens to the app."""
    if provider not in OAuthProvider.values or not provider:
        return Response({'error': 'Unknown provider'}, status=status.HTTP_404_NOT_FOUND)

    serializer = OAuthCallbackSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    params = serializer.validated_data
    state = params['state']

    if params['error']:
        return _app_redirect(error=params['error'], state=state)

    try:
        user = complete_oauth_login(provider=provider, code=params['code'], state=state)
    except OAuthStateError as e:
        return _app_redirect(error=str(e), state=state)
    except (OAuthExchangeError, OAuthNotConfiguredError) as e:
        logger.warning("OAuth %s callback failed: %s", provider, e)
        return _app_redirect(error='oauth_failed', state=state)

    if not user.is_active:
        return _app_redirect(error='account_inactive', state=state)

    return _app_redirect(state=state, **_tokens_for(user))
