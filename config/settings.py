"""
Django settings for XS Card backend.

For more information on this file, see
https://docs.djangoproject.com/en/4.2/topics/settings/
"""

from pathlib import Path
from datetime import timedelta
from decouple import config, Csv
import dj_database_url
import sys


# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent


# =============================================================================
# CORE SETTINGS
# =============================================================================

SECRET_KEY = config('SECRET_KEY', default='django-insecure-change-me-in-production')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1', cast=Csv())

# Render.com sets this automatically
RENDER_EXTERNAL_HOSTNAME = config('RENDER_EXTERNAL_HOSTNAME', default=None)
if RENDER_EXTERNAL_HOSTNAME:
    ALLOWED_HOSTS.append(RENDER_EXTERNAL_HOSTNAME)

# Absolute base URL used in QR codes, callbacks and emails
PUBLIC_BASE_URL = config('PUBLIC_BASE_URL', default='http://localhost:8000').rstrip('/')


# =============================================================================
# APPLICATION DEFINITION
# =============================================================================

INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',

    # Local apps
    'apps.accounts',
    'apps.cards',
    'apps.events',
    'apps.payments',
    'apps.subscriptions',
    'apps.meetings',

    # Third-party
    'rest_framework',
    'rest_framework_simplejwt',
    'rest_framework_simplejwt.token_blacklist',
    'corsheaders',
    'drf_spectacular',
]

AUTH_USER_MODEL = 'accounts.User'

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'whitenoise.middleware.WhiteNoiseMiddleware',  # Serve static files in production
    'corsheaders.middleware.CorsMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'


# =============================================================================
# DATABASE
# =============================================================================

# Default to SQLite for simplicity, override with DATABASE_URL
DATABASES = {
    'default': dj_database_url.config(
        default=config('DATABASE_URL', default=f'sqlite:///{BASE_DIR / "db.sqlite3"}'),
        conn_max_age=600,
    )
}


# =============================================================================
# CACHE
# =============================================================================

# Holds short-lived OAuth state tokens
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'xscard',
    }
}


# =============================================================================
# PASSWORD VALIDATION
# =============================================================================

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]


# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True


# =============================================================================
# STATIC FILES
# =============================================================================

STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# WhiteNoise for production static file serving
STORAGES = {
    'default': {
        'BACKEND': 'django.core.files.storage.FileSystemStorage',
    },
    'staticfiles': {
        'BACKEND': 'whitenoise.storage.CompressedManifestStaticFilesStorage',
    },
}


# =============================================================================
# DEFAULT PRIMARY KEY
# =============================================================================

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# DJANGO REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework_simplejwt.authentication.JWTAuthentication',
        'rest_framework.authentication.SessionAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticatedOrReadOnly',
    ],
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
}


# =============================================================================
# DRF SPECTACULAR (API DOCS)
# =============================================================================

SPECTACULAR_SETTINGS = {
    'TITLE': 'XS Card API',
    'DESCRIPTION': 'API for digital business cards, events, ticketing, payments and calendar booking.',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': r'/api/',
}


# =============================================================================
# JWT SETTINGS
# =============================================================================

SIMPLE_JWT = {
    'ACCESS_TOKEN_LIFETIME': timedelta(minutes=60),
    'REFRESH_TOKEN_LIFETIME': timedelta(days=7),
    'AUTH_HEADER_TYPES': ('Bearer',),
}


# =============================================================================
# CORS SETTINGS
# =============================================================================

if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True
else:
    CORS_ALLOWED_ORIGINS = config(
        'CORS_ALLOWED_ORIGINS',
        default='',
        cast=Csv()
    )
    CORS_ALLOW_CREDENTIALS = True


# =============================================================================
# SECURITY SETTINGS (Production)
# =============================================================================

if not DEBUG:
    # HTTPS settings
    SECURE_SSL_REDIRECT = config('SECURE_SSL_REDIRECT', default=True, cast=bool)
    SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

    # Cookie settings
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True

    # HSTS
    SECURE_HSTS_SECONDS = 31536000  # 1 year
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

# CSRF trusted origins for production
CSRF_TRUSTED_ORIGINS = config(
    'CSRF_TRUSTED_ORIGINS',
    default='',
    cast=Csv()
)
if RENDER_EXTERNAL_HOSTNAME:
    CSRF_TRUSTED_ORIGINS.append(f'https://{RENDER_EXTERNAL_HOSTNAME}')


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = config('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}


# =============================================================================
# EMAIL
# =============================================================================

EMAIL_BACKEND = config('EMAIL_BACKEND', default='django.core.mail.backends.console.EmailBackend')
EMAIL_HOST = config('EMAIL_HOST', default='localhost')
EMAIL_PORT = config('EMAIL_PORT', default=587, cast=int)
EMAIL_HOST_USER = config('EMAIL_HOST_USER', default='')
EMAIL_HOST_PASSWORD = config('EMAIL_HOST_PASSWORD', default='')
EMAIL_USE_TLS = config('EMAIL_USE_TLS', default=True, cast=bool)
DEFAULT_FROM_EMAIL = config('DEFAULT_FROM_EMAIL', default='XS Card <no-reply@xscard.co.za>')

# Page in the app or website where a reset token from the email is redeemed
PASSWORD_RESET_URL = config('PASSWORD_RESET_URL', default=f'{PUBLIC_BASE_URL}/reset-password')


# =============================================================================
# PAYSTACK
# =============================================================================

PAYSTACK_SECRET_KEY = config('PAYSTACK_SECRET_KEY', default='')
PAYSTACK_BASE_URL = config('PAYSTACK_BASE_URL', default='https://api.paystack.co')
PAYSTACK_CURRENCY = config('PAYSTACK_CURRENCY', default='ZAR')
PAYSTACK_TIMEOUT = config('PAYSTACK_TIMEOUT', default=10, cast=int)
# Flat platform fee (cents) charged on organiser split payments
PAYSTACK_TRANSACTION_CHARGE = config('PAYSTACK_TRANSACTION_CHARGE', default=1000, cast=int)
PAYSTACK_PLATFORM_PERCENTAGE = config('PAYSTACK_PLATFORM_PERCENTAGE', default=10, cast=float)
PAYSTACK_USE_SUBACCOUNTS = config('PAYSTACK_USE_SUBACCOUNTS', default=not DEBUG, cast=bool)

PAYMENT_SUCCESS_URL = config('PAYMENT_SUCCESS_URL', default=f'{PUBLIC_BASE_URL}/payment/success')
PAYMENT_FAILED_URL = config('PAYMENT_FAILED_URL', default=f'{PUBLIC_BASE_URL}/payment/failed')

# Paid event publishing
LISTING_BASE_PRICE_CENTS = config('LISTING_BASE_PRICE_CENTS', default=5000, cast=int)
LISTING_PREMIUM_DISCOUNT = config('LISTING_PREMIUM_DISCOUNT', default=0.2, cast=float)
LISTING_MONTHLY_CREDITS = {
    'free': 0,
    'premium': 5,
    'enterprise': 12,
}


# =============================================================================
# REVENUECAT
# =============================================================================

REVENUECAT_API_URL = config('REVENUECAT_API_URL', default='https://api.revenuecat.com/v1')
REVENUECAT_SECRET_KEY = config('REVENUECAT_SECRET_KEY', default='')
REVENUECAT_WEBHOOK_AUTH_TOKEN = config('REVENUECAT_WEBHOOK_AUTH_TOKEN', default='')
REVENUECAT_ENTITLEMENT_ID = config('REVENUECAT_ENTITLEMENT_ID', default='premium')
REVENUECAT_TIMEOUT = config('REVENUECAT_TIMEOUT', default=10, cast=int)


# =============================================================================
# WALLET PASSES
# =============================================================================

WALLET_MOCK_MODE = config('WALLET_MOCK_MODE', default=False, cast=bool)

APPLE_PASS_TYPE_IDENTIFIER = config('APPLE_PASS_TYPE_IDENTIFIER', default='')
APPLE_TEAM_IDENTIFIER = config('APPLE_TEAM_IDENTIFIER', default='')
APPLE_PASS_CERT_PATH = config('APPLE_PASS_CERT_PATH', default='')
APPLE_PASS_KEY_PATH = config('APPLE_PASS_KEY_PATH', default='')
APPLE_PASS_KEY_PASSWORD = config('APPLE_PASS_KEY_PASSWORD', default='')
APPLE_WWDR_CERT_PATH = config('APPLE_WWDR_CERT_PATH', default='')

GOOGLE_WALLET_ISSUER_ID = config('GOOGLE_WALLET_ISSUER_ID', default='')
GOOGLE_WALLET_CLASS_SUFFIX = config('GOOGLE_WALLET_CLASS_SUFFIX', default='business_card')
GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL = config('GOOGLE_WALLET_SERVICE_ACCOUNT_EMAIL', default='')
GOOGLE_WALLET_PRIVATE_KEY = config('GOOGLE_WALLET_PRIVATE_KEY', default='').replace('\\n', '\n')


# =============================================================================
# OAUTH
# =============================================================================

GOOGLE_OAUTH_CLIENT_ID = config('GOOGLE_OAUTH_CLIENT_ID', default='')
GOOGLE_OAUTH_CLIENT_SECRET = config('GOOGLE_OAUTH_CLIENT_SECRET', default='')
LINKEDIN_OAUTH_CLIENT_ID = config('LINKEDIN_OAUTH_CLIENT_ID', default='')
LINKEDIN_OAUTH_CLIENT_SECRET = config('LINKEDIN_OAUTH_CLIENT_SECRET', default='')
OAUTH_APP_REDIRECT_URI = config('OAUTH_APP_REDIRECT_URI', default='xscard://oauth-callback')
OAUTH_STATE_TTL_SECONDS = 600


# =============================================================================
# TESTING
# =============================================================================

if 'pytest' in sys.modules or 'test' in sys.argv:
    DATABASES = {
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': BASE_DIR / 'test_db.sqlite3',
        }
    }
    # Faster password hashing for tests
    PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    STORAGES['staticfiles'] = {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    }
    SECURE_SSL_REDIRECT = False
    PAYSTACK_SECRET_KEY = 'sk_test_secret'
    PAYSTACK_USE_SUBACCOUNTS = True
    REVENUECAT_SECRET_KEY = 'rc_test_secret'
    REVENUECAT_WEBHOOK_AUTH_TOKEN = 'rc_webhook_token'
