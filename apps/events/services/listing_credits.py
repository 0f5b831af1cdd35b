"""Listing credits and fees for publishing paid events."""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import Plan
from apps.events.models import ListingCreditBucket

User = get_user_model()
logger = logging.getLogger(__name__)


class CreditType:
    WELCOME = 'welcome'
    MONTHLY = 'monthly'


def current_period() -> str:
    """Calendar month key, e.g. ``2024-05``."""
    return timezone.now().strftime('%Y-%m')


def monthly_allocation(tier: str) -> int:
    return settings.LISTING_MONTHLY_CREDITS.get(tier, 0)


def listing_price(tier: str) -> int:
    """Publishing fee in cents once credits are exhausted."""
    base = settings.LISTING_BASE_PRICE_CENTS
    if tier == Plan.FREE:
        return base
    return round(base * settings.LISTING_PREMIUM_DISCOUNT)


@transaction.atomic
def consume_listing_credit(*, user_id) -> dict:
    """
    Work out what publishing one paid event costs and consume a credit if
    one is available.

    Order: unused welcome credit, then this month's bucket, then the tier
    price.

    Returns:
        dict with ``price`` (cents), ``credit_type`` and ``remaining_credits``
    """
    user = User.objects.select_for_update().get(id=user_id)

    if not user.welcome_credit_used:
        user.welcome_credit_used = True
        user.save(update_fields=['welcome_credit_used', 'updated_at'])
        logger.info("User %s used welcome listing credit", user.id)
        return {'price': 0, 'credit_type': CreditType.WELCOME, 'remaining_credits': 0}

    bucket, _ = (
        ListingCreditBucket.objects
        .select_for_update()
        .get_or_create(
            user=user,
            period=current_period(),
            defaults={
                'tier': user.plan,
                'credits_allocated': monthly_allocation(user.plan),
            },
        )
    )

    if bucket.credits_remaining > 0:
        bucket.credits_used += 1
        bucket.save(update_fields=['credits_used', 'updated_at'])
        logger.info("User %s used monthly listing credit (%s left)", user.id, bucket.credits_remaining)
        return {
            'price': 0,
            'credit_type': CreditType.MONTHLY,
            'remaining_credits': bucket.credits_remaining,
        }

    return {'price': listing_price(user.plan), 'credit_type': None, 'remaining_credits': 0}


def get_credit_status(*, user) -> dict:
    """Read-only view of a user's welcome and monthly credits."""
    allocated = monthly_allocation(user.plan)
    used = 0
    bucket = ListingCreditBucket.objects.filter(user=user, period=current_period()).first()
    if bucket:
        allocated = bucket.credits_allocated
        used = bucket.credits_used

    return {
        'tier': user.plan,
        'welcome_credit_used': user.welcome_credit_used,
        'period': current_period(),
        'monthly_credits': {
            'allocated': allocated,
            'used': used,
            'remaining': max(0, allocated - used),
        },
        'price_after_credits': listing_price(user.plan),
    }
