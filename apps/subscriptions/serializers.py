from rest_framework import serializers
from .models import Subscription, SubscriptionLog


class SubscriptionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = [
            'status',
            'plan',
            'product_id',
            'entitlement_id',
            'store',
            'environment',
            'period_type',
            'purchased_at',
            'expires_at',
            'will_renew',
            'billing_issue_detected_at',
            'last_event_type',
            'last_synced_at',
        ]
        read_only_fields = fields


class SubscriptionStatusSerializer(serializers.Serializer):
    """The caller's plan with the stored RevenueCat state, if any."""

    plan = serializers.CharField()
    subscription_status = serializers.CharField()
    is_premium = serializers.BooleanField()
    subscription = SubscriptionSerializer(allow_null=True)


class SubscriptionLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = SubscriptionLog
        fields = [
            'id',
            'event_type',
            'verification_status',
            'status',
            'plan',
            'detail',
            'created_at',
        ]
        read_only_fields = fields


class RevenueCatWebhookAckSerializer(serializers.Serializer):
    received = serializers.BooleanField()
    event_type = serializers.CharField()
    outcome = serializers.CharField()
