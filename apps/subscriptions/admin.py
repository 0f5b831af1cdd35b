from django.contrib import admin
from apps.subscriptions.models import Subscription, SubscriptionLog


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ['user', 'plan', 'status', 'store', 'expires_at', 'will_renew', 'last_synced_at']
    list_filter = ['plan', 'status', 'store', 'environment']
    search_fields = ['user__email', 'app_user_id', 'product_id']
    readonly_fields = ['created_at', 'updated_at', 'last_synced_at']


@admin.register(SubscriptionLog)
class SubscriptionLogAdmin(admin.ModelAdmin):
    """Read-only audit trail of RevenueCat events."""

    list_display = ['user', 'event_type', 'verification_status', 'status', 'plan', 'created_at']
    list_filter = ['event_type', 'verification_status']
    search_fields = ['user__email', 'event_id']
    readonly_fields = [
        'user', 'event_type', 'event_id', 'verification_status',
        'status', 'plan', 'detail', 'event_data', 'created_at',
    ]
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False
