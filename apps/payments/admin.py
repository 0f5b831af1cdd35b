from django.contrib import admin
from apps.payments.models import PaystackWebhookEvent


@admin.register(PaystackWebhookEvent)
class PaystackWebhookEventAdmin(admin.ModelAdmin):
    """Read-only log of Paystack webhook deliveries."""

    list_display = ['event', 'reference', 'payment_type', 'outcome', 'received_at']
    list_filter = ['event', 'outcome', 'payment_type']
    search_fields = ['reference', 'detail']
    readonly_fields = ['event', 'reference', 'payment_type', 'outcome', 'detail', 'received_at', 'raw_data']
    date_hierarchy = 'received_at'

    def has_add_permission(self, request):
        return False
