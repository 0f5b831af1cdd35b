from django.contrib import admin
from apps.cards.models import Card, Contact


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ['user', 'position', 'name', 'surname', 'company', 'number_of_scan', 'created_at']
    list_filter = ['created_at']
    search_fields = ['user__email', 'name', 'surname', 'company', 'email']
    readonly_fields = ['number_of_scan', 'created_at', 'updated_at']
    ordering = ['user', 'position']


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['owner', 'name', 'surname', 'phone', 'email', 'card_index', 'created_at']
    list_filter = ['created_at']
    search_fields = ['owner__email', 'name', 'surname', 'email', 'phone']
    readonly_fields = ['created_at', 'updated_at']
