from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html
from .models import User, Plan


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for User model.

    Shows plan and subscription state next to the account status so support
    can check why a user does or does not get premium features.
    """

    list_display = [
        'email',
        'display_name',
        'plan_badge',
        'subscription_status',
        'oauth_provider',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'plan',
        'subscription_status',
        'oauth_provider',
        'is_active',
        'is_staff',
        'welcome_credit_used',
    ]

    search_fields = [
        'email',
        'display_name',
        'revenuecat_app_user_id',
    ]

    ordering = ['-created_at']
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Basic Information', {
            'fields': ('email', 'display_name', 'password')
        }),
        ('Plan', {
            'fields': ('plan', 'subscription_status', 'revenuecat_app_user_id', 'welcome_credit_used'),
        }),
        ('Sign-in', {
            'fields': ('email_verified', 'oauth_provider', 'oauth_subject'),
            'classes': ('collapse',),
        }),
        ('Calendar', {
            'fields': ('calendar_preferences',),
            'classes': ('collapse',),
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'last_login', 'deleted_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'display_name', 'password1', 'password2'),
        }),
    )

    readonly_fields = [
        'created_at',
        'last_login',
        'deleted_at',
    ]

    filter_horizontal = ['groups', 'user_permissions']

    actions = ['anonymize_users']

    def plan_badge(self, obj):
        """Display plan as colored badge."""
        colors = {
            Plan.FREE: '#ccc',
            Plan.PREMIUM: '#1B2B5B',
            Plan.ENTERPRISE: '#6B8E5E',
        }
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            colors.get(obj.plan, '#ccc'),
            obj.get_plan_display(),
        )
    plan_badge.short_description = 'Plan'
    plan_badge.admin_order_field = 'plan'

    @admin.action(description='Anonymize selected users (IRREVERSIBLE)')
    def anonymize_users(self, request, queryset):
        """Anonymize selected non-staff users."""
        safe_queryset = queryset.filter(is_superuser=False, is_staff=False)
        count = 0
        for user in safe_queryset:
            user.anonymize()
            count += 1

        skipped = queryset.count() - count
        msg = f'Anonymized {count} user(s).'
        if skipped:
            msg += f' Skipped {skipped} staff/superuser(s) for safety.'
        self.message_user(request, msg)
