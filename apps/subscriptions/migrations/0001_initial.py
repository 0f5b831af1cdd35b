# Generated manually for the subscriptions app

import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('inactive', 'Inactive'), ('active', 'Active'), ('cancelled', 'Cancelled'), ('expired', 'Expired'), ('billing_issue', 'Billing issue')], default='inactive', max_length=20)),
                ('plan', models.CharField(choices=[('free', 'Free'), ('premium', 'Premium'), ('enterprise', 'Enterprise')], default='free', max_length=20)),
                ('app_user_id', models.CharField(blank=True, max_length=255)),
                ('product_id', models.CharField(blank=True, max_length=255)),
                ('entitlement_id', models.CharField(blank=True, max_length=100)),
                ('store', models.CharField(blank=True, max_length=50)),
                ('environment', models.CharField(blank=True, max_length=20)),
                ('period_type', models.CharField(blank=True, max_length=20)),
                ('purchased_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, null=True)),
                ('will_renew', models.BooleanField(default=False)),
                ('billing_issue_detected_at', models.DateTimeField(blank=True, null=True)),
                ('last_event_type', models.CharField(blank=True, max_length=50)),
                ('last_synced_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='subscription', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'subscriptions',
            },
        ),
        migrations.CreateModel(
            name='SubscriptionLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event_type', models.CharField(max_length=50)),
                ('event_id', models.CharField(blank=True, db_index=True, max_length=100)),
                ('verification_status', models.CharField(choices=[('verified', 'Verified'), ('unverified', 'Unverified'), ('not_required', 'Not required')], default='not_required', max_length=20)),
                ('status', models.CharField(blank=True, max_length=20)),
                ('plan', models.CharField(blank=True, max_length=20)),
                ('detail', models.CharField(blank=True, max_length=255)),
                ('event_data', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subscription_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'subscription_logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='subscriptio_user_id_4d1b7e_idx'),
                ],
            },
        ),
    ]
