# Generated manually for the events app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='EventOrganiser',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('business_name', models.CharField(max_length=200)),
                ('business_email', models.EmailField(blank=True, max_length=254)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('bank_code', models.CharField(blank=True, max_length=20)),
                ('bank_name', models.CharField(blank=True, max_length=100)),
                ('account_number', models.CharField(blank=True, max_length=32)),
                ('account_holder', models.CharField(blank=True, max_length=200)),
                ('paystack_subaccount_code', models.CharField(blank=True, max_length=64)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('active', 'Active'), ('suspended', 'Suspended'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='organiser_profile', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'event_organisers',
            },
        ),
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField()),
                ('category', models.CharField(choices=[('conference', 'Conference'), ('workshop', 'Workshop'), ('networking', 'Networking'), ('seminar', 'Seminar'), ('social', 'Social'), ('sports', 'Sports'), ('music', 'Music'), ('business', 'Business'), ('other', 'Other')], default='other', max_length=20)),
                ('event_type', models.CharField(choices=[('free', 'Free'), ('paid', 'Paid')], default='free', max_length=10)),
                ('ticket_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[MinValueValidator(Decimal('0.00'))])),
                ('currency', models.CharField(default='ZAR', max_length=3)),
                ('image_url', models.URLField(blank=True)),
                ('event_date', models.DateTimeField()),
                ('end_date', models.DateTimeField(blank=True, null=True)),
                ('location', models.CharField(max_length=255)),
                ('city', models.CharField(max_length=100)),
                ('max_attendees', models.PositiveIntegerField(default=0)),
                ('current_attendees', models.PositiveIntegerField(default=0)),
                ('allow_bulk_registrations', models.BooleanField(default=False)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending_payment', 'Pending payment'), ('published', 'Published'), ('cancelled', 'Cancelled')], default='draft', max_length=20)),
                ('visibility', models.CharField(choices=[('public', 'Public'), ('private', 'Private')], default='public', max_length=10)),
                ('payment_reference', models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ('payment_url', models.URLField(blank=True, max_length=500)),
                ('listing_fee', models.PositiveIntegerField(blank=True, help_text='Cents', null=True)),
                ('credit_applied', models.CharField(blank=True, max_length=20)),
                ('payment_initiated_at', models.DateTimeField(blank=True, null=True)),
                ('published_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organiser', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'events',
                'ordering': ['event_date'],
                'indexes': [
                    models.Index(fields=['status', 'event_date'], name='events_status_2c6f1d_idx'),
                    models.Index(fields=['organiser', 'status'], name='events_organis_8a4b3e_idx'),
                    models.Index(fields=['city'], name='events_city_5d1e7a_idx'),
                    models.Index(fields=['category'], name='events_categor_9f2c4b_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='EventRegistration',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('registered', 'Registered'), ('pending_payment', 'Pending payment'), ('cancelled', 'Cancelled')], default='registered', max_length=20)),
                ('payment_status', models.CharField(choices=[('not_required', 'Not required'), ('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('abandoned', 'Abandoned')], default='not_required', max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('payment_reference', models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ('payment_url', models.URLField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='registrations', to='events.event')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='event_registrations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'event_registrations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['event', 'user', 'status'], name='event_regis_event_i_3b7a2c_idx'),
                    models.Index(fields=['payment_reference'], name='event_regis_payment_6e1d9f_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='BulkRegistration',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('quantity', models.PositiveIntegerField()),
                ('attendee_details', models.JSONField(default=list)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('status', models.CharField(choices=[('pending_payment', 'Pending payment'), ('completed', 'Completed'), ('failed', 'Failed'), ('cancelled', 'Cancelled')], default='pending_payment', max_length=20)),
                ('payment_status', models.CharField(choices=[('not_required', 'Not required'), ('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed'), ('abandoned', 'Abandoned')], default='pending', max_length=20)),
                ('payment_reference', models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ('payment_url', models.URLField(blank=True, max_length=500)),
                ('failure_reason', models.CharField(blank=True, max_length=255)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bulk_registrations', to='events.event')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bulk_registrations', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bulk_registrations',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='bulk_regist_user_id_4c8e1a_idx'),
                    models.Index(fields=['event', 'status'], name='bulk_regist_event_i_7d2f5b_idx'),
                    models.Index(fields=['payment_reference'], name='bulk_regist_payment_1a9c3e_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('attendee_name', models.CharField(max_length=200)),
                ('attendee_email', models.EmailField(max_length=254)),
                ('attendee_phone', models.CharField(blank=True, max_length=32)),
                ('attendee_index', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('ticket_type', models.CharField(choices=[('free', 'Free'), ('paid', 'Paid'), ('attendee', 'Bulk attendee')], default='free', max_length=10)),
                ('status', models.CharField(choices=[('pending_payment', 'Pending payment'), ('active', 'Active'), ('cancelled', 'Cancelled')], default='active', max_length=20)),
                ('checked_in', models.BooleanField(default=False)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bulk_registration', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='tickets', to='events.bulkregistration')),
                ('checked_in_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tickets', to='events.event')),
                ('registration', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='tickets', to='events.eventregistration')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tickets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tickets',
                'ordering': ['attendee_index', 'created_at'],
                'indexes': [
                    models.Index(fields=['event', 'status'], name='tickets_event_i_2e5b8c_idx'),
                    models.Index(fields=['user', 'created_at'], name='tickets_user_id_9a3d1f_idx'),
                    models.Index(fields=['bulk_registration', 'attendee_index'], name='tickets_bulk_re_6c4e2a_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CheckInToken',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('token', models.CharField(max_length=64, unique=True)),
                ('issued_timestamp', models.BigIntegerField(help_text='Unix ms embedded in the QR payload')),
                ('expires_at', models.DateTimeField()),
                ('used', models.BooleanField(default=False)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('checked_in_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='check_in_tokens', to='events.event')),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='check_in_tokens', to='events.ticket')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='check_in_tokens', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'check_in_tokens',
            },
        ),
        migrations.CreateModel(
            name='ListingCreditBucket',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period', models.CharField(help_text='YYYY-MM', max_length=7)),
                ('tier', models.CharField(max_length=20)),
                ('credits_allocated', models.PositiveIntegerField(default=0)),
                ('credits_used', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='listing_credit_buckets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'listing_credit_buckets',
                'unique_together': {('user', 'period')},
            },
        ),
    ]
