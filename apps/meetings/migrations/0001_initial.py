# Generated manually for the meetings app

import django.core.validators
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
            name='Booking',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('booker_name', models.CharField(max_length=150)),
                ('booker_email', models.EmailField(blank=True, max_length=255)),
                ('booker_phone', models.CharField(blank=True, max_length=30)),
                ('message', models.TextField(blank=True)),
                ('starts_at', models.DateTimeField()),
                ('duration', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('location', models.CharField(default='Online meeting', max_length=255)),
                ('source', models.CharField(choices=[('public', 'Public booking page'), ('owner', 'Added by owner')], default='public', max_length=20)),
                ('status', models.CharField(choices=[('confirmed', 'Confirmed'), ('cancelled', 'Cancelled')], default='confirmed', max_length=20)),
                ('cancellation_token', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bookings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'bookings',
                'ordering': ['starts_at'],
                'indexes': [
                    models.Index(fields=['owner', 'starts_at'], name='bookings_owner_i_5e8d2c_idx'),
                ],
            },
        ),
    ]
