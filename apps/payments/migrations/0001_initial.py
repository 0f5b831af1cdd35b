# Generated manually for the payments app

import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PaystackWebhookEvent',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('event', models.CharField(max_length=64)),
                ('reference', models.CharField(blank=True, db_index=True, max_length=128)),
                ('payment_type', models.CharField(blank=True, max_length=32)),
                ('outcome', models.CharField(choices=[('received', 'Received'), ('processed', 'Processed'), ('ignored', 'Ignored'), ('failed', 'Failed')], default='received', max_length=20)),
                ('detail', models.CharField(blank=True, max_length=255)),
                ('received_at', models.DateTimeField(auto_now_add=True)),
                ('raw_data', models.JSONField(blank=True, null=True)),
            ],
            options={
                'db_table': 'paystack_webhook_events',
                'ordering': ['-received_at'],
                'indexes': [
                    models.Index(fields=['event', 'received_at'], name='paystack_we_event_5b2e9d_idx'),
                ],
            },
        ),
    ]
