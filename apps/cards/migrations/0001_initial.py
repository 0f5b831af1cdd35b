# Generated manually for the cards app

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
            name='Card',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField(default=0)),
                ('name', models.CharField(blank=True, max_length=100)),
                ('surname', models.CharField(blank=True, max_length=100)),
                ('occupation', models.CharField(blank=True, max_length=150)),
                ('company', models.CharField(max_length=150)),
                ('email', models.EmailField(max_length=255)),
                ('phone', models.CharField(max_length=30)),
                ('socials', models.JSONField(blank=True, default=dict)),
                ('color_scheme', models.CharField(default='#1B2B5B', max_length=7, validators=[django.core.validators.RegexValidator(message='Color must be a hex value like #1B2B5B', regex='^#[0-9A-Fa-f]{6}$')])),
                ('profile_image', models.URLField(blank=True, max_length=500)),
                ('company_logo', models.URLField(blank=True, max_length=500)),
                ('number_of_scan', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cards', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'cards',
                'ordering': ['position', 'created_at'],
                'indexes': [
                    models.Index(fields=['user', 'position'], name='cards_user_id_8f3c2a_idx'),
                ],
            },
        ),
    ]
