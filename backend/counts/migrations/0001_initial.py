# Generated manually for CountSession and CountHistory models

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CountSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('session_id', models.CharField(max_length=100, unique=True)),
                ('kind', models.CharField(choices=[('monthly', 'Monthly'), ('weekly', 'Weekly')], max_length=10)),
                ('location', models.CharField(choices=[('MtD', 'MtD'), ('FtP', 'FtP'), ('HSTD', 'HSTD'), ('3PL', '3PL')], max_length=10)),
                ('day', models.CharField(blank=True, choices=[('Monday', 'Monday'), ('Tuesday', 'Tuesday'), ('Wednesday', 'Wednesday'), ('Thursday', 'Thursday'), ('Friday', 'Friday'), ('Saturday', 'Saturday'), ('Sunday', 'Sunday')], max_length=10)),
                ('period_start', models.DateField()),
                ('progress', models.JSONField(blank=True, default=dict, help_text='Barcode to accepted quantity')),
                ('completed', models.BooleanField(default=False)),
                ('user_type', models.CharField(default='user', max_length=10)),
                ('start_date', models.DateTimeField(default=django.utils.timezone.now)),
                ('last_updated', models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                'db_table': 'count_sessions',
                'ordering': ['-last_updated'],
                'indexes': [
                    models.Index(fields=['location', 'kind'], name='idx_count_sessions_loc_kind'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CountHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('barcode', models.CharField(max_length=100)),
                ('quantity', models.PositiveIntegerField()),
                ('count_type', models.CharField(choices=[('monthly', 'Monthly'), ('weekly', 'Weekly')], max_length=10)),
                ('session_id', models.CharField(max_length=100)),
                ('user_type', models.CharField(default='user', max_length=10)),
                ('source', models.TextField(blank=True, help_text='Provenance: who/when/how the count was recorded')),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('location', models.CharField(choices=[('MtD', 'MtD'), ('FtP', 'FtP'), ('HSTD', 'HSTD'), ('3PL', '3PL')], max_length=10)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='count_history', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'count_history',
                'ordering': ['-timestamp'],
                'verbose_name_plural': 'count history',
                'indexes': [
                    models.Index(fields=['barcode', 'location'], name='idx_count_history_sku_loc'),
                    models.Index(fields=['-timestamp'], name='idx_count_history_ts'),
                    models.Index(fields=['session_id'], name='idx_count_history_session'),
                ],
            },
        ),
    ]
