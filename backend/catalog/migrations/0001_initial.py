# Generated manually for Component and HighVolumeSku models

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Component',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('barcode', models.CharField(max_length=100, unique=True)),
                ('description', models.CharField(blank=True, default='', max_length=255)),
                ('mtd_quantity', models.PositiveIntegerField(default=0)),
                ('ftp_quantity', models.PositiveIntegerField(default=0)),
                ('hstd_quantity', models.PositiveIntegerField(default=0)),
                ('tpl_quantity', models.PositiveIntegerField(default=0, help_text='Quantity held at 3PL')),
                ('quarantine_quantity', models.PositiveIntegerField(default=0)),
                ('total_quantity', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'components',
                'ordering': ['barcode'],
            },
        ),
        migrations.CreateModel(
            name='HighVolumeSku',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('barcode', models.CharField(max_length=100)),
                ('day', models.CharField(choices=[('Monday', 'Monday'), ('Tuesday', 'Tuesday'), ('Wednesday', 'Wednesday'), ('Thursday', 'Thursday'), ('Friday', 'Friday'), ('Saturday', 'Saturday'), ('Sunday', 'Sunday')], max_length=10)),
                ('location', models.CharField(choices=[('MtD', 'MtD'), ('FtP', 'FtP'), ('HSTD', 'HSTD'), ('3PL', '3PL')], default='HSTD', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'high_volume_skus',
                'ordering': ['day', 'barcode'],
                'unique_together': {('barcode', 'day', 'location')},
            },
        ),
    ]
