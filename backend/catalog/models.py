from django.db import models

from backend.locations.models import Location, QUANTITY_FIELDS, WEEKDAY_CHOICES, WEEKLY_COUNT_LOCATION, quantity_field_for


class Component(models.Model):
    """A counted component, keyed by barcode, with stock on hand per location"""
    barcode = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=255, blank=True, default='')
    mtd_quantity = models.PositiveIntegerField(default=0)
    ftp_quantity = models.PositiveIntegerField(default=0)
    hstd_quantity = models.PositiveIntegerField(default=0)
    tpl_quantity = models.PositiveIntegerField(default=0, help_text="Quantity held at 3PL")
    quarantine_quantity = models.PositiveIntegerField(default=0)
    total_quantity = models.PositiveIntegerField(default=0, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.barcode

    def quantity_at(self, location):
        return getattr(self, quantity_field_for(location)) or 0

    def set_quantity_at(self, location, quantity):
        setattr(self, quantity_field_for(location), quantity)

    def compute_total(self):
        """Sum of every per-location quantity plus quarantine"""
        location_total = sum(getattr(self, field) or 0 for field in QUANTITY_FIELDS.values())
        return location_total + (self.quarantine_quantity or 0)

    def save(self, *args, **kwargs):
        self.total_quantity = self.compute_total()
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'total_quantity' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['total_quantity']
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'components'
        ordering = ['barcode']


class HighVolumeSku(models.Model):
    """A barcode recounted weekly at HSTD on a given weekday"""
    barcode = models.CharField(max_length=100)
    day = models.CharField(max_length=10, choices=WEEKDAY_CHOICES)
    location = models.CharField(max_length=10, choices=Location.choices, default=WEEKLY_COUNT_LOCATION)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.barcode} ({self.day})"

    class Meta:
        db_table = 'high_volume_skus'
        ordering = ['day', 'barcode']
        unique_together = [['barcode', 'day', 'location']]
