from django.conf import settings
from django.db import models
from django.utils import timezone

from backend.locations.models import Location, WEEKDAY_CHOICES
from .scopes import MONTHLY, WEEKLY, describe_session


class CountSession(models.Model):
    """Monthly cycle count per location, or weekly high-volume count per day at HSTD"""
    KIND_CHOICES = [
        (MONTHLY, 'Monthly'),
        (WEEKLY, 'Weekly'),
    ]

    session_id = models.CharField(max_length=100, unique=True)
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    location = models.CharField(max_length=10, choices=Location.choices)
    day = models.CharField(max_length=10, choices=WEEKDAY_CHOICES, blank=True)
    period_start = models.DateField()
    progress = models.JSONField(default=dict, blank=True, help_text="Barcode to accepted quantity")
    completed = models.BooleanField(default=False)
    user_type = models.CharField(max_length=10, default='user')
    start_date = models.DateTimeField(default=timezone.now)
    last_updated = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return self.session_id

    @property
    def label(self):
        return describe_session(self.kind, self.day, self.period_start)

    class Meta:
        db_table = 'count_sessions'
        ordering = ['-last_updated']
        indexes = [
            models.Index(fields=['location', 'kind'], name='idx_count_sessions_loc_kind'),
        ]


class CountHistory(models.Model):
    """One accepted count. Written once; removed only by clear/reset actions"""
    barcode = models.CharField(max_length=100)
    quantity = models.PositiveIntegerField()
    count_type = models.CharField(max_length=10, choices=CountSession.KIND_CHOICES)
    session_id = models.CharField(max_length=100)
    user_type = models.CharField(max_length=10, default='user')
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='count_history'
    )
    source = models.TextField(blank=True, help_text="Provenance: who/when/how the count was recorded")
    timestamp = models.DateTimeField(default=timezone.now)
    location = models.CharField(max_length=10, choices=Location.choices)

    def __str__(self):
        return f"{self.barcode} x{self.quantity} @ {self.location}"

    class Meta:
        db_table = 'count_history'
        ordering = ['-timestamp']
        verbose_name_plural = 'count history'
        indexes = [
            models.Index(fields=['barcode', 'location'], name='idx_count_history_sku_loc'),
            models.Index(fields=['-timestamp'], name='idx_count_history_ts'),
            models.Index(fields=['session_id'], name='idx_count_history_session'),
        ]
