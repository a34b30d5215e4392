from django.contrib.auth.models import AbstractUser
from django.db import models

from backend.locations.models import Location


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def user_type(self):
        """Counting role: 'admin' for staff or Admin group members, 'user' otherwise"""
        if self.is_superuser or self.is_staff:
            return 'admin'
        if self.pk and self.groups.filter(name='Admin').exists():
            return 'admin'
        return 'user'

    class Meta:
        db_table = 'users'


class UserSession(models.Model):
    """Login, logout and location-selection events shown in the audit trail"""
    EVENT_CHOICES = [
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('location', 'Location Selected'),
    ]

    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name='sessions')
    event_type = models.CharField(max_length=20, choices=EVENT_CHOICES)
    location = models.CharField(max_length=10, choices=Location.choices, blank=True)
    user_type = models.CharField(max_length=10, default='user')
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_event_type_display()} ({self.location or '-'})"

    class Meta:
        db_table = 'user_sessions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='idx_user_sessions_created'),
            models.Index(fields=['location'], name='idx_user_sessions_location'),
        ]
