"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import Component, HighVolumeSku
from backend.counts.models import CountHistory, CountSession
from backend.counts.scopes import CountScope
from backend.locations.models import Location
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        """Create a user in the Admin group"""
        user = TestDataFactory.create_user(username=username)
        group, _ = Group.objects.get_or_create(name='Admin')
        user.groups.add(group)
        return user

    @staticmethod
    def create_component(barcode=None, description=None, **quantities):
        """Create a test component; quantities use model field names, e.g. mtd_quantity=5"""
        if not barcode:
            barcode = f'BC{TestDataFactory.random_string(8).upper()}'
        return Component.objects.create(
            barcode=barcode,
            description=description if description is not None else f'Component {barcode}',
            **quantities
        )

    @staticmethod
    def create_high_volume_sku(barcode, day='Monday', location=Location.HSTD):
        """Create a weekly high-volume SKU"""
        return HighVolumeSku.objects.create(barcode=barcode, day=day, location=location)

    @staticmethod
    def create_session(scope, progress=None, completed=False, user_type='user'):
        """Create a count session for a scope"""
        now = timezone.now()
        return CountSession.objects.create(
            session_id=scope.session_id,
            kind=scope.kind,
            location=scope.location.value,
            day=scope.day,
            period_start=scope.period_start,
            progress=progress or {},
            completed=completed,
            user_type=user_type,
            start_date=now,
            last_updated=now,
        )

    @staticmethod
    def create_history(barcode, quantity, scope, timestamp=None, user=None, user_type='user'):
        """Create a count history entry for a scope"""
        return CountHistory.objects.create(
            barcode=barcode,
            quantity=quantity,
            count_type=scope.kind,
            session_id=scope.session_id,
            user_type=user_type,
            user=user,
            source=f'Counted using {scope.label} at {scope.location.value}',
            timestamp=timestamp or timezone.now(),
            location=scope.location.value,
        )

    @staticmethod
    def monthly_scope(location=Location.MTD, on_date=None):
        return CountScope.build(location, 'monthly', on_date=on_date)

    @staticmethod
    def weekly_scope(day=None, on_date=None):
        return CountScope.build(Location.HSTD, 'weekly', day=day, on_date=on_date)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
