"""
Test suite for the core module
Tests: authentication, user roles, dashboard cache versioning and the audit trail
"""
from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.counts.models import CountHistory
from backend.locations.models import Location
from .audit import build_audit_trail
from .cache_utils import cached_query, get_dashboard_version, invalidate_dashboard_cache
from .models import UserSession
from .test_utils import TestDataFactory, AuthenticatedAPIClient


class AuthTests(TestCase):
    """Test login, logout and the current user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='counter', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login_records_session(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter', 'password': 'testpass123'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user_type'], 'user')
        event = UserSession.objects.get(user=self.user)
        self.assertEqual(event.event_type, 'login')

    def test_login_wrong_password(self):
        response = self.client.post(
            '/api/v1/auth/login/', {'username': 'counter', 'password': 'nope'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertFalse(UserSession.objects.exists())

    def test_user_roles(self):
        self.assertEqual(self.user.user_type, 'user')
        self.assertEqual(TestDataFactory.create_admin().user_type, 'admin')
        self.assertEqual(TestDataFactory.create_user(is_staff=True).user_type, 'admin')

    def test_me_includes_latest_location(self):
        self.client.authenticate_user(self.user)
        self.client.post('/api/v1/locations/select/', {'location': 'FtP'}, format='json')
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user_type'], 'user')
        self.assertFalse(response.data['is_admin'])
        self.assertEqual(response.data['location'], 'FtP')

    def test_logout_records_event(self):
        self.client.authenticate_user(self.user)
        response = self.client.post('/api/v1/auth/logout/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(UserSession.objects.filter(user=self.user, event_type='logout').exists())

    def test_user_list_requires_staff(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class DashboardCacheTests(TestCase):
    """Test version-based dashboard cache invalidation"""

    def test_invalidate_bumps_version(self):
        version = get_dashboard_version()
        invalidate_dashboard_cache()
        self.assertEqual(get_dashboard_version(), version + 1)

    def test_cached_query_refreshes_after_invalidation(self):
        calls = []

        @cached_query(key_prefix='test_counter')
        def counter(value):
            calls.append(value)
            return {'value': value, 'calls': len(calls)}

        self.assertEqual(counter('a')['calls'], 1)
        self.assertEqual(counter('a')['calls'], 1)
        invalidate_dashboard_cache()
        self.assertEqual(counter('a')['calls'], 2)


class AuditTrailTests(TestCase):
    """Test the merged audit feed"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='auditor')
        self.monthly = TestDataFactory.monthly_scope(Location.HSTD)
        self.weekly = TestDataFactory.weekly_scope('Monday')
        TestDataFactory.create_history('GUM-1', 4, self.monthly, user=self.user)
        TestDataFactory.create_history('VAPE-2', 2, self.monthly, user=self.user)
        TestDataFactory.create_history('GUM-1', 3, TestDataFactory.monthly_scope(Location.MTD), user=self.user)
        TestDataFactory.create_session(self.weekly, progress={'GUM-1': 4, 'HV-9': 1})
        UserSession.objects.create(user=self.user, event_type='login', location='')
        UserSession.objects.create(user=self.user, event_type='location', location=Location.HSTD)
        UserSession.objects.create(user=self.user, event_type='location', location=Location.MTD)

    def test_merges_sources_for_location(self):
        entries = build_audit_trail(location='HSTD')
        actions = sorted(entry['action'] for entry in entries)
        self.assertEqual(actions, ['Location Selected', 'Login', 'Scan', 'Scan', 'Weekly Count'])
        weekly = next(e for e in entries if e['action'] == 'Weekly Count')
        self.assertEqual(weekly['details'], 'Completed count for 2 SKUs on Monday')
        scan = next(e for e in entries if e['sku'] == 'GUM-1')
        self.assertEqual(scan['details'], 'Quantity: 4 at HSTD')
        self.assertEqual(scan['user'], 'auditor')

    def test_newest_first(self):
        entries = build_audit_trail()
        stamps = [entry['timestamp'] for entry in entries]
        self.assertEqual(stamps, sorted(stamps, reverse=True))

    def test_action_and_sku_filters(self):
        self.assertEqual(len(build_audit_trail(location='HSTD', action='scan')), 2)
        entries = build_audit_trail(sku='gum')
        self.assertEqual(len(entries), 2)
        self.assertTrue(all(entry['sku'] == 'GUM-1' for entry in entries))

    def test_date_filter(self):
        CountHistory.objects.filter(barcode='VAPE-2').update(timestamp=timezone.now() - timedelta(days=10))
        today = timezone.localdate().isoformat()
        entries = build_audit_trail(location='HSTD', action='Scan', date_from=today, date_to=today)
        self.assertEqual([entry['sku'] for entry in entries], ['GUM-1'])

    def test_audit_endpoint_paginates(self):
        for i in range(12):
            TestDataFactory.create_history(f'BULK-{i}', 1, self.monthly)
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)

        response = client.get('/api/v1/audit-trail/?location=HSTD&action=Scan')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 14)
        self.assertEqual(len(response.data['results']), 10)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['next'], 2)

        response = client.get('/api/v1/audit-trail/?location=HSTD&action=Scan&page=2')
        self.assertEqual(len(response.data['results']), 4)
        self.assertIsNone(response.data['next'])

    def test_audit_endpoint_invalid_location(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.get('/api/v1/audit-trail/?location=Mars')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
