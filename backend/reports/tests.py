"""
Test suite for Reports module
Tests: Progress over time, Top SKUs, Scans by location, Weekly trends, Dashboard summary
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Location
from . import dashboard


class DashboardTests(TestCase):
    """Test dashboard aggregates"""

    def setUp(self):
        cache.clear()
        self.mtd = TestDataFactory.monthly_scope(Location.MTD)
        self.hstd = TestDataFactory.monthly_scope(Location.HSTD)
        for _ in range(3):
            TestDataFactory.create_history('GUM-1', 1, self.mtd)
        TestDataFactory.create_history('GUM-1', 1, self.hstd)
        TestDataFactory.create_history('VAPE-2', 1, self.hstd)

    def test_progress_over_time(self):
        data = dashboard.progress_over_time()
        self.assertEqual(data['label'], 'Total Items Scanned')
        self.assertEqual(data['points'][-1]['cumulative'], 5)

    def test_top_skus(self):
        data = dashboard.top_skus()
        self.assertEqual(data['skus'][0], {'barcode': 'GUM-1', 'scans': 4})
        data = dashboard.top_skus(Location.HSTD.value)
        self.assertEqual(len(data['skus']), 2)

    def test_scans_by_location(self):
        data = dashboard.scans_by_location()
        self.assertEqual(data['locations'], ['MtD', 'FtP', 'HSTD', '3PL'])
        first = data['rows'][0]
        self.assertEqual(first['barcode'], 'GUM-1')
        self.assertEqual(first['counts'], {'MtD': 3, 'FtP': 0, 'HSTD': 1, '3PL': 0})
        self.assertEqual(first['total'], 4)

    def test_weekly_trends(self):
        weekly = TestDataFactory.weekly_scope()
        TestDataFactory.create_session(weekly, progress={'HV-1': 1, 'HV-2': 2})
        data = dashboard.weekly_trends(Location.HSTD.value)
        self.assertEqual(len(data['weeks']), 1)
        self.assertEqual(sum(data['matrix'][0]), 2)
        self.assertEqual(len(data['matrix'][0]), 7)

    def test_weekly_trends_defaults_to_hstd(self):
        weekly = TestDataFactory.weekly_scope()
        TestDataFactory.create_session(weekly, progress={'HV-1': 1})
        self.assertEqual(dashboard.weekly_trends(), dashboard.weekly_trends('HSTD'))
        self.assertEqual(sum(dashboard.weekly_trends()['matrix'][0]), 1)

    def test_results_cached_until_count_changes(self):
        self.assertEqual(dashboard.top_skus()['skus'][0]['scans'], 4)
        TestDataFactory.create_history('GUM-1', 1, self.mtd)
        self.assertEqual(dashboard.top_skus()['skus'][0]['scans'], 4)


class ReportsApiTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_component(barcode='GUM-1', mtd_quantity=2)

    def test_dashboard_summary(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for key in ('progress_over_time', 'top_skus', 'scans_by_location', 'weekly_trends'):
            self.assertIn(key, response.data)

    def test_invalid_location(self):
        response = self.client.get('/api/v1/reports/top-skus/?location=Nowhere')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_accepted_count_refreshes_dashboard(self):
        response = self.client.get('/api/v1/reports/top-skus/?location=MtD')
        self.assertEqual(response.data['skus'], [])

        response = self.client.post(
            '/api/v1/counts/submit/', {'location': 'MtD', 'barcode': 'GUM-1', 'quantity': 2}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        response = self.client.get('/api/v1/reports/top-skus/?location=MtD')
        self.assertEqual(response.data['skus'], [{'barcode': 'GUM-1', 'scans': 1}])

    def test_endpoints(self):
        for url in ('progress-over-time', 'top-skus', 'scans-by-location', 'weekly-trends'):
            response = self.client.get(f'/api/v1/reports/{url}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
