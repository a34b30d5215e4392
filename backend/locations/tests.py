from django.test import SimpleTestCase, TestCase
from rest_framework import status

from backend.core.models import UserSession
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Location, parse_location, quantity_field_for


class LocationModelTests(SimpleTestCase):

    def test_parse_location(self):
        self.assertEqual(parse_location(' HSTD '), Location.HSTD)
        self.assertEqual(parse_location('3PL'), Location.TPL)
        self.assertIsNone(parse_location('mtd'))
        self.assertIsNone(parse_location(''))

    def test_quantity_field_for(self):
        self.assertEqual(quantity_field_for('3PL'), 'tpl_quantity')
        with self.assertRaises(ValueError):
            quantity_field_for('Warehouse')


class LocationApiTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_list_locations(self):
        response = self.client.get('/api/v1/locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([loc['code'] for loc in response.data], ['MtD', 'FtP', 'HSTD', '3PL'])
        weekly = [loc['code'] for loc in response.data if loc['weekly_count']]
        self.assertEqual(weekly, ['HSTD'])

    def test_select_location_records_event(self):
        response = self.client.post('/api/v1/locations/select/', {'location': 'HSTD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['weekly_count'])
        event = UserSession.objects.get(user=self.user)
        self.assertEqual(event.event_type, 'location')
        self.assertEqual(event.location, 'HSTD')

    def test_select_invalid_location(self):
        response = self.client.post('/api/v1/locations/select/', {'location': 'Moon'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(UserSession.objects.exists())
