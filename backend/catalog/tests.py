"""
Test suite for the catalog module
Tests: component import, high-volume SKUs, label layout and label sheet PDFs
"""
from django.test import SimpleTestCase, TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .labels import LabelSheet, layout_labels, parse_label_size
from .models import Component, HighVolumeSku
from .utils import find_duplicate_barcodes, import_components


class LabelLayoutTests(SimpleTestCase):
    """Test label placement on US Letter sheets"""

    def test_parse_label_size(self):
        self.assertEqual(parse_label_size('4x1.5'), (4.0, 1.5))
        self.assertEqual(parse_label_size(' 2 X 1 '), (2.0, 1.0))
        for value in ('4', 'axb', '0x1', None):
            with self.assertRaises(ValueError):
                parse_label_size(value)

    def test_first_labels_positions(self):
        pages = layout_labels([{'barcode': 'A'}, {'barcode': 'B'}, {'barcode': 'C'}])
        first, second, third = pages[0]
        self.assertEqual((first.x, first.y), (18, 612))
        self.assertEqual((second.x, second.y), (306, 612))
        self.assertEqual((third.row, third.column), (1, 0))
        self.assertEqual(third.y, 504)

    def test_overflow_starts_new_page(self):
        pages = layout_labels([{'barcode': f'SKU{i}'} for i in range(13)])
        self.assertEqual(len(pages), 2)
        self.assertEqual(len(pages[0]), 12)
        self.assertEqual(pages[1][0].page, 1)
        self.assertEqual((pages[1][0].row, pages[1][0].column), (0, 0))

    def test_items_without_barcode_take_no_slot(self):
        pages = layout_labels([{'barcode': ''}, {'barcode': 'A'}, {'description': 'no code'}, {'barcode': 'B'}])
        self.assertEqual([label.barcode for label in pages[0]], ['A', 'B'])
        self.assertEqual(pages[0][1].column, 1)

    def test_oversized_labels_rejected(self):
        with self.assertRaises(ValueError):
            layout_labels([{'barcode': 'A'}], LabelSheet(label_width_in=5))


class ComponentImportTests(TestCase):
    """Test bulk component import"""

    def test_find_duplicate_barcodes(self):
        rows = [{'barcode': 'A'}, {'barcode': 'B'}, {'barcode': 'A'}, {'barcode': 'A'}]
        self.assertEqual(find_duplicate_barcodes(rows), ['A'])

    def test_import_keeps_first_occurrence(self):
        result = import_components([
            {'barcode': 'A', 'description': 'First', 'quantity': 3},
            {'barcode': 'A', 'description': 'Second', 'quantity': 9},
            {'barcode': '', 'description': 'blank'},
        ], location='MtD')
        self.assertEqual(result['created'], ['A'])
        self.assertEqual(result['duplicates'], ['A'])
        self.assertEqual(result['skipped'], 1)

        component = Component.objects.get(barcode='A')
        self.assertEqual(component.description, 'First')
        self.assertEqual(component.mtd_quantity, 3)
        self.assertEqual(component.total_quantity, 3)

    def test_import_updates_existing(self):
        TestDataFactory.create_component(barcode='A', ftp_quantity=2, quarantine_quantity=1)
        result = import_components([{'barcode': 'A', 'quantity': 5}], location='MtD')
        self.assertEqual(result['updated'], ['A'])
        self.assertEqual(Component.objects.get(barcode='A').total_quantity, 8)

    def test_quantity_requires_location(self):
        with self.assertRaises(ValueError):
            import_components([{'barcode': 'A', 'quantity': 5}])
        self.assertFalse(Component.objects.exists())


class CatalogApiTests(TestCase):
    """Test catalog endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_component_search(self):
        TestDataFactory.create_component(barcode='GUM-1', description='Gummies 10pk')
        TestDataFactory.create_component(barcode='VAPE-1', description='Cartridge')
        response = self.client.get('/api/v1/components/?search=gumm')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['barcode'], 'GUM-1')

    def test_component_by_barcode(self):
        TestDataFactory.create_component(barcode='GUM-1')
        response = self.client.get('/api/v1/components/by-barcode/GUM-1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.get('/api/v1/components/by-barcode/MISSING/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_import_requires_admin(self):
        payload = {'location': 'MtD', 'rows': [{'barcode': 'A', 'quantity': 1}]}
        response = self.client.post('/api/v1/components/import/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/components/import/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['created'], ['A'])

    def test_import_quantity_without_location(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post(
            '/api/v1/components/import/', {'rows': [{'barcode': 'A', 'quantity': 1}]}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_high_volume_skus(self):
        response = self.client.post('/api/v1/high-volume-skus/', {'barcode': 'HV-1', 'day': 'Monday'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/high-volume-skus/', {'barcode': 'HV-1', 'day': 'Monday'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['location'], 'HSTD')

        response = self.client.post('/api/v1/high-volume-skus/', {'barcode': 'HV-1', 'day': 'Monday'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get('/api/v1/high-volume-skus/?day=monday')
        self.assertEqual(len(response.data), 1)

        sku = HighVolumeSku.objects.get(barcode='HV-1')
        response = self.client.delete(f'/api/v1/high-volume-skus/{sku.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(HighVolumeSku.objects.exists())

    def test_generate_labels_pdf(self):
        component = TestDataFactory.create_component(barcode='CMP-1')
        response = self.client.post('/api/v1/labels/', {
            'component_ids': [component.pk],
            'items': [{'barcode': 'ADHOC-1', 'description': 'Imported row'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_generate_labels_requires_selection(self):
        response = self.client.post('/api/v1/labels/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/v1/labels/', {'items': [{'barcode': ''}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_labels_invalid_size(self):
        response = self.client.post(
            '/api/v1/labels/', {'items': [{'barcode': 'A'}], 'label_size': 'huge'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
