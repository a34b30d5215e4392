"""
Test suite for the counts module
Tests: scopes, progress, reconciliation engine, store failures, Graph workbook adapter and count endpoints
"""
from datetime import date, datetime, timedelta
from unittest.mock import Mock

import requests
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework import status

from backend.catalog.models import Component
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Location
from .exceptions import ConflictError, MismatchError, PartialWriteError, StoreError, ValidationError
from .graph_store import (
    COMPONENTS_TABLE, GraphHistoryStore, GraphInventoryStore, GraphSessionStore,
    GraphWorkbookClient,
)
from .models import CountHistory, CountSession
from .progress import compute_progress
from .reconciliation import Actor, ReconciliationEngine, clean_quantity, format_source
from .scopes import CountScope, parse_session_id
from .stores import HistoryFilter, OrmHistoryStore, OrmInventoryStore, OrmSessionStore, OrmSkuCatalog, SessionRecord


def orm_engine(**overrides):
    stores = {
        'inventory': OrmInventoryStore(),
        'sessions': OrmSessionStore(),
        'history': OrmHistoryStore(),
        'catalog': OrmSkuCatalog(),
    }
    stores.update(overrides)
    return ReconciliationEngine(**stores)


class CountScopeTests(SimpleTestCase):
    """Test scope validation and session ids"""

    def test_monthly_session_id(self):
        scope = CountScope.build('MtD', 'monthly', on_date=date(2026, 10, 19))
        self.assertEqual(scope.session_id, 'Cycle_2026-10_MtD')
        self.assertEqual(scope.period_start, date(2026, 10, 1))
        self.assertEqual(scope.day, '')

    def test_weekly_session_id(self):
        scope = CountScope.build('HSTD', 'weekly', day='monday', on_date=date(2026, 10, 19))
        self.assertEqual(scope.session_id, 'Weekly_2026-10-19_HSTD_Monday')
        self.assertEqual(scope.session_label, 'Monday weekly count')

    def test_weekly_day_defaults_to_weekday(self):
        scope = CountScope.build('HSTD', 'weekly', on_date=date(2026, 10, 21))
        self.assertEqual(scope.day, 'Wednesday')

    def test_weekly_outside_hstd_rejected(self):
        with self.assertRaises(ValidationError):
            CountScope.build('MtD', 'weekly')

    def test_missing_location_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            CountScope.build('', 'monthly')
        self.assertIn('No location selected', ctx.exception.message)

    def test_invalid_kind_and_date(self):
        with self.assertRaises(ValidationError):
            CountScope.build('MtD', 'yearly')
        with self.assertRaises(ValidationError):
            CountScope.build('MtD', 'monthly', on_date='19/10/2026')

    def test_monthly_window_covers_month(self):
        scope = CountScope.build('FtP', 'monthly', on_date=date(2028, 2, 10))
        start, end = scope.window()
        self.assertEqual(timezone.localtime(start).date(), date(2028, 2, 1))
        self.assertEqual(timezone.localtime(end).date(), date(2028, 2, 29))

    def test_weekly_window_is_one_day(self):
        scope = CountScope.build('HSTD', 'weekly', day='Friday', on_date=date(2026, 10, 23))
        start, end = scope.window()
        self.assertEqual(timezone.localtime(start).date(), timezone.localtime(end).date())

    def test_overlapping_periods(self):
        monthly = CountScope.build('HSTD', 'monthly', on_date=date(2026, 10, 19))
        weekly = CountScope.build('HSTD', 'weekly', day='Monday', on_date=date(2026, 10, 19))
        prior = CountScope.build('HSTD', 'weekly', day='Wednesday', on_date=date(2026, 9, 30))
        self.assertEqual(monthly.period_end, date(2026, 10, 31))
        self.assertTrue(monthly.overlaps(weekly))
        self.assertTrue(weekly.overlaps(monthly))
        self.assertFalse(monthly.overlaps(prior))
        self.assertFalse(monthly.overlaps(CountScope.build('MtD', 'monthly', on_date=date(2026, 10, 1))))

    def test_parse_session_id(self):
        self.assertEqual(parse_session_id('Cycle_2026-10_3PL')['location'], '3PL')
        weekly = parse_session_id('Weekly_2026-10-19_HSTD_Monday')
        self.assertEqual(weekly['day'], 'Monday')
        self.assertEqual(weekly['period_start'], date(2026, 10, 19))
        with self.assertRaises(ValueError):
            parse_session_id('nonsense')


class ProgressTests(SimpleTestCase):
    """Test progress accounting"""

    def test_partial_progress(self):
        snapshot = compute_progress({'A': 1}, {'A', 'B', 'C'})
        self.assertEqual(snapshot.counted, 1)
        self.assertEqual(snapshot.expected, 3)
        self.assertEqual(snapshot.percent, 33.3)
        self.assertFalse(snapshot.completed)

    def test_completed_when_sizes_equal(self):
        self.assertTrue(compute_progress({'A': 1, 'B': 0}, {'A', 'B'}).completed)

    def test_nothing_expected(self):
        snapshot = compute_progress({}, set())
        self.assertEqual(snapshot.percent, 0.0)

    def test_percent_capped(self):
        self.assertEqual(compute_progress({'A': 1, 'B': 2}, {'A'}).percent, 100.0)


class QuantityValidationTests(SimpleTestCase):
    """Test quantity parsing"""

    def test_valid_quantities(self):
        self.assertEqual(clean_quantity('12'), 12)
        self.assertEqual(clean_quantity(' 0 '), 0)
        self.assertEqual(clean_quantity(7), 7)

    def test_empty_quantity(self):
        with self.assertRaises(ValidationError) as ctx:
            clean_quantity('')
        self.assertEqual(ctx.exception.message, 'Please enter a quantity.')

    def test_invalid_quantities(self):
        for value in ('-1', 'abc', '2.5', True, -3):
            with self.assertRaises(ValidationError):
                clean_quantity(value)


class SubmitCountTests(TestCase):
    """Test accepting and rejecting scanned counts"""

    def setUp(self):
        self.engine = orm_engine()
        self.component = TestDataFactory.create_component(barcode='CMP-100', mtd_quantity=5, hstd_quantity=7)
        self.scope = TestDataFactory.monthly_scope(Location.MTD)

    def test_matching_count_accepted(self):
        result = self.engine.submit_count('CMP-100', '5', self.scope)
        self.assertEqual(result.quantity, 5)
        self.assertEqual(result.message, 'Counted CMP-100 successfully at MtD!')
        self.assertIn('using Monthly Count at MtD', result.source)

        session = CountSession.objects.get(session_id=self.scope.session_id)
        self.assertEqual(session.progress, {'CMP-100': 5})
        self.assertTrue(session.completed)

        entry = CountHistory.objects.get(barcode='CMP-100')
        self.assertEqual(entry.quantity, 5)
        self.assertEqual(entry.count_type, 'monthly')
        self.assertEqual(entry.source, result.source)

    def test_mismatch_rejected_without_writes(self):
        with self.assertRaises(MismatchError) as ctx:
            self.engine.submit_count('CMP-100', 4, self.scope)
        self.assertEqual(ctx.exception.expected, 5)
        self.assertEqual(ctx.exception.entered, 4)
        self.assertIn('Expected: 5, Entered: 4', ctx.exception.message)
        self.assertFalse(CountSession.objects.exists())
        self.assertFalse(CountHistory.objects.exists())

    def test_missing_barcode(self):
        with self.assertRaises(ValidationError) as ctx:
            self.engine.submit_count('  ', 5, self.scope)
        self.assertEqual(ctx.exception.message, 'Please enter a barcode.')

    def test_unknown_barcode_counted_as_zero_is_inserted(self):
        self.engine.submit_count('NEW-1', 0, self.scope)
        component = Component.objects.get(barcode='NEW-1')
        self.assertEqual(component.mtd_quantity, 0)
        self.assertEqual(component.total_quantity, 0)

        # New barcode joins the expected set for the month
        progress = self.engine.get_progress(self.scope)
        self.assertEqual(progress.expected, 2)
        self.assertEqual(progress.counted, 1)

    def test_unknown_barcode_nonzero_is_mismatch(self):
        with self.assertRaises(MismatchError):
            self.engine.submit_count('NEW-2', 3, self.scope)
        self.assertFalse(Component.objects.filter(barcode='NEW-2').exists())

    def test_actor_recorded(self):
        user = TestDataFactory.create_admin()
        self.engine.submit_count('CMP-100', 5, self.scope, actor=Actor.from_user(user))
        entry = CountHistory.objects.get(barcode='CMP-100')
        self.assertEqual(entry.user, user)
        self.assertEqual(entry.user_type, 'admin')


class ConflictTests(TestCase):
    """Test cross-session agreement at a location"""

    def setUp(self):
        self.engine = orm_engine()
        TestDataFactory.create_component(barcode='HV-1', hstd_quantity=7)
        self.monthly = TestDataFactory.monthly_scope(Location.HSTD)
        self.weekly = TestDataFactory.weekly_scope('Monday')
        TestDataFactory.create_session(self.weekly, progress={'HV-1': 6})

    def test_conflict_requires_confirmation(self):
        with self.assertRaises(ConflictError) as ctx:
            self.engine.submit_count('HV-1', 7, self.monthly)
        error = ctx.exception
        self.assertFalse(error.declined)
        self.assertEqual(error.conflicts[0].quantity, 6)
        self.assertIn('previously counted with a quantity of 6', error.message)
        self.assertIn('Monday weekly count', error.message)
        self.assertTrue(error.to_dict()['requires_confirmation'])
        self.assertFalse(CountHistory.objects.exists())

    def test_declined_override(self):
        with self.assertRaises(ConflictError) as ctx:
            self.engine.submit_count('HV-1', 7, self.monthly, confirm=lambda conflicts: False)
        self.assertTrue(ctx.exception.declined)
        self.assertEqual(ctx.exception.message, 'Count not updated. Please recount if necessary.')
        self.assertFalse(CountSession.objects.filter(session_id=self.monthly.session_id).exists())

    def test_confirmed_override(self):
        result = self.engine.submit_count('HV-1', 7, self.monthly, confirm=lambda conflicts: True)
        self.assertEqual(len(result.overridden), 1)
        self.assertEqual(result.overridden[0].session_id, self.weekly.session_id)
        self.assertEqual(CountHistory.objects.count(), 1)
        # The other session keeps its own value
        self.assertEqual(CountSession.objects.get(session_id=self.weekly.session_id).progress, {'HV-1': 6})

    def test_completed_sessions_ignored(self):
        CountSession.objects.filter(session_id=self.weekly.session_id).update(completed=True)
        result = self.engine.submit_count('HV-1', 7, self.monthly)
        self.assertEqual(result.overridden, [])

    def test_other_locations_ignored(self):
        other = TestDataFactory.monthly_scope(Location.FTP)
        TestDataFactory.create_session(other, progress={'HV-1': 1})
        CountSession.objects.filter(session_id=self.weekly.session_id).delete()
        result = self.engine.submit_count('HV-1', 7, self.monthly)
        self.assertEqual(result.overridden, [])

    def test_prior_period_session_ignored(self):
        CountSession.objects.filter(session_id=self.weekly.session_id).delete()
        prior_day = self.monthly.period_start - timedelta(days=1)
        TestDataFactory.create_session(TestDataFactory.monthly_scope(Location.HSTD, on_date=prior_day), progress={'HV-1': 3})
        TestDataFactory.create_session(TestDataFactory.weekly_scope('Monday', on_date=prior_day), progress={'HV-1': 4})
        result = self.engine.submit_count('HV-1', 7, self.monthly)
        self.assertEqual(result.overridden, [])
        self.assertEqual(CountHistory.objects.count(), 1)


class WeeklyCountTests(TestCase):
    """Test weekly high-volume counts"""

    def setUp(self):
        self.engine = orm_engine()
        TestDataFactory.create_component(barcode='HV-1', hstd_quantity=3)
        TestDataFactory.create_component(barcode='HV-2', hstd_quantity=4)
        TestDataFactory.create_component(barcode='OTHER', hstd_quantity=1)
        TestDataFactory.create_high_volume_sku('HV-1', day='Monday')
        TestDataFactory.create_high_volume_sku('HV-2', day='Monday')
        self.scope = TestDataFactory.weekly_scope('Monday')

    def test_listed_sku_accepted(self):
        result = self.engine.submit_count('HV-1', 3, self.scope)
        self.assertEqual(result.progress.expected, 2)
        self.assertEqual(result.progress.percent, 50.0)
        entry = CountHistory.objects.get(barcode='HV-1')
        self.assertEqual(entry.count_type, 'weekly')
        self.assertEqual(entry.session_id, self.scope.session_id)

    def test_unlisted_sku_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.engine.submit_count('OTHER', 1, self.scope)
        self.assertIn('not on the Monday high-volume list', ctx.exception.message)
        self.assertFalse(CountHistory.objects.exists())

    def test_completion(self):
        self.engine.submit_count('HV-1', 3, self.scope)
        result = self.engine.submit_count('HV-2', 4, self.scope)
        self.assertTrue(result.progress.completed)
        self.assertTrue(CountSession.objects.get(session_id=self.scope.session_id).completed)


class SessionLifecycleTests(TestCase):
    """Test start/resume, reset and SKU removal"""

    def setUp(self):
        self.engine = orm_engine()
        for barcode in ('A', 'B', 'C'):
            TestDataFactory.create_component(barcode=barcode, hstd_quantity=1)
        self.scope = TestDataFactory.monthly_scope(Location.HSTD)

    def test_start_creates_session(self):
        result = self.engine.start_session(self.scope)
        self.assertTrue(result.created)
        self.assertEqual(result.progress.expected, 3)
        self.assertTrue(CountSession.objects.filter(session_id=self.scope.session_id).exists())

    def test_resume_merges_cached_progress(self):
        TestDataFactory.create_session(self.scope, progress={'A': 1, 'B': 1})
        result = self.engine.start_session(self.scope, cached_progress={'B': '2', 'C': 1})
        self.assertFalse(result.created)
        self.assertEqual(result.record.progress, {'A': 1, 'B': 2, 'C': 1})
        self.assertTrue(result.progress.completed)

    def test_resume_is_idempotent(self):
        self.engine.start_session(self.scope, cached_progress={'A': 1})
        before = CountSession.objects.get(session_id=self.scope.session_id)
        self.engine.start_session(self.scope, cached_progress={'A': 1})
        after = CountSession.objects.get(session_id=self.scope.session_id)
        self.assertEqual(before.last_updated, after.last_updated)
        self.assertEqual(before.start_date, after.start_date)

    def test_reset_cascades(self):
        weekly = TestDataFactory.weekly_scope('Monday')
        other = TestDataFactory.monthly_scope(Location.MTD)
        TestDataFactory.create_session(self.scope, progress={'A': 1, 'B': 1})
        TestDataFactory.create_session(weekly, progress={'A': 1, 'C': 1})
        TestDataFactory.create_session(other, progress={'A': 0})
        TestDataFactory.create_history('A', 1, self.scope)
        TestDataFactory.create_history('B', 1, self.scope)
        TestDataFactory.create_history('C', 1, weekly)
        TestDataFactory.create_history('A', 0, other)

        result = self.engine.reset_session(self.scope)

        self.assertTrue(result.existed)
        self.assertEqual(result.barcodes_removed, 2)
        self.assertEqual(result.sibling_sessions_updated, 1)
        self.assertEqual(result.history_deleted, 2)
        self.assertFalse(CountSession.objects.filter(session_id=self.scope.session_id).exists())
        self.assertEqual(CountSession.objects.get(session_id=weekly.session_id).progress, {'C': 1})
        # Other locations untouched
        self.assertEqual(CountSession.objects.get(session_id=other.session_id).progress, {'A': 0})
        self.assertEqual(set(CountHistory.objects.values_list('barcode', 'location')), {('C', 'HSTD'), ('A', 'MtD')})
        # Stock is never reset
        self.assertEqual(Component.objects.get(barcode='A').hstd_quantity, 1)

    def test_reset_keeps_history_outside_window(self):
        TestDataFactory.create_session(self.scope, progress={'A': 1})
        TestDataFactory.create_history('A', 1, self.scope, timestamp=timezone.now() - timedelta(days=62))
        result = self.engine.reset_session(self.scope)
        self.assertEqual(result.history_deleted, 0)
        self.assertEqual(CountHistory.objects.count(), 1)

    def test_reset_absent_session(self):
        result = self.engine.reset_session(self.scope)
        self.assertFalse(result.existed)
        self.assertEqual(result.history_deleted, 0)

    def test_remove_sku(self):
        weekly = TestDataFactory.weekly_scope('Monday')
        TestDataFactory.create_session(self.scope, progress={'A': 1, 'B': 1})
        TestDataFactory.create_session(weekly, progress={'A': 1})
        TestDataFactory.create_history('A', 1, self.scope)

        result = self.engine.remove_sku(self.scope, 'A')

        self.assertEqual(result['sibling_sessions_updated'], 1)
        self.assertEqual(result['history_deleted'], 1)
        self.assertEqual(CountSession.objects.get(session_id=self.scope.session_id).progress, {'B': 1})
        self.assertEqual(CountSession.objects.get(session_id=weekly.session_id).progress, {})

    def test_remove_uncounted_sku(self):
        TestDataFactory.create_session(self.scope, progress={'A': 1})
        with self.assertRaises(ValidationError):
            self.engine.remove_sku(self.scope, 'B')

    def test_reset_leaves_other_periods(self):
        prior_day = self.scope.period_start - timedelta(days=1)
        prior_monthly = TestDataFactory.monthly_scope(Location.HSTD, on_date=prior_day)
        prior_weekly = TestDataFactory.weekly_scope('Monday', on_date=prior_day)
        TestDataFactory.create_session(self.scope, progress={'A': 1})
        TestDataFactory.create_session(prior_monthly, progress={'A': 1, 'B': 1})
        TestDataFactory.create_session(prior_weekly, progress={'A': 1})

        result = self.engine.reset_session(self.scope)

        self.assertEqual(result.sibling_sessions_updated, 0)
        self.assertEqual(CountSession.objects.get(session_id=prior_monthly.session_id).progress, {'A': 1, 'B': 1})
        self.assertEqual(CountSession.objects.get(session_id=prior_weekly.session_id).progress, {'A': 1})

    def test_remove_sku_leaves_other_periods(self):
        prior = TestDataFactory.monthly_scope(Location.HSTD, on_date=self.scope.period_start - timedelta(days=1))
        TestDataFactory.create_session(self.scope, progress={'A': 1})
        TestDataFactory.create_session(prior, progress={'A': 1})

        result = self.engine.remove_sku(self.scope, 'A')

        self.assertEqual(result['sibling_sessions_updated'], 0)
        self.assertEqual(CountSession.objects.get(session_id=prior.session_id).progress, {'A': 1})


class StoreFailureTests(TestCase):
    """Test store failures before and after the first write"""

    def setUp(self):
        TestDataFactory.create_component(barcode='CMP-1', ftp_quantity=2)
        self.scope = TestDataFactory.monthly_scope(Location.FTP)

    def test_history_failure_reports_partial_write(self):
        history = Mock()
        history.append_history.side_effect = StoreError('append_history', 'timeout')
        engine = orm_engine(history=history)

        with self.assertRaises(PartialWriteError) as ctx:
            with self.assertLogs('backend.counts.reconciliation', level='ERROR'):
                engine.submit_count('CMP-1', 2, self.scope)

        self.assertEqual(ctx.exception.applied_steps, ['component', 'session_progress'])
        self.assertEqual(ctx.exception.to_dict()['code'], 'partial_write')
        # Earlier steps are not rolled back
        self.assertEqual(CountSession.objects.get(session_id=self.scope.session_id).progress, {'CMP-1': 2})

    def test_first_step_failure_is_plain_store_error(self):
        inventory = Mock()
        inventory.get_component_quantity.return_value = 2
        inventory.set_component_quantity.side_effect = StoreError('set_component_quantity')
        sessions = Mock()
        sessions.list_sessions.return_value = []
        engine = orm_engine(inventory=inventory, sessions=sessions)

        with self.assertRaises(StoreError) as ctx:
            engine.submit_count('CMP-1', 2, self.scope)
        self.assertNotIsInstance(ctx.exception, PartialWriteError)
        sessions.put_session.assert_not_called()

    def test_format_source(self):
        stamp = timezone.make_aware(datetime(2026, 10, 19, 14, 5, 9))
        self.assertEqual(
            format_source(stamp, self.scope),
            'Counted on 10/19/2026 at 02:05:09 PM using Monthly Count at FtP',
        )


def graph_response(payload=None):
    response = Mock()
    response.status_code = 200
    response.content = b'{}'
    response.json.return_value = payload or {}
    return response


class GraphAdapterTests(SimpleTestCase):
    """Test the Microsoft Graph workbook stores against a mocked HTTP session"""

    def setUp(self):
        self.http = Mock()
        self.client = GraphWorkbookClient(
            'token-123',
            site_id='site',
            file_ids={'components': 'f-comp', 'countHistory': 'f-hist', 'cycleCounts': 'f-cycle',
                      'weeklyCountsHstd': 'f-weekly'},
            base_url='https://graph.test/v1.0',
            timeout=5,
            session=self.http,
        )

    def test_list_rows_sends_bearer_token(self):
        self.http.request.return_value = graph_response({'value': [{'index': 0, 'values': [['id', 'A']]}]})
        rows = self.client.list_rows(COMPONENTS_TABLE)
        self.assertEqual(rows, [(0, ['id', 'A'])])
        method, url = self.http.request.call_args[0]
        self.assertEqual(method, 'GET')
        self.assertEqual(
            url, 'https://graph.test/v1.0/sites/site/drive/items/f-comp/workbook/tables/ComponentsTable/rows'
        )
        self.assertEqual(self.http.request.call_args[1]['headers']['Authorization'], 'Bearer token-123')

    def test_request_failure_is_store_error(self):
        self.http.request.side_effect = requests.exceptions.ConnectionError('down')
        with self.assertRaises(StoreError):
            self.client.list_rows(COMPONENTS_TABLE)

    def test_missing_workbook_is_store_error(self):
        with self.assertRaises(StoreError):
            self.client.list_rows('HighVolumeSkusTable')

    def test_set_component_quantity_updates_row_and_total(self):
        self.http.request.side_effect = [
            graph_response({'value': [{'index': 4, 'values': [['id-1', 'A', 'desc', 1, 2, 3, 4, 10, 1]]}]}),
            graph_response(),
        ]
        GraphInventoryStore(self.client).set_component_quantity('A', 'HSTD', 9)
        method, url = self.http.request.call_args[0]
        self.assertEqual(method, 'PATCH')
        self.assertTrue(url.endswith('/itemAt(index=4)'))
        values = self.http.request.call_args[1]['json']['values'][0]
        self.assertEqual(values[5], 9)
        self.assertEqual(values[7], 1 + 2 + 9 + 4 + 1)

    def test_set_component_quantity_adds_missing_row(self):
        self.http.request.side_effect = [graph_response({'value': []}), graph_response()]
        GraphInventoryStore(self.client).set_component_quantity('NEW', 'MtD', 0)
        method, url = self.http.request.call_args[0]
        self.assertEqual(method, 'POST')
        self.assertTrue(url.endswith('/rows/add'))

    def test_weekly_session_round_trip(self):
        row = ['Weekly_2026-10-19_HSTD_Monday', '2026-10-19T09:00:00', '2026-10-19T10:00:00',
               '{"HV-1": 3}', 'Monday', 'FALSE', 'HSTD']
        self.http.request.return_value = graph_response({'value': [{'index': 0, 'values': [row]}]})
        record = GraphSessionStore(self.client).get_session('Weekly_2026-10-19_HSTD_Monday')
        self.assertEqual(record.kind, 'weekly')
        self.assertEqual(record.progress, {'HV-1': 3})
        self.assertFalse(record.completed)
        self.assertEqual(record.period_start, date(2026, 10, 19))
        self.assertIn('WeeklyCountsHstdTable', self.http.request.call_args[0][1])

    def test_put_monthly_session_adds_row(self):
        self.http.request.side_effect = [graph_response({'value': []}), graph_response()]
        now = timezone.now()
        record = SessionRecord(session_id='Cycle_2026-10_MtD', kind='monthly', location='MtD',
                               period_start=date(2026, 10, 1), progress={'A': 1}, completed=True,
                               start_date=now, last_updated=now)
        GraphSessionStore(self.client).put_session(record)
        values = self.http.request.call_args[1]['json']['values'][0]
        self.assertEqual(values[0], 'Cycle_2026-10_MtD')
        self.assertEqual(values[4], 'TRUE')
        self.assertEqual(values[6], 'MtD')

    def test_delete_history_removes_highest_index_first(self):
        rows = [
            {'index': 1, 'values': [['h1', 'A', 1, 'monthly', 'Cycle_2026-10_MtD', '2026-10-01T10:00:00', 'user', '', 'MtD']]},
            {'index': 2, 'values': [['h2', 'B', 1, 'monthly', 'Cycle_2026-10_MtD', '2026-10-01T10:00:00', 'user', '', 'MtD']]},
            {'index': 3, 'values': [['h3', 'A', 2, 'monthly', 'Cycle_2026-10_MtD', '2026-10-02T10:00:00', 'user', '', 'MtD']]},
        ]
        self.http.request.side_effect = [graph_response({'value': rows}), graph_response(), graph_response()]
        deleted = GraphHistoryStore(self.client).delete_history(HistoryFilter(barcode='A', location='MtD'))
        self.assertEqual(deleted, 2)
        urls = [call[0][1] for call in self.http.request.call_args_list[1:]]
        self.assertTrue(urls[0].endswith('itemAt(index=3)'))
        self.assertTrue(urls[1].endswith('itemAt(index=1)'))

    def test_query_history_newest_first(self):
        rows = [
            {'index': 0, 'values': [['h1', 'A', 1, 'monthly', 's', '2026-10-01T10:00:00', 'user', 'first', 'MtD']]},
            {'index': 1, 'values': [['h2', 'A', 1, 'monthly', 's', '2026-10-03T10:00:00', 'user', 'latest', 'MtD']]},
        ]
        self.http.request.return_value = graph_response({'value': rows})
        entries = GraphHistoryStore(self.client).query_history(HistoryFilter(barcode='A'))
        self.assertEqual([e.source for e in entries], ['latest', 'first'])


class CountApiTests(TestCase):
    """Test count endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        TestDataFactory.create_component(barcode='CMP-1', mtd_quantity=5, hstd_quantity=2)

    def submit(self, **data):
        payload = {'location': 'MtD', 'barcode': 'CMP-1', 'quantity': 5}
        payload.update(data)
        return self.client.post('/api/v1/counts/submit/', payload, format='json')

    def test_requires_authentication(self):
        self.client.logout()
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_submit_count(self):
        response = self.submit()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Counted CMP-1 successfully at MtD!')
        self.assertEqual(response.data['progress']['counted'], 1)

    def test_submit_mismatch(self):
        response = self.submit(quantity=3)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'mismatch')
        self.assertEqual(response.data['expected'], 5)

    def test_submit_without_location(self):
        response = self.submit(location='')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('No location selected', response.data['error'])

    def test_conflict_then_override(self):
        weekly = TestDataFactory.weekly_scope('Monday')
        TestDataFactory.create_session(weekly, progress={'CMP-1': 9})

        response = self.submit(location='HSTD', quantity=2)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'conflict')
        self.assertEqual(response.data['conflicts'][0]['quantity'], 9)

        response = self.submit(location='HSTD', quantity=2, override=False)
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'declined')

        response = self.submit(location='HSTD', quantity=2, override=True)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['overridden']), 1)

    def test_session_start_and_status(self):
        response = self.client.post('/api/v1/counts/sessions/start/', {'location': 'MtD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['created'])

        response = self.client.post(
            '/api/v1/counts/sessions/start/', {'location': 'MtD', 'progress': {'CMP-1': 5}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['progress']['completed'])

        response = self.client.get('/api/v1/counts/sessions/?location=MtD')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['remaining_skus'], [])
        self.assertEqual(response.data['session']['progress'], {'CMP-1': 5})

    def test_reset_requires_confirm(self):
        response = self.client.post('/api/v1/counts/sessions/reset/', {'location': 'MtD'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.submit()
        response = self.client.post(
            '/api/v1/counts/sessions/reset/', {'location': 'MtD', 'confirm': True}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['existed'])
        self.assertEqual(response.data['history_deleted'], 1)

    def test_remove_sku(self):
        self.submit()
        response = self.client.post(
            '/api/v1/counts/sessions/remove-sku/', {'location': 'MtD', 'barcode': 'CMP-1'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['progress']['counted'], 0)

    def test_history_list_and_source(self):
        response = self.client.get('/api/v1/counts/history/source/?barcode=CMP-1')
        self.assertEqual(response.data['source'], 'Not yet counted')

        self.submit()
        response = self.client.get('/api/v1/counts/history/?barcode=CMP-1&location=MtD')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/counts/history/source/?barcode=CMP-1')
        self.assertIn('Counted on', response.data['source'])

    def test_history_invalid_location(self):
        response = self.client.get('/api/v1/counts/history/?location=Nowhere')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history_clear_current_month_only(self):
        scope = TestDataFactory.monthly_scope(Location.MTD)
        TestDataFactory.create_history('CMP-1', 5, scope)
        TestDataFactory.create_history('CMP-1', 5, scope, timestamp=timezone.now() - timedelta(days=60))

        response = self.client.post(
            '/api/v1/counts/history/clear/', {'barcode': 'CMP-1', 'location': 'MtD'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['deleted'], 1)
        self.assertEqual(response.data['message'], 'Scan history for CMP-1 cleared successfully.')
        self.assertEqual(CountHistory.objects.count(), 1)

    def test_graph_backend_requires_token(self):
        with self.settings(COUNT_STORE_BACKEND='graph'):
            response = self.client.get('/api/v1/counts/sessions/?location=MtD')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('X-Graph-Access-Token', response.data['error'])
