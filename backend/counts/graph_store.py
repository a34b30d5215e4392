"""
Microsoft Graph workbook adapter for the count stores.

Each entity lives in an Excel table reached through
``/sites/{site}/drive/items/{file}/workbook/tables/{table}/rows`` with the
caller's delegated bearer token. Rows are plain value lists; the column
order of each table is fixed below. Filtering happens client-side because
workbook rows do not support OData filters reliably.
"""
import json
import logging
import uuid
from datetime import datetime, timezone as dt_timezone

import requests
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from backend.locations.models import Location, parse_location
from .exceptions import StoreError
from .scopes import MONTHLY, WEEKLY, parse_session_id
from .stores import HistoryEntry, HistoryStore, InventoryStore, SessionRecord, SessionStore, SkuCatalog

logger = logging.getLogger(__name__)

COMPONENTS_TABLE = 'ComponentsTable'
CYCLE_COUNTS_TABLE = 'CycleCountsTable'
WEEKLY_COUNTS_TABLE = 'WeeklyCountsHstdTable'
COUNT_HISTORY_TABLE = 'CountHistoryTable'
HIGH_VOLUME_SKUS_TABLE = 'HighVolumeSkusTable'

# GRAPH_FILE_IDS key holding the workbook for each table
TABLE_FILES = {
    COMPONENTS_TABLE: 'components',
    CYCLE_COUNTS_TABLE: 'cycleCounts',
    WEEKLY_COUNTS_TABLE: 'weeklyCountsHstd',
    COUNT_HISTORY_TABLE: 'countHistory',
    HIGH_VOLUME_SKUS_TABLE: 'highVolumeSkus',
}

# ComponentsTable: id, barcode, description, mtd, ftp, hstd, 3pl, total, quarantine
COMPONENT_QUANTITY_COLUMNS = {
    Location.MTD: 3,
    Location.FTP: 4,
    Location.HSTD: 5,
    Location.TPL: 6,
}
COMPONENT_TOTAL_COLUMN = 7
COMPONENT_QUARANTINE_COLUMN = 8


def _to_int(value):
    if value in (None, ''):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _to_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().upper() == 'TRUE'


def _to_datetime(value):
    if not value:
        return None
    parsed = parse_datetime(str(value))
    if parsed is not None and timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _load_progress(value):
    try:
        progress = json.loads(value or '{}')
    except (TypeError, ValueError):
        logger.warning(f"Unreadable progress JSON in workbook row: {value!r}")
        return {}
    return {str(barcode): _to_int(quantity) for barcode, quantity in progress.items()}


class GraphWorkbookClient:
    """Thin wrapper over workbook table row endpoints"""

    def __init__(self, access_token, site_id=None, file_ids=None, base_url=None, timeout=None, session=None):
        self.access_token = access_token
        self.site_id = site_id if site_id is not None else settings.GRAPH_SITE_ID
        self.file_ids = file_ids if file_ids is not None else settings.GRAPH_FILE_IDS
        self.base_url = (base_url or settings.GRAPH_API_BASE).rstrip('/')
        self.timeout = timeout or settings.GRAPH_TIMEOUT
        self.session = session or requests.Session()

    def _rows_url(self, table):
        file_id = self.file_ids.get(TABLE_FILES[table])
        if not file_id:
            raise StoreError(f'{table} lookup', f"No workbook configured for {TABLE_FILES[table]}")
        return f"{self.base_url}/sites/{self.site_id}/drive/items/{file_id}/workbook/tables/{table}/rows"

    def _call(self, method, url, operation, payload=None):
        headers = {
            'Authorization': f'Bearer {self.access_token}',
            'Content-Type': 'application/json',
        }
        try:
            response = self.session.request(method, url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Graph API error during {operation}: {str(e)}")
            raise StoreError(operation, e) from e
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def list_rows(self, table):
        """Return (index, values) pairs for every row of a table"""
        data = self._call('GET', self._rows_url(table), f'list {table}')
        rows = []
        for position, row in enumerate(data.get('value', [])):
            index = row.get('index', position)
            values = row.get('values') or [[]]
            rows.append((index, list(values[0])))
        return rows

    def add_row(self, table, values):
        self._call('POST', f"{self._rows_url(table)}/add", f'add {table}', {'values': [values]})

    def update_row(self, table, index, values):
        self._call('PATCH', f"{self._rows_url(table)}/itemAt(index={index})", f'update {table}', {'values': [values]})

    def delete_row(self, table, index):
        self._call('DELETE', f"{self._rows_url(table)}/itemAt(index={index})", f'delete {table}')


class GraphInventoryStore(InventoryStore):

    def __init__(self, client):
        self.client = client

    def _find(self, barcode):
        for index, values in self.client.list_rows(COMPONENTS_TABLE):
            if len(values) > 1 and str(values[1]) == barcode:
                return index, values
        return None, None

    def get_component_quantity(self, barcode, location):
        _, values = self._find(barcode)
        if values is None:
            return 0
        return _to_int(values[COMPONENT_QUANTITY_COLUMNS[parse_location(location)]])

    def set_component_quantity(self, barcode, location, quantity):
        column = COMPONENT_QUANTITY_COLUMNS[parse_location(location)]
        index, values = self._find(barcode)
        if values is None:
            values = [str(uuid.uuid4()), barcode, '', 0, 0, 0, 0, 0, 0]
        else:
            values = values + [0] * (9 - len(values))
        values[column] = quantity
        values[COMPONENT_TOTAL_COLUMN] = (
            sum(_to_int(values[c]) for c in COMPONENT_QUANTITY_COLUMNS.values())
            + _to_int(values[COMPONENT_QUARANTINE_COLUMN])
        )
        if index is None:
            self.client.add_row(COMPONENTS_TABLE, values)
        else:
            self.client.update_row(COMPONENTS_TABLE, index, values)

    def list_barcodes(self):
        return {str(values[1]) for _, values in self.client.list_rows(COMPONENTS_TABLE) if len(values) > 1 and values[1]}


class GraphSessionStore(SessionStore):
    """Monthly sessions live in CycleCountsTable, weekly ones in WeeklyCountsHstdTable"""

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _table_for(session_id):
        return WEEKLY_COUNTS_TABLE if str(session_id).startswith('Weekly_') else CYCLE_COUNTS_TABLE

    @staticmethod
    def _row_to_record(table, values):
        session_id = str(values[0])
        try:
            parts = parse_session_id(session_id)
        except ValueError:
            parts = {'period_start': None, 'day': ''}
        if table == WEEKLY_COUNTS_TABLE:
            # id, date, last_updated, progress, day, completed, location
            return SessionRecord(
                session_id=session_id,
                kind=WEEKLY,
                location=values[6],
                day=values[4] or parts['day'],
                period_start=parts['period_start'],
                progress=_load_progress(values[3]),
                completed=_to_bool(values[5]),
                start_date=_to_datetime(values[1]),
                last_updated=_to_datetime(values[2]),
            )
        # id, start_date, last_updated, progress, completed, user_type, location
        return SessionRecord(
            session_id=session_id,
            kind=MONTHLY,
            location=values[6],
            period_start=parts['period_start'],
            progress=_load_progress(values[3]),
            completed=_to_bool(values[4]),
            user_type=values[5] or 'user',
            start_date=_to_datetime(values[1]),
            last_updated=_to_datetime(values[2]),
        )

    @staticmethod
    def _record_to_row(record):
        start = record.start_date.isoformat() if record.start_date else ''
        updated = record.last_updated.isoformat() if record.last_updated else ''
        progress = json.dumps(record.progress)
        completed = 'TRUE' if record.completed else 'FALSE'
        if record.kind == WEEKLY:
            return [record.session_id, start, updated, progress, record.day, completed, record.location]
        return [record.session_id, start, updated, progress, completed, record.user_type, record.location]

    def _find(self, session_id):
        table = self._table_for(session_id)
        for index, values in self.client.list_rows(table):
            if values and str(values[0]) == session_id:
                return table, index, values
        return table, None, None

    def get_session(self, session_id):
        table, _, values = self._find(session_id)
        if values is None:
            return None
        return self._row_to_record(table, values)

    def put_session(self, record):
        table, index, _ = self._find(record.session_id)
        row = self._record_to_row(record)
        if index is None:
            self.client.add_row(table, row)
        else:
            self.client.update_row(table, index, row)

    def delete_session(self, session_id):
        table, index, _ = self._find(session_id)
        if index is not None:
            self.client.delete_row(table, index)

    def list_sessions(self, location):
        records = []
        for table in (CYCLE_COUNTS_TABLE, WEEKLY_COUNTS_TABLE):
            for _, values in self.client.list_rows(table):
                if len(values) >= 7 and values[6] == str(location):
                    records.append(self._row_to_record(table, values))
        return records


class GraphHistoryStore(HistoryStore):

    def __init__(self, client):
        self.client = client

    @staticmethod
    def _row_to_entry(values):
        # id, sku, quantity, count_type, count_session, timestamp, user_type, source, location
        return HistoryEntry(
            id=str(values[0]),
            barcode=str(values[1]),
            quantity=_to_int(values[2]),
            count_type=values[3],
            session_id=values[4],
            timestamp=_to_datetime(values[5]),
            user_type=values[6] or 'user',
            source=values[7] or '',
            location=values[8],
        )

    def _matching(self, history_filter):
        matches = []
        for index, values in self.client.list_rows(COUNT_HISTORY_TABLE):
            if len(values) < 9:
                continue
            entry = self._row_to_entry(values)
            if history_filter.matches(entry):
                matches.append((index, entry))
        return matches

    def append_history(self, entry):
        timestamp = entry.timestamp or timezone.now()
        self.client.add_row(COUNT_HISTORY_TABLE, [
            entry.id or str(uuid.uuid4()),
            entry.barcode,
            entry.quantity,
            entry.count_type,
            entry.session_id,
            timestamp.isoformat(),
            entry.user_type,
            entry.source,
            entry.location,
        ])

    def query_history(self, history_filter):
        entries = [entry for _, entry in self._matching(history_filter)]
        oldest = datetime.min.replace(tzinfo=dt_timezone.utc)
        entries.sort(key=lambda entry: entry.timestamp or oldest, reverse=True)
        return entries

    def delete_history(self, history_filter):
        indices = sorted((index for index, _ in self._matching(history_filter)), reverse=True)
        # Highest index first so earlier indices stay valid
        for index in indices:
            self.client.delete_row(COUNT_HISTORY_TABLE, index)
        return len(indices)


class GraphSkuCatalog(SkuCatalog):

    def __init__(self, client):
        self.client = client

    def list_expected_skus(self, scope):
        if not scope.is_weekly:
            return {
                str(values[1]) for _, values in self.client.list_rows(COMPONENTS_TABLE)
                if len(values) > 1 and values[1]
            }
        # id, sku, day, location
        return {
            str(values[1]) for _, values in self.client.list_rows(HIGH_VOLUME_SKUS_TABLE)
            if len(values) >= 4 and values[2] == scope.day and values[3] == scope.location.value
        }
