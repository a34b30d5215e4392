"""
Store collaborators used by the reconciliation engine.

Each store is a small abstract interface with a database implementation
here and a Microsoft Graph workbook implementation in ``graph_store``.
Store implementations raise ``StoreError`` for any backend failure.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Set

from django.db import DatabaseError

from backend.catalog.models import Component, HighVolumeSku
from .exceptions import StoreError
from .models import CountHistory, CountSession
from .scopes import describe_session

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    session_id: str
    kind: str
    location: str
    day: str = ''
    period_start: Optional[date] = None
    progress: Dict[str, int] = field(default_factory=dict)
    completed: bool = False
    user_type: str = 'user'
    start_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    @classmethod
    def for_scope(cls, scope, now, user_type='user'):
        return cls(
            session_id=scope.session_id,
            kind=scope.kind,
            location=scope.location.value,
            day=scope.day,
            period_start=scope.period_start,
            progress={},
            completed=False,
            user_type=user_type,
            start_date=now,
            last_updated=now,
        )

    @property
    def label(self):
        return describe_session(self.kind, self.day, self.period_start)


@dataclass
class HistoryEntry:
    barcode: str
    quantity: int
    session_id: str
    location: str
    count_type: str
    user_type: str = 'user'
    source: str = ''
    timestamp: Optional[datetime] = None
    user_id: Optional[int] = None
    id: Optional[str] = None


@dataclass
class HistoryFilter:
    barcode: Optional[str] = None
    location: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    session_id: Optional[str] = None

    def matches(self, entry):
        if self.barcode is not None and entry.barcode != self.barcode:
            return False
        if self.location is not None and entry.location != self.location:
            return False
        if self.session_id is not None and entry.session_id != self.session_id:
            return False
        if self.start is not None and (entry.timestamp is None or entry.timestamp < self.start):
            return False
        if self.end is not None and (entry.timestamp is None or entry.timestamp > self.end):
            return False
        return True


class InventoryStore(ABC):

    @abstractmethod
    def get_component_quantity(self, barcode, location) -> int:
        """Stock on hand at a location; 0 when the component does not exist"""

    @abstractmethod
    def set_component_quantity(self, barcode, location, quantity) -> None:
        """Set stock at a location, inserting the component if needed, and persist the new total"""

    @abstractmethod
    def list_barcodes(self) -> Set[str]:
        """Every known component barcode"""


class SessionStore(ABC):

    @abstractmethod
    def get_session(self, session_id) -> Optional[SessionRecord]:
        pass

    @abstractmethod
    def put_session(self, record) -> None:
        """Insert or replace a session record"""

    @abstractmethod
    def delete_session(self, session_id) -> None:
        pass

    @abstractmethod
    def list_sessions(self, location) -> List[SessionRecord]:
        pass

    def get_session_progress(self, session_id) -> Optional[Dict[str, int]]:
        record = self.get_session(session_id)
        return dict(record.progress) if record is not None else None


class HistoryStore(ABC):

    @abstractmethod
    def append_history(self, entry) -> None:
        pass

    @abstractmethod
    def query_history(self, history_filter) -> List[HistoryEntry]:
        """Entries matching the filter, newest first"""

    @abstractmethod
    def delete_history(self, history_filter) -> int:
        """Delete matching entries and return how many were removed"""


class SkuCatalog(ABC):

    @abstractmethod
    def list_expected_skus(self, scope) -> Set[str]:
        """All components for monthly scopes; the day's high-volume SKUs for weekly scopes"""


@contextmanager
def store_errors(operation):
    """Translate database failures into StoreError"""
    try:
        yield
    except DatabaseError as e:
        logger.error(f"Database error during {operation}: {str(e)}")
        raise StoreError(operation, e) from e


class OrmInventoryStore(InventoryStore):

    def get_component_quantity(self, barcode, location):
        with store_errors('get_component_quantity'):
            component = Component.objects.filter(barcode=barcode).first()
        return component.quantity_at(location) if component else 0

    def set_component_quantity(self, barcode, location, quantity):
        with store_errors('set_component_quantity'):
            component, created = Component.objects.get_or_create(barcode=barcode, defaults={'description': ''})
            component.set_quantity_at(location, quantity)
            component.save()
        if created:
            logger.info(f"Inserted new component {barcode} from count at {location}")

    def list_barcodes(self):
        with store_errors('list_barcodes'):
            return set(Component.objects.values_list('barcode', flat=True))


def _session_to_record(session):
    return SessionRecord(
        session_id=session.session_id,
        kind=session.kind,
        location=session.location,
        day=session.day,
        period_start=session.period_start,
        progress=dict(session.progress or {}),
        completed=session.completed,
        user_type=session.user_type,
        start_date=session.start_date,
        last_updated=session.last_updated,
    )


class OrmSessionStore(SessionStore):

    def get_session(self, session_id):
        with store_errors('get_session'):
            session = CountSession.objects.filter(session_id=session_id).first()
        return _session_to_record(session) if session else None

    def put_session(self, record):
        with store_errors('put_session'):
            CountSession.objects.update_or_create(
                session_id=record.session_id,
                defaults={
                    'kind': record.kind,
                    'location': record.location,
                    'day': record.day or '',
                    'period_start': record.period_start,
                    'progress': dict(record.progress),
                    'completed': record.completed,
                    'user_type': record.user_type,
                    'start_date': record.start_date,
                    'last_updated': record.last_updated,
                }
            )

    def delete_session(self, session_id):
        with store_errors('delete_session'):
            CountSession.objects.filter(session_id=session_id).delete()

    def list_sessions(self, location):
        with store_errors('list_sessions'):
            sessions = list(CountSession.objects.filter(location=location))
        return [_session_to_record(session) for session in sessions]


class OrmHistoryStore(HistoryStore):

    def _filtered(self, history_filter):
        queryset = CountHistory.objects.all()
        if history_filter.barcode is not None:
            queryset = queryset.filter(barcode=history_filter.barcode)
        if history_filter.location is not None:
            queryset = queryset.filter(location=history_filter.location)
        if history_filter.session_id is not None:
            queryset = queryset.filter(session_id=history_filter.session_id)
        if history_filter.start is not None:
            queryset = queryset.filter(timestamp__gte=history_filter.start)
        if history_filter.end is not None:
            queryset = queryset.filter(timestamp__lte=history_filter.end)
        return queryset

    def append_history(self, entry):
        with store_errors('append_history'):
            CountHistory.objects.create(
                barcode=entry.barcode,
                quantity=entry.quantity,
                count_type=entry.count_type,
                session_id=entry.session_id,
                user_type=entry.user_type,
                user_id=entry.user_id,
                source=entry.source,
                timestamp=entry.timestamp,
                location=entry.location,
            )

    def query_history(self, history_filter):
        with store_errors('query_history'):
            rows = list(self._filtered(history_filter).order_by('-timestamp', '-id'))
        return [
            HistoryEntry(
                id=str(row.pk),
                barcode=row.barcode,
                quantity=row.quantity,
                session_id=row.session_id,
                location=row.location,
                count_type=row.count_type,
                user_type=row.user_type,
                source=row.source,
                timestamp=row.timestamp,
                user_id=row.user_id,
            )
            for row in rows
        ]

    def delete_history(self, history_filter):
        with store_errors('delete_history'):
            deleted, _ = self._filtered(history_filter).delete()
        return deleted


class OrmSkuCatalog(SkuCatalog):

    def list_expected_skus(self, scope):
        with store_errors('list_expected_skus'):
            if scope.is_weekly:
                return set(
                    HighVolumeSku.objects.filter(day=scope.day, location=scope.location.value)
                    .values_list('barcode', flat=True)
                )
            return set(Component.objects.values_list('barcode', flat=True))
