"""
Count reconciliation engine.

A submitted count is accepted only when it matches the stock on hand at
the scope's location and, unless the caller confirms an override, agrees
with every other open session at that location whose period overlaps the
scope's and that already counted the barcode. Accepted counts are written
in three independent store calls: component stock, session progress, then
history. No step is rolled back when a later one fails.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from django.utils import timezone

from backend.core.utils import get_user_type
from backend.locations.models import Location
from .exceptions import ConflictError, MismatchError, PartialWriteError, StoreError, ValidationError
from .progress import ProgressSnapshot, compute_progress
from .scopes import CountScope
from .stores import HistoryEntry, HistoryFilter, SessionRecord

logger = logging.getLogger(__name__)

STEP_COMPONENT = 'component'
STEP_SESSION = 'session_progress'
STEP_HISTORY = 'history'


@dataclass(frozen=True)
class Actor:
    """Who submitted a count. Only the role and user id are persisted"""
    user_type: str = 'user'
    user_id: Optional[int] = None

    @classmethod
    def from_user(cls, user):
        if user is not None and getattr(user, 'is_authenticated', False):
            return cls(user_type=get_user_type(user), user_id=user.pk)
        return cls()


@dataclass(frozen=True)
class Conflict:
    session_id: str
    session_label: str
    quantity: int


@dataclass
class CountResult:
    barcode: str
    quantity: int
    session_id: str
    location: str
    source: str
    timestamp: datetime
    progress: ProgressSnapshot
    overridden: List[Conflict] = field(default_factory=list)

    @property
    def message(self):
        return f"Counted {self.barcode} successfully at {self.location}!"


@dataclass
class SessionResult:
    record: SessionRecord
    progress: ProgressSnapshot
    created: bool


@dataclass
class ResetResult:
    session_id: str
    existed: bool
    barcodes_removed: int = 0
    sibling_sessions_updated: int = 0
    history_deleted: int = 0


def format_source(timestamp, scope):
    """Provenance string stored on each history entry"""
    local = timezone.localtime(timestamp)
    return (
        f"Counted on {local:%m/%d/%Y} at {local:%I:%M:%S %p} "
        f"using {scope.label} at {scope.location.value}"
    )


def scope_for_record(record):
    """Rebuild the scope a stored session belongs to"""
    return CountScope(
        location=Location(record.location),
        kind=record.kind,
        day=record.day or '',
        on_date=record.period_start,
    )


def clean_barcode(barcode):
    if barcode is None or not str(barcode).strip():
        raise ValidationError("Please enter a barcode.")
    return str(barcode).strip()


def clean_quantity(quantity):
    if quantity is None or (isinstance(quantity, str) and not quantity.strip()):
        raise ValidationError("Please enter a quantity.")
    if isinstance(quantity, bool):
        raise ValidationError(f"Invalid quantity: {quantity}. Enter a whole number of 0 or more.")
    try:
        value = int(str(quantity).strip()) if not isinstance(quantity, int) else quantity
    except ValueError:
        raise ValidationError(f"Invalid quantity: {quantity}. Enter a whole number of 0 or more.")
    if value < 0:
        raise ValidationError(f"Invalid quantity: {quantity}. Enter a whole number of 0 or more.")
    return value


class ReconciliationEngine:
    """Validates counts against stock and keeps sessions at a location in agreement"""

    def __init__(self, inventory, sessions, history, catalog, clock=None):
        self.inventory = inventory
        self.sessions = sessions
        self.history = history
        self.catalog = catalog
        self.clock = clock or timezone.now

    def _run_step(self, operation, step, applied, func):
        try:
            result = func()
        except StoreError as e:
            if applied:
                logger.error(
                    f"Partial write during {operation}: applied [{', '.join(applied)}], "
                    f"failed at {step}: {e.message}"
                )
                raise PartialWriteError(operation, e.cause or e, applied_steps=applied) from e
            raise
        applied.append(step)
        return result

    def _overlapping_sessions(self, scope):
        """Other sessions at the scope's location whose period shares a day with the scope's"""
        for record in self.sessions.list_sessions(scope.location.value):
            if record.session_id == scope.session_id or record.period_start is None:
                continue
            if scope.overlaps(scope_for_record(record)):
                yield record

    def find_conflicts(self, barcode, quantity, scope):
        """Other open sessions in the same period holding a different quantity for the barcode"""
        conflicts = []
        for record in self._overlapping_sessions(scope):
            if record.completed:
                continue
            if barcode in record.progress and record.progress[barcode] != quantity:
                conflicts.append(Conflict(
                    session_id=record.session_id,
                    session_label=record.label,
                    quantity=record.progress[barcode],
                ))
        return conflicts

    def submit_count(self, barcode, entered_quantity, scope, actor=None, confirm=None):
        """
        Accept a scanned count for a barcode.

        Args:
            barcode: Scanned barcode
            entered_quantity: Counted quantity, int or numeric string
            scope: CountScope the scan belongs to
            actor: Actor recorded on the history entry
            confirm: Optional callable given the conflict list; returns True to override

        Raises:
            ValidationError, MismatchError, ConflictError, StoreError, PartialWriteError
        """
        barcode = clean_barcode(barcode)
        quantity = clean_quantity(entered_quantity)
        actor = actor or Actor()
        location = scope.location

        if scope.is_weekly:
            expected_skus = self.catalog.list_expected_skus(scope)
            if barcode not in expected_skus:
                raise ValidationError(
                    f"SKU {barcode} is not on the {scope.day} high-volume list at {location.value}."
                )

        expected = self.inventory.get_component_quantity(barcode, location)
        if quantity != expected:
            logger.info(f"Count rejected for {barcode} at {location.value}: expected {expected}, entered {quantity}")
            raise MismatchError(expected, quantity)

        conflicts = self.find_conflicts(barcode, quantity, scope)
        if conflicts:
            if confirm is None:
                logger.info(f"Count for {barcode} at {location.value} conflicts with {len(conflicts)} session(s)")
                raise ConflictError(conflicts, quantity, location.value)
            if not confirm(conflicts):
                logger.info(f"Override declined for {barcode} at {location.value}")
                raise ConflictError(conflicts, quantity, location.value, declined=True)
            logger.warning(
                f"Override confirmed for {barcode} at {location.value}: "
                f"{', '.join(c.session_id for c in conflicts)}"
            )

        now = self.clock()
        applied = []
        operation = 'submit_count'

        self._run_step(
            operation, STEP_COMPONENT, applied,
            lambda: self.inventory.set_component_quantity(barcode, location, quantity),
        )
        snapshot = self._run_step(
            operation, STEP_SESSION, applied,
            lambda: self._record_progress(scope, barcode, quantity, now, actor),
        )
        source = format_source(now, scope)
        self._run_step(
            operation, STEP_HISTORY, applied,
            lambda: self.history.append_history(HistoryEntry(
                barcode=barcode,
                quantity=quantity,
                session_id=scope.session_id,
                location=location.value,
                count_type=scope.kind,
                user_type=actor.user_type,
                source=source,
                timestamp=now,
                user_id=actor.user_id,
            )),
        )

        logger.info(f"Counted {barcode} x{quantity} at {location.value} in {scope.session_id}")
        return CountResult(
            barcode=barcode,
            quantity=quantity,
            session_id=scope.session_id,
            location=location.value,
            source=source,
            timestamp=now,
            progress=snapshot,
            overridden=conflicts,
        )

    def _record_progress(self, scope, barcode, quantity, now, actor):
        record = self.sessions.get_session(scope.session_id)
        if record is None:
            record = SessionRecord.for_scope(scope, now, actor.user_type)
        record.progress[barcode] = quantity
        # Monthly expected set is read after the component insert so new barcodes count
        snapshot = compute_progress(record.progress, self.catalog.list_expected_skus(scope))
        record.completed = snapshot.completed
        record.last_updated = now
        self.sessions.put_session(record)
        return snapshot

    def start_session(self, scope, cached_progress=None, actor=None):
        """
        Create the scope's session, or resume it merging in cached progress.

        Cached entries win over stored ones for the same barcode. The original
        start date is kept. Calling it again with the same input changes nothing.
        """
        actor = actor or Actor()
        cached = {}
        for barcode, quantity in (cached_progress or {}).items():
            cached[clean_barcode(barcode)] = clean_quantity(quantity)

        now = self.clock()
        record = self.sessions.get_session(scope.session_id)
        created = record is None
        if created:
            record = SessionRecord.for_scope(scope, now, actor.user_type)

        merged = dict(record.progress)
        merged.update(cached)
        snapshot = compute_progress(merged, self.catalog.list_expected_skus(scope))

        if created or merged != record.progress or snapshot.completed != record.completed:
            record.progress = merged
            record.completed = snapshot.completed
            record.last_updated = now
            self.sessions.put_session(record)
            logger.info(
                f"{'Started' if created else 'Resumed'} session {scope.session_id} "
                f"({snapshot.counted}/{snapshot.expected})"
            )
        return SessionResult(record=record, progress=snapshot, created=created)

    def get_progress(self, scope):
        """Progress snapshot for the scope's session; an absent session counts as empty"""
        progress = self.sessions.get_session_progress(scope.session_id) or {}
        return compute_progress(progress, self.catalog.list_expected_skus(scope))

    def _remove_from_siblings(self, barcodes, scope):
        """Drop barcodes from overlapping sessions at the location; returns sessions changed"""
        updated = 0
        now = self.clock()
        for record in list(self._overlapping_sessions(scope)):
            remaining = {b: q for b, q in record.progress.items() if b not in barcodes}
            if len(remaining) == len(record.progress):
                continue
            record.progress = remaining
            expected = self.catalog.list_expected_skus(scope_for_record(record))
            record.completed = compute_progress(remaining, expected).completed
            record.last_updated = now
            self.sessions.put_session(record)
            updated += 1
        return updated

    def _delete_window_history(self, barcodes, scope):
        start, end = scope.window()
        deleted = 0
        for barcode in barcodes:
            deleted += self.history.delete_history(HistoryFilter(
                barcode=barcode,
                location=scope.location.value,
                start=start,
                end=end,
            ))
        return deleted

    def reset_session(self, scope):
        """
        Discard a session and every trace of the barcodes it counted at its location.

        Stock quantities are left as they are.
        """
        record = self.sessions.get_session(scope.session_id)
        if record is None:
            logger.info(f"Reset requested for absent session {scope.session_id}")
            return ResetResult(session_id=scope.session_id, existed=False)

        barcodes = set(record.progress)
        applied = []
        operation = 'reset_session'
        siblings = self._run_step(
            operation, 'sibling_sessions', applied,
            lambda: self._remove_from_siblings(barcodes, scope),
        )
        deleted = self._run_step(
            operation, STEP_HISTORY, applied,
            lambda: self._delete_window_history(barcodes, scope),
        )
        self._run_step(
            operation, 'session', applied,
            lambda: self.sessions.delete_session(scope.session_id),
        )

        logger.warning(
            f"Reset session {scope.session_id}: {len(barcodes)} SKUs, "
            f"{siblings} sibling sessions, {deleted} history entries removed"
        )
        return ResetResult(
            session_id=scope.session_id,
            existed=True,
            barcodes_removed=len(barcodes),
            sibling_sessions_updated=siblings,
            history_deleted=deleted,
        )

    def remove_sku(self, scope, barcode):
        """Take one barcode out of a session, its sibling sessions and the window's history"""
        barcode = clean_barcode(barcode)
        record = self.sessions.get_session(scope.session_id)
        if record is None or barcode not in record.progress:
            raise ValidationError(f"SKU {barcode} has not been counted in the {scope.session_label}.")

        applied = []
        operation = 'remove_sku'

        def update_session():
            del record.progress[barcode]
            snapshot = compute_progress(record.progress, self.catalog.list_expected_skus(scope))
            record.completed = snapshot.completed
            record.last_updated = self.clock()
            self.sessions.put_session(record)
            return snapshot

        snapshot = self._run_step(operation, STEP_SESSION, applied, update_session)
        siblings = self._run_step(
            operation, 'sibling_sessions', applied,
            lambda: self._remove_from_siblings({barcode}, scope),
        )
        deleted = self._run_step(
            operation, STEP_HISTORY, applied,
            lambda: self._delete_window_history([barcode], scope),
        )

        logger.info(f"Removed {barcode} from {scope.session_id} ({siblings} sibling sessions, {deleted} history entries)")
        return {
            'barcode': barcode,
            'session_id': scope.session_id,
            'sibling_sessions_updated': siblings,
            'history_deleted': deleted,
            'progress': snapshot.as_dict(),
        }


def describe_conflicts(conflicts) -> List[Dict]:
    return [
        {'session_id': c.session_id, 'session': c.session_label, 'quantity': c.quantity}
        for c in conflicts
    ]
