"""
Count scopes: which session a scan belongs to.

A scope is a location plus a session kind. Monthly scopes cover one
calendar month at a location; weekly scopes cover one day's high-volume
SKUs at HSTD.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.utils import timezone

from backend.locations.models import Location, WEEKDAYS, WEEKLY_COUNT_LOCATION, parse_location
from .exceptions import ValidationError

MONTHLY = 'monthly'
WEEKLY = 'weekly'
SESSION_KINDS = (MONTHLY, WEEKLY)

KIND_LABELS = {
    MONTHLY: 'Monthly Count',
    WEEKLY: 'Weekly Count',
}


def describe_session(kind, day='', period_start=None):
    """Human-readable session name used in conflict prompts"""
    if kind == WEEKLY:
        return f"{day} weekly count"
    if period_start:
        return f"{period_start:%B %Y} monthly cycle count"
    return "monthly cycle count"


def parse_session_id(session_id):
    """
    Split a composite session id back into its parts.

    ``Cycle_2026-10_MtD`` and ``Weekly_2026-10-19_HSTD_Monday`` are the two
    shapes; anything else raises ValueError.
    """
    parts = (session_id or '').split('_')
    if len(parts) == 3 and parts[0] == 'Cycle':
        year, month = parts[1].split('-')
        return {
            'kind': MONTHLY,
            'location': parts[2],
            'period_start': date(int(year), int(month), 1),
            'day': '',
        }
    if len(parts) == 4 and parts[0] == 'Weekly':
        return {
            'kind': WEEKLY,
            'location': parts[2],
            'period_start': date.fromisoformat(parts[1]),
            'day': parts[3],
        }
    raise ValueError(f"Unrecognised session id: {session_id}")


@dataclass(frozen=True)
class CountScope:
    location: Location
    kind: str = MONTHLY
    day: str = ''
    on_date: Optional[date] = None

    @classmethod
    def build(cls, location, kind=MONTHLY, day=None, on_date=None):
        """Validate raw request values and return a scope"""
        parsed = parse_location(location)
        if parsed is None:
            raise ValidationError(
                f"No location selected. Please select a location ({', '.join(Location.values)})."
            )

        kind = (kind or MONTHLY).strip().lower() if isinstance(kind, str) else MONTHLY
        if kind not in SESSION_KINDS:
            raise ValidationError(f"Invalid count type: {kind}. Expected 'monthly' or 'weekly'.")

        if on_date is None:
            on_date = timezone.localdate()
        elif isinstance(on_date, datetime):
            on_date = on_date.date()
        elif isinstance(on_date, str):
            try:
                on_date = date.fromisoformat(on_date)
            except ValueError:
                raise ValidationError(f"Invalid date: {on_date}. Expected YYYY-MM-DD.")

        if kind == WEEKLY:
            if parsed != WEEKLY_COUNT_LOCATION:
                raise ValidationError(f"Weekly counts are only available at {WEEKLY_COUNT_LOCATION.value}.")
            day = (day or WEEKDAYS[on_date.weekday()]).strip().capitalize()
            if day not in WEEKDAYS:
                raise ValidationError(f"Invalid day: {day}. Expected one of: {', '.join(WEEKDAYS)}.")
        else:
            day = ''

        return cls(location=parsed, kind=kind, day=day, on_date=on_date)

    @property
    def is_weekly(self):
        return self.kind == WEEKLY

    @property
    def period_start(self):
        if self.is_weekly:
            return self.on_date
        return self.on_date.replace(day=1)

    @property
    def session_id(self):
        if self.is_weekly:
            return f"Weekly_{self.on_date.isoformat()}_{self.location.value}_{self.day}"
        return f"Cycle_{self.on_date:%Y-%m}_{self.location.value}"

    @property
    def label(self):
        return KIND_LABELS[self.kind]

    @property
    def session_label(self):
        return describe_session(self.kind, self.day, self.period_start)

    @property
    def period_end(self):
        """Last day of the session's active period"""
        if self.is_weekly:
            return self.period_start
        next_month = (self.period_start.replace(day=28) + timedelta(days=4)).replace(day=1)
        return next_month - timedelta(days=1)

    def overlaps(self, other):
        """True when both scopes are at the same location and their periods share a day"""
        return (
            self.location == other.location
            and self.period_start <= other.period_end
            and other.period_start <= self.period_end
        )

    def window(self):
        """Aware (start, end) datetimes of the session's active period"""
        tz = timezone.get_current_timezone()
        start = timezone.make_aware(datetime.combine(self.period_start, time.min), tz)
        end = timezone.make_aware(datetime.combine(self.period_end, time.max), tz)
        return start, end
