"""
Audit trail: one newest-first feed built from count history, user session
events and weekly count sessions at a location.
"""
from datetime import datetime, time

from django.utils import timezone
from django.utils.dateparse import parse_date

from backend.counts.models import CountHistory, CountSession
from backend.counts.scopes import WEEKLY
from .models import UserSession

AUDIT_PAGE_SIZE = 10

SESSION_ACTIONS = {
    'login': ('Login', 'Logged in'),
    'logout': ('Logout', 'Logged out'),
    'location': ('Location Selected', 'Selected location'),
}


def _user_label(user, user_type):
    return user.username if user else user_type


def _day_bound(value, end=False):
    """Aware start (or end) of the day named by a YYYY-MM-DD string"""
    if not value:
        return None
    parsed = parse_date(str(value))
    if parsed is None:
        return None
    return timezone.make_aware(datetime.combine(parsed, time.max if end else time.min))


def build_audit_trail(location=None, action=None, sku=None, date_from=None, date_to=None):
    """
    Merged audit entries, newest first.

    ``action`` and ``sku`` are case-insensitive substring filters; the date
    bounds cover whole days.
    """
    start = _day_bound(date_from)
    end = _day_bound(date_to, end=True)
    entries = []

    history = CountHistory.objects.select_related('user')
    if location:
        history = history.filter(location=location)
    for row in history:
        entries.append({
            'timestamp': row.timestamp,
            'action': 'Scan',
            'user': _user_label(row.user, row.user_type),
            'user_type': row.user_type,
            'sku': row.barcode,
            'details': f"Quantity: {row.quantity} at {row.location}",
            'location': row.location,
        })

    events = UserSession.objects.select_related('user')
    if location:
        events = events.filter(location=location) | events.filter(location='', event_type__in=['login', 'logout'])
    for event in events:
        label, verb = SESSION_ACTIONS.get(event.event_type, (event.event_type, event.event_type))
        where = event.location or location or ''
        entries.append({
            'timestamp': event.created_at,
            'action': label,
            'user': _user_label(event.user, event.user_type),
            'user_type': event.user_type,
            'sku': '',
            'details': f"{verb} at {where}" if where else verb,
            'location': event.location,
        })

    weekly = CountSession.objects.filter(kind=WEEKLY)
    if location:
        weekly = weekly.filter(location=location)
    for session in weekly:
        entries.append({
            'timestamp': session.last_updated,
            'action': 'Weekly Count',
            'user': session.user_type,
            'user_type': session.user_type,
            'sku': '',
            'details': f"Completed count for {len(session.progress or {})} SKUs on {session.day}",
            'location': session.location,
        })

    if action:
        entries = [e for e in entries if action.lower() in e['action'].lower()]
    if sku:
        entries = [e for e in entries if sku.lower() in e['sku'].lower()]
    if start:
        entries = [e for e in entries if e['timestamp'] >= start]
    if end:
        entries = [e for e in entries if e['timestamp'] <= end]

    entries.sort(key=lambda e: e['timestamp'], reverse=True)
    return entries
