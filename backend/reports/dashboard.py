"""
Dashboard aggregates over count history and weekly sessions.

Results are plain chart-ready dicts cached per arguments; any accepted
count, reset or history clear invalidates them.
"""
from django.db.models import Count
from django.db.models.functions import TruncDate
from django.utils import timezone

from backend.core.cache_utils import cached_query
from backend.counts.models import CountHistory, CountSession
from backend.counts.scopes import WEEKLY
from backend.locations.models import Location

TOP_SKU_LIMIT = 10
TREND_WEEKS = 4
DAY_LABELS = ['Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun']


def _history(location=None):
    queryset = CountHistory.objects.all()
    if location:
        queryset = queryset.filter(location=location)
    return queryset


@cached_query(key_prefix="progress_over_time")
def progress_over_time(location=None):
    """Cumulative items scanned per day"""
    daily = (
        _history(location)
        .annotate(date=TruncDate('timestamp', tzinfo=timezone.get_current_timezone()))
        .values('date')
        .annotate(count=Count('id'))
        .order_by('date')
    )
    points = []
    cumulative = 0
    for row in daily:
        cumulative += row['count']
        points.append({'date': row['date'].isoformat(), 'count': row['count'], 'cumulative': cumulative})
    return {'label': 'Total Items Scanned', 'points': points}


@cached_query(key_prefix="top_skus")
def top_skus(location=None, limit=TOP_SKU_LIMIT):
    """Most-scanned SKUs"""
    rows = (
        _history(location)
        .values('barcode')
        .annotate(scans=Count('id'))
        .order_by('-scans', 'barcode')[:limit]
    )
    return {
        'label': 'Times Scanned',
        'skus': [{'barcode': row['barcode'], 'scans': row['scans']} for row in rows],
    }


@cached_query(key_prefix="scans_by_location")
def scans_by_location(limit=TOP_SKU_LIMIT):
    """Scan counts per SKU and location for the most-scanned SKUs overall"""
    counts = {}
    for row in CountHistory.objects.values('barcode', 'location').annotate(scans=Count('id')):
        counts.setdefault(row['barcode'], {})[row['location']] = row['scans']

    ranked = sorted(counts.items(), key=lambda item: (-sum(item[1].values()), item[0]))[:limit]
    return {
        'locations': list(Location.values),
        'rows': [
            {
                'barcode': barcode,
                'counts': {loc: per_location.get(loc, 0) for loc in Location.values},
                'total': sum(per_location.values()),
            }
            for barcode, per_location in ranked
        ],
    }


@cached_query(key_prefix="weekly_trends")
def weekly_trends(location=Location.HSTD.value, weeks=TREND_WEEKS):
    """SKUs counted per weekday for the most recent ISO weeks with weekly counts"""
    grid = {}
    sessions = CountSession.objects.filter(kind=WEEKLY, location=location).values('progress', 'last_updated')
    for session in sessions:
        stamp = timezone.localtime(session['last_updated']).isocalendar()
        week_key = (stamp[0], stamp[1])
        grid.setdefault(week_key, [0] * 7)[stamp[2] - 1] = len(session['progress'] or {})

    recent = sorted(grid)[-weeks:]
    return {
        'days': DAY_LABELS,
        'weeks': [f"{year}-W{week:02d}" for year, week in recent],
        'matrix': [grid[key] for key in recent],
    }
