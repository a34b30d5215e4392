import logging
from datetime import datetime, time

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.cache_utils import invalidate_dashboard_cache
from backend.locations.models import parse_location
from .exceptions import CountError, PartialWriteError
from .progress import compute_progress
from .reconciliation import Actor, describe_conflicts
from .scopes import CountScope
from .serializers import (
    ClearHistorySerializer, CountScopeSerializer, HistoryEntrySerializer, HistoryQuerySerializer,
    RemoveSkuSerializer, ResetSessionSerializer, SessionRecordSerializer, StartSessionSerializer,
    SubmitCountSerializer,
)
from .stores import HistoryFilter
from .utils import get_engine, get_stores

logger = logging.getLogger(__name__)

NOT_YET_COUNTED = 'Not yet counted'


def count_error_response(error):
    if isinstance(error, PartialWriteError):
        invalidate_dashboard_cache()
    return Response(error.to_dict(), status=error.status_code)


def session_payload(record, snapshot, expected_skus=None):
    data = {
        'session': SessionRecordSerializer(record).data if record is not None else None,
        'progress': snapshot.as_dict(),
    }
    if expected_skus is not None:
        counted = set(record.progress) if record is not None else set()
        data['expected_skus'] = sorted(expected_skus)
        data['remaining_skus'] = sorted(set(expected_skus) - counted)
    return data


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_status(request):
    """Progress of the session for a location/kind/day/date"""
    serializer = CountScopeSerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    try:
        scope = serializer.build_scope()
        _, sessions, _, catalog = get_stores(request)
        record = sessions.get_session(scope.session_id)
        expected = catalog.list_expected_skus(scope)
    except CountError as e:
        return count_error_response(e)

    snapshot = compute_progress(record.progress if record else {}, expected)
    data = session_payload(record, snapshot, expected)
    data['session_id'] = scope.session_id
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_start(request):
    """Start or resume a session, merging any progress cached by the client"""
    serializer = StartSessionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        scope = serializer.build_scope()
        result = get_engine(request).start_session(
            scope,
            cached_progress=serializer.validated_data.get('progress'),
            actor=Actor.from_user(request.user),
        )
    except CountError as e:
        return count_error_response(e)

    data = session_payload(result.record, result.progress)
    data['created'] = result.created
    return Response(data, status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_reset(request):
    """Delete a session and the history and sibling progress of everything it counted"""
    serializer = ResetSessionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    if not serializer.validated_data.get('confirm'):
        return Response(
            {'error': "Resetting clears all progress for this count and cannot be undone. Send confirm=true to proceed."},
            status=status.HTTP_400_BAD_REQUEST
        )
    try:
        scope = serializer.build_scope()
        result = get_engine(request).reset_session(scope)
    except CountError as e:
        return count_error_response(e)

    if result.existed:
        invalidate_dashboard_cache()
    return Response({
        'session_id': result.session_id,
        'existed': result.existed,
        'barcodes_removed': result.barcodes_removed,
        'sibling_sessions_updated': result.sibling_sessions_updated,
        'history_deleted': result.history_deleted,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def session_remove_sku(request):
    """Take one SKU out of a session so it can be recounted"""
    serializer = RemoveSkuSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        scope = serializer.build_scope()
        result = get_engine(request).remove_sku(scope, serializer.validated_data['barcode'])
    except CountError as e:
        return count_error_response(e)

    invalidate_dashboard_cache()
    return Response(result)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_count(request):
    """
    Submit a scanned count.

    ``override`` decides cross-session conflicts: omitted or null returns
    409 with the conflicting sessions, true overrides, false declines.
    """
    serializer = SubmitCountSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    override = data.get('override')
    confirm = None if override is None else (lambda conflicts: override)

    try:
        scope = serializer.build_scope()
        result = get_engine(request).submit_count(
            data.get('barcode'),
            data.get('quantity'),
            scope,
            actor=Actor.from_user(request.user),
            confirm=confirm,
        )
    except CountError as e:
        return count_error_response(e)

    invalidate_dashboard_cache()
    return Response({
        'message': result.message,
        'barcode': result.barcode,
        'quantity': result.quantity,
        'session_id': result.session_id,
        'location': result.location,
        'source': result.source,
        'timestamp': result.timestamp,
        'progress': result.progress.as_dict(),
        'overridden': describe_conflicts(result.overridden),
    }, status=status.HTTP_201_CREATED)


def _day_bound(value, end=False):
    if value is None:
        return None
    return timezone.make_aware(datetime.combine(value, time.max if end else time.min))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def history_list(request):
    """Count history filtered by barcode, location, session and date range, newest first"""
    serializer = HistoryQuerySerializer(data=request.query_params)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    location = data.get('location')
    if location and parse_location(location) is None:
        return Response({'error': f"Invalid location: {location}"}, status=status.HTTP_400_BAD_REQUEST)

    history_filter = HistoryFilter(
        barcode=data.get('barcode'),
        location=location,
        session_id=data.get('session_id'),
        start=_day_bound(data.get('date_from')),
        end=_day_bound(data.get('date_to'), end=True),
    )
    try:
        _, _, history, _ = get_stores(request)
        entries = history.query_history(history_filter)
    except CountError as e:
        return count_error_response(e)
    return Response(HistoryEntrySerializer(entries, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def history_source(request):
    """Provenance of the latest count of a barcode, optionally at one location"""
    barcode = (request.query_params.get('barcode') or '').strip()
    if not barcode:
        return Response({'error': 'barcode is required'}, status=status.HTTP_400_BAD_REQUEST)
    location = request.query_params.get('location') or None

    try:
        _, _, history, _ = get_stores(request)
        entries = history.query_history(HistoryFilter(barcode=barcode, location=location))
    except CountError as e:
        return count_error_response(e)

    if not entries:
        return Response({'barcode': barcode, 'source': NOT_YET_COUNTED, 'timestamp': None})
    latest = entries[0]
    return Response({
        'barcode': barcode,
        'source': latest.source or 'No source information available',
        'timestamp': latest.timestamp,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def history_clear(request):
    """Delete a barcode's history for the current month at a location"""
    serializer = ClearHistorySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    barcode = serializer.validated_data['barcode'].strip()
    try:
        scope = CountScope.build(serializer.validated_data['location'], 'monthly')
        start, end = scope.window()
        _, _, history, _ = get_stores(request)
        deleted = history.delete_history(HistoryFilter(
            barcode=barcode, location=scope.location.value, start=start, end=end,
        ))
    except CountError as e:
        return count_error_response(e)

    logger.info(f"Cleared {deleted} history entries for {barcode} at {scope.location.value}")
    invalidate_dashboard_cache()
    return Response({
        'message': f"Scan history for {barcode} cleared successfully.",
        'deleted': deleted,
    })
