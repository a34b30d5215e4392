import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.locations.models import Location, parse_location
from . import dashboard

logger = logging.getLogger('backend.reports')


def _location_param(request, default=None):
    """Parsed ?location=, the default when absent; raises ValueError when unknown"""
    raw = request.query_params.get('location')
    if not raw:
        return default
    location = parse_location(raw)
    if location is None:
        raise ValueError(f"Invalid location: {raw}")
    return location.value


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def progress_over_time(request):
    """Cumulative scans per day"""
    try:
        location = _location_param(request)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(dashboard.progress_over_time(location))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def top_skus(request):
    """Top 10 most-scanned SKUs"""
    try:
        location = _location_param(request)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(dashboard.top_skus(location))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def scans_by_location(request):
    """SKU x location scan matrix for the top SKUs"""
    return Response(dashboard.scans_by_location())


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def weekly_trends(request):
    """Weekly count heatmap for the last 4 ISO weeks"""
    try:
        location = _location_param(request, default=Location.HSTD.value)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response(dashboard.weekly_trends(location))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_summary(request):
    """All dashboard series in one response"""
    try:
        location = _location_param(request)
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    response = Response({
        'location': location,
        'progress_over_time': dashboard.progress_over_time(location),
        'top_skus': dashboard.top_skus(location),
        'scans_by_location': dashboard.scans_by_location(),
        'weekly_trends': dashboard.weekly_trends(location or Location.HSTD.value),
    })
    # Use private cache since this is authenticated content
    response['Cache-Control'] = 'private, max-age=60'
    return response
