import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from backend.core.utils import record_user_session
from .models import Location, QUANTITY_FIELDS, WEEKLY_COUNT_LOCATION, parse_location

logger = logging.getLogger('backend.locations')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def location_list(request):
    """List counting locations and the features available at each"""
    data = [
        {
            'code': location.value,
            'name': location.label,
            'quantity_field': QUANTITY_FIELDS[location],
            'weekly_count': location == WEEKLY_COUNT_LOCATION,
        }
        for location in Location
    ]
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def location_select(request):
    """Record the location the current user is working at"""
    location = parse_location(request.data.get('location'))
    if location is None:
        return Response(
            {'error': f"Please select a location ({', '.join(Location.values)})."},
            status=status.HTTP_400_BAD_REQUEST
        )

    record_user_session(request=request, event_type='location', location=location.value)
    logger.info(f"User {request.user.username} selected location {location.value}")

    return Response({
        'location': location.value,
        'weekly_count': location == WEEKLY_COUNT_LOCATION,
    })
