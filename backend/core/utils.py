"""Utility functions for actor roles and session event logging"""
import logging

from django.db import DatabaseError

from .models import UserSession

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_user_type(user):
    """Return the counting role ('admin' or 'user') for a possibly anonymous user"""
    if not user or not getattr(user, 'is_authenticated', False):
        return 'user'
    return getattr(user, 'user_type', 'user')


def record_user_session(request=None, event_type=None, location='', user=None):
    """
    Record a login, logout or location-selection event

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        event_type: One of UserSession.EVENT_CHOICES
        location: Location value selected by the user, blank for login/logout
        user: Optional user override (defaults to request.user if request provided)
    """
    audit_user = user
    if audit_user is None and request is not None and hasattr(request, 'user'):
        audit_user = request.user

    if not event_type:
        logger.warning("User session event skipped: missing event_type")
        return None

    try:
        return UserSession.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            event_type=event_type,
            location=location or '',
            user_type=get_user_type(audit_user),
            ip_address=get_client_ip(request) if request else None,
        )
    except DatabaseError as e:
        # Session events never fail the main operation
        logger.error(f"Failed to record user session event: {str(e)}")
        return None
