import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.paginator import Paginator

from backend.locations.models import parse_location
from .audit import AUDIT_PAGE_SIZE, build_audit_trail
from .models import UserSession
from .serializers import AuditEntrySerializer, UserCreateSerializer, UserSerializer, UserSessionSerializer
from .utils import record_user_session

logger = logging.getLogger(__name__)

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user_type'] = self.user.user_type
        record_user_session(request=self.context.get('request'), event_type='login', user=self.user)
        logger.info(f"User {self.user.username} logged in as {self.user.user_type}")
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['user_type'] = user.user_type
        token['groups'] = list(user.groups.values_list('name', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            # User referenced in token doesn't exist anymore
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout(request):
    """Record a logout event; tokens simply expire client-side"""
    record_user_session(request=request, event_type='logout')
    return Response({'message': 'Logged out'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with counting role"""
    user = request.user
    user_data = UserSerializer(user).data
    user_data['groups'] = list(user.groups.values_list('name', flat=True))
    user_data['is_admin'] = user.user_type == 'admin'
    latest = UserSession.objects.filter(user=user, event_type='location').first()
    user_data['location'] = latest.location if latest else None
    return Response(user_data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_session_list(request):
    """Login, logout and location events, optionally for one location"""
    queryset = UserSession.objects.select_related('user')
    location = request.query_params.get('location')
    if location:
        queryset = queryset.filter(location=location)
    serializer = UserSessionSerializer(queryset[:200], many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_trail(request):
    """Merged scan, session and weekly count activity at a location, 10 per page"""
    location = request.query_params.get('location')
    if location and parse_location(location) is None:
        return Response({'error': f"Invalid location: {location}"}, status=status.HTTP_400_BAD_REQUEST)

    entries = build_audit_trail(
        location=location,
        action=request.query_params.get('action'),
        sku=request.query_params.get('sku'),
        date_from=request.query_params.get('date_from'),
        date_to=request.query_params.get('date_to'),
    )

    try:
        page = int(request.query_params.get('page', 1))
    except ValueError:
        page = 1
    paginator = Paginator(entries, AUDIT_PAGE_SIZE)
    page_obj = paginator.get_page(page)

    return Response({
        'results': AuditEntrySerializer(page_obj.object_list, many=True).data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': AUDIT_PAGE_SIZE,
        'total_pages': paginator.num_pages,
    })
