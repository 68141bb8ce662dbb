"""
Authentication views.

Doctors and administrators log in with username and password and get
both a DRF token and a SimpleJWT access/refresh pair.  Patients never
log in.  These views are kept apart from ``opd.authentication`` so DRF
can import the authentication class without pulling in views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token as AuthToken
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from opd.serializers.auth import LoginSerializer
from opd.services.audit import log_action

from .models import User

logger = logging.getLogger(__name__)


def _doctor_summary(user: User) -> dict | None:
    doctor = getattr(user, 'doctor_profile', None) if user.role == User.ROLE_DOCTOR else None
    if doctor is None:
        return None
    return {
        'id': doctor.id,
        'name': doctor.name,
        'departmentId': doctor.department_id,
        'department': doctor.department.name,
        'status': doctor.status,
        'isQueuePaused': doctor.is_queue_paused,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Username/password login for doctors and administrators.

    Pending or rejected doctors may still log in; the ``doctor.status``
    field tells the client what they can do.
    """
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': request.META.get('REMOTE_ADDR')})
        logger.info('Failed login for %s', username)
        raise AuthenticationFailed('Invalid username or password.')

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': request.META.get('REMOTE_ADDR')})

    token_obj, _ = AuthToken.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)

    return Response({
        'success': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': {
            'id': user.id,
            'username': user.username,
            'name': user.get_full_name() or user.username,
            'role': user.role,
        },
        'doctor': _doctor_summary(user),
    })

# DRF ScopedRateThrottle reads throttle_scope from the generated view class
login_view.cls.throttle_scope = 'login'


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    resp = TokenRefreshView.as_view()(request._request)
    if resp.status_code != 200:
        # already rendered through api_exception_handler
        return Response(resp.data, status=resp.status_code)
    data = dict(resp.data)
    if 'access' in data:
        data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'success': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist one refresh token, or all of the user's when none is given."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            raise ValidationError({'refresh': [str(e)]})
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'success': True, 'blacklisted': count})
