"""
Queue endpoints.

Patients and display boards read the queue without logging in:
current token, live board and per-token status.  Doctors and
administrators drive it: call the next patient, complete or mark a
token missed, and (administrators only) reset completed tokens back to
waiting.  Calling next and completing the current patient are separate
requests.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..models import User
from ..permissions import IsAdminRole, IsQueueOperator
from ..serializers.common import parse_id
from ..serializers.token import DepartmentQuerySerializer
from ..services.departments import resolve_department
from ..services.queue import (
    advance_queue,
    complete_token,
    current_token,
    live_queue,
    miss_token,
    query_status,
    reset_queue,
    token_to_dict,
)


def _department_from(data, user=None):
    """Department named in ``data``; doctors default to their own."""
    s = DepartmentQuerySerializer(data=data)
    s.is_valid(raise_exception=True)
    value = s.validated_data.get('department')
    if not value and getattr(user, 'role', None) == User.ROLE_DOCTOR and hasattr(user, 'doctor_profile'):
        return user.doctor_profile.department
    return resolve_department(value)


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_current(request):
    """Return the token currently being served (0 when nobody is called)."""
    dept = _department_from(request.query_params)
    token = current_token(dept)
    return Response({
        'success': True,
        'department': dept.name,
        'currentToken': token.number if token else 0,
        'patient': token_to_dict(token) if token else None,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_live(request):
    """Aggregated board: serving token, the next few waiting and totals."""
    dept = _department_from(request.query_params)
    return Response({'success': True, **live_queue(dept, settings.OPD_LIVE_QUEUE_SIZE)})


@api_view(['GET'])
@permission_classes([AllowAny])
def queue_token_status(request, token_id: str):
    """Position, serving token and estimated wait for one token."""
    data = query_status(parse_id(token_id, 'tokenId'))
    if data is None:
        raise NotFound('Token not found.')
    return Response({'success': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsQueueOperator])
def queue_next(request):
    """Call the next waiting patient of a department.

    The body may name a ``department`` (id, code or name); doctors
    default to their own department.  An empty queue is a normal 200
    response with ``calledToken: null``.
    """
    dept = _department_from(request.data, request.user)
    result = advance_queue(dept, operator=request.user)
    if result.empty:
        return Response({
            'success': True,
            'calledToken': None,
            'nextToken': None,
            'message': 'No more patients in queue',
        })
    return Response({
        'success': True,
        'calledToken': result.called.number,
        'calledLabel': result.called.label,
        'nextToken': result.next_number,
        'patient': token_to_dict(result.called),
        'message': f'Token {result.called.number} called',
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsQueueOperator])
def token_complete(request, token_id: str):
    token = complete_token(parse_id(token_id, 'tokenId'), operator=request.user)
    return Response({'success': True, 'newStatus': token.status, 'token': token_to_dict(token)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsQueueOperator])
def token_miss(request, token_id: str):
    token = miss_token(parse_id(token_id, 'tokenId'), operator=request.user)
    return Response({'success': True, 'newStatus': token.status, 'token': token_to_dict(token)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def queue_reset(request):
    """Administrators move completed tokens back to waiting.

    Without ``department`` in the body every department is reset.
    """
    s = DepartmentQuerySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    value = s.validated_data.get('department')
    dept = resolve_department(value) if value else None
    count = reset_queue(dept, operator=request.user)
    return Response({
        'success': True,
        'message': 'Queue reset successfully',
        'patientsReset': count,
    })
