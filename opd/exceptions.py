"""
Error types and the unified DRF exception handler.

Every failure leaving the API is rendered as
``{"success": false, "message": ..., "code": ..., "requestId": ...}``.
Validation errors add ``errors`` with the field-level detail; with
``DEBUG`` on, unexpected errors also carry the traceback in ``stack``.
"""
from __future__ import annotations

import logging
import traceback

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class QueueBusy(APIException):
    """Another token in the department is already being served."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'A patient is already being served in this department.'
    default_code = 'queue_busy'


class QueueGateClosed(APIException):
    """No approved, unpaused doctor may advance this department's queue."""
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'The queue for this department is not accepting calls.'
    default_code = 'queue_closed'


class DepartmentNotConfigured(APIException):
    """The configured default department has not been created yet."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The default department is not set up. Run "manage.py seed_opd".'
    default_code = 'department_not_configured'


class InvalidTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


_FALLBACK_CODES = {
    status.HTTP_403_FORBIDDEN: 'permission_denied',
    status.HTTP_404_NOT_FOUND: 'not_found',
}


def _message_from(data) -> str:
    if isinstance(data, dict):
        detail = data.get('detail')
        if detail is not None:
            return str(detail)
        return 'Invalid request.'
    if isinstance(data, list) and data:
        return str(data[0])
    return str(data)


def api_exception_handler(exc, context):
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request is not None else None

    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('Unhandled error in %s', view.__class__.__name__ if view else 'view', exc_info=exc)
        payload = {
            'success': False,
            'code': 'server_error',
            'message': str(exc) if settings.DEBUG else 'Something went wrong. Please try again later.',
            'requestId': request_id,
        }
        if settings.DEBUG:
            payload['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return Response(payload, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    # normalize response
    payload = {
        'success': False,
        'code': getattr(exc, 'default_code', None) or _FALLBACK_CODES.get(resp.status_code, 'api_error'),
        'message': _message_from(resp.data),
        'requestId': request_id,
    }
    if isinstance(exc, ValidationError):
        payload['code'] = 'validation_error'
        payload['errors'] = resp.data
    if resp.status_code >= 500:
        logger.error('API error %s: %s', resp.status_code, payload['message'])
    else:
        logger.info('API error %s (%s): %s', resp.status_code, payload['code'], payload['message'])
    response = Response(payload, status=resp.status_code)
    for header in ('WWW-Authenticate', 'Retry-After'):
        if header in resp:
            response[header] = resp[header]
    return response
