"""
Request correlation for logs and error envelopes.

Every request gets an ``X-Request-ID`` (taken from the client when
present) which is stored on the request, kept in a thread-local for
the logging filter and echoed back in the response.
"""
import logging
import uuid
from threading import local

_request_context = local()

REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'


def get_request_id() -> str | None:
    return getattr(_request_context, 'request_id', None)


class RequestIdMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = (request.META.get(REQUEST_ID_HEADER) or '').strip()[:64] or uuid.uuid4().hex
        request.request_id = request_id
        _request_context.request_id = request_id
        try:
            response = self.get_response(request)
        finally:
            _request_context.request_id = None
        response['X-Request-ID'] = request_id
        return response


class RequestIdFilter(logging.Filter):
    """Stamp ``record.request_id`` so formatters can reference it."""

    def filter(self, record):
        record.request_id = get_request_id() or '-'
        return True
