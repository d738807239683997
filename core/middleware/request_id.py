import re
import uuid
import logging
from threading import local

from django.utils.deprecation import MiddlewareMixin

_thread_locals = local()

# Accept a caller-supplied id (e.g. from the POS terminal or a proxy) if it looks sane
_INCOMING_ID_RE = re.compile(r'^[A-Za-z0-9\-_.]{8,64}$')


class RequestIDMiddleware(MiddlewareMixin):
    """
    Tags every request with an id that is echoed in the ``X-Request-ID``
    response header and injected into log records by ``RequestIDFilter``.
    """

    def process_request(self, request):
        incoming = request.META.get('HTTP_X_REQUEST_ID', '')
        request_id = incoming if _INCOMING_ID_RE.match(incoming) else str(uuid.uuid4())
        request.request_id = request_id
        _thread_locals.request_id = request_id
        return None

    def process_response(self, request, response):
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        _clear()
        return response

    def process_exception(self, request, exception):
        _clear()
        return None


def _clear():
    if hasattr(_thread_locals, 'request_id'):
        delattr(_thread_locals, 'request_id')


def get_request_id():
    return getattr(_thread_locals, 'request_id', None)


class RequestIDFilter(logging.Filter):
    """Adds ``record.request_id`` so formatters can reference it."""

    def filter(self, record):
        record.request_id = get_request_id() or 'no-request-id'
        return True
