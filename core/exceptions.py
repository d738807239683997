"""
Domain errors raised by the POS services and the DRF handler that renders them.

Services raise these instead of returning status codes; views stay thin and the
handler below turns every ``PosError`` into ``{"error": {"code", "message"}}``.
"""
from __future__ import annotations

import functools
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class PosError(Exception):
    code = "pos_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Point of sale error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(PosError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidTransitionError(PosError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Status transition not allowed"


class ValidationError(PosError):
    code = "validation_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(PosError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation conflicts with current state"


class PersistenceError(PosError):
    code = "persistence_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage failure"


def wrap_database_errors(func):
    """Re-raise ``DatabaseError`` escaping a service as ``PersistenceError``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as exc:
            logger.error(f"Integrity error in {func.__name__}: {exc}")
            raise ConflictError("This operation violates database constraints") from exc
        except DatabaseError as exc:
            logger.exception(f"Database error in {func.__name__}")
            raise PersistenceError(f"Storage failure during {func.__name__.replace('_', ' ')}") from exc

    return wrapper


def _error_response(code: str, message: str, http_status: int) -> Response:
    return Response({"error": {"code": code, "message": message}}, status=http_status)


def pos_exception_handler(exc, context):
    """
    DRF exception handler for the POS API.

    DRF's own exceptions (authentication, permission, serializer validation)
    keep DRF's body; domain and Django model errors get the structured body.
    """
    if isinstance(exc, PosError):
        view = context.get("view")
        log = logger.error if exc.status_code >= 500 else logger.info
        log(f"{exc.__class__.__name__} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}")
        return _error_response(exc.code, exc.message, exc.status_code)

    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, DjangoValidationError):
        logger.info(f"Model validation error: {exc}")
        return _error_response(
            ValidationError.code,
            "; ".join(exc.messages),
            status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, IntegrityError):
        logger.error(f"Integrity error: {exc}")
        return _error_response(
            ConflictError.code,
            "This operation violates database constraints",
            status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, DatabaseError):
        logger.exception("Unhandled database error")
        return _error_response(
            PersistenceError.code,
            str(exc) if settings.DEBUG else PersistenceError.default_message,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    # Anything else propagates to Django's 500 handling
    return None
