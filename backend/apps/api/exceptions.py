from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from django.core.exceptions import (
    PermissionDenied as DjangoPermissionDenied,
    ValidationError as DjangoValidationError,
)
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import (
    AuthenticationFailed,
    MethodNotAllowed,
    NotAuthenticated,
    NotFound,
    ParseError,
    PermissionDenied,
    Throttled,
    ValidationError,
)
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from apps.api.utils import domain_error_response, error_response
from apps.common import get_logger
from apps.common.errors import AuthorizationError, DomainError

logger = get_logger(__name__).bind(component="api", layer="exception")


def global_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    Central exception handler for DRF views returning structured JSON errors.
    Domain errors keep their own code/status; DRF exceptions are normalized.
    """
    bound_logger = _bind_logger(context)

    if isinstance(exc, DomainError):
        log = bound_logger.warning if isinstance(exc, AuthorizationError) else bound_logger.info
        log("Handled domain error", code=exc.code, status=exc.status_code)
        return domain_error_response(exc)

    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(
            exc.message_dict if hasattr(exc, "message_dict") else list(exc.messages)
        )

    response = drf_exception_handler(exc, context)
    if response is not None:
        code, message, details = _normalize(exc, response.data, response.status_code)
        if response.status_code >= 500:
            bound_logger.error("Converted server error", code=code, status=response.status_code)
        else:
            bound_logger.info("Converted API exception", code=code, status=response.status_code)
        return error_response(code, message, details, http_status=response.status_code)

    bound_logger.exception("Unhandled exception bubbled to global handler")
    return error_response(
        "SERVER_ERROR",
        "Something went wrong",
        http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def _bind_logger(context: Dict[str, Any]):
    log = logger
    view = context.get("view")
    request = context.get("request")
    if view:
        log = log.bind(view=type(view).__name__)
    if request is not None:
        log = log.bind(
            method=getattr(request, "method", None),
            path=getattr(request, "path", None),
        )
    return log


def _normalize(
    exc: Exception, payload: Any, status_code: int
) -> Tuple[str, str, Optional[Any]]:
    if isinstance(exc, (ValidationError, ParseError)):
        return "VALIDATION_ERROR", _message(payload, "Validation failed"), payload
    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        return "UNAUTHORIZED", _message(payload, "Authentication required"), None
    if isinstance(exc, (PermissionDenied, DjangoPermissionDenied)):
        return (
            "FORBIDDEN",
            _message(payload, "You do not have permission to perform this action"),
            None,
        )
    if isinstance(exc, (NotFound, Http404)):
        return "NOT_FOUND", _message(payload, "Resource not found"), None
    if isinstance(exc, MethodNotAllowed):
        return "METHOD_NOT_ALLOWED", _message(payload, "Method not allowed"), None
    if isinstance(exc, Throttled):
        wait = getattr(exc, "wait", None)
        return (
            "TOO_MANY_REQUESTS",
            _message(payload, "Request was throttled"),
            {"retryAfter": wait} if wait is not None else None,
        )
    if status_code >= 500:
        return "SERVER_ERROR", "Something went wrong", None
    return "UNKNOWN_ERROR", _message(payload, "Request failed"), None


def _message(payload: Any, fallback: str) -> str:
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
        return payload["detail"]
    if isinstance(payload, list) and payload and isinstance(payload[0], str):
        return payload[0]
    return fallback


__all__ = ["global_exception_handler"]
