"""Domain error taxonomy shared by the services.

Services raise these; ``apps.api.exceptions.global_exception_handler`` renders
them with the standard error envelope. Clients classify failures by ``code``.
"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    status_code = 400
    default_message = "Request could not be completed"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"

    def __init__(self, entity: str = "Resource", **kwargs: Any):
        kwargs.setdefault("details", {"entity": entity})
        super().__init__(f"{entity} not found", **kwargs)
        self.entity = entity


class AuthorizationError(DomainError):
    """Session invalid or ownership mismatch. Never carries details."""

    code = "UNAUTHORIZED"
    status_code = 401
    default_message = "Session invalid, please re-authenticate"

    def __init__(self, message: Optional[str] = None, *, forbidden: bool = False):
        if forbidden:
            super().__init__(
                message or "You do not have permission to access this resource",
                code="FORBIDDEN",
                status_code=403,
            )
        else:
            super().__init__(message)
        self.forbidden = forbidden


class BusinessLogicError(DomainError):
    code = "BUSINESS_RULE_VIOLATION"
    status_code = 422
    default_message = "Request violates a business rule"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        reason: str = "business_rule",
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = {"reason": reason}
        if details:
            payload.update(details)
        super().__init__(message, details=payload)
        self.reason = reason


class SecurityTokenError(DomainError):
    """Anti-forgery token missing, tampered or stale; refresh and retry once."""

    code = "CSRF_TOKEN_INVALID"
    status_code = 403
    default_message = "Security token missing or expired"


INSUFFICIENT_STOCK = "insufficient_stock"
PRODUCT_INACTIVE = "product_inactive"
