"""Tagged outcomes of cart calls, classified by error code."""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class Ok:
    value: Any = None


@dataclass(frozen=True)
class NotFound:
    message: str = "Not found"


@dataclass(frozen=True)
class Unauthorized:
    message: str = "Session invalid"


@dataclass(frozen=True)
class Forbidden:
    message: str = "Forbidden"


@dataclass(frozen=True)
class BusinessError:
    reason: str
    message: str = ""
    details: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class TokenRejected:
    message: str = "Security token rejected"


@dataclass(frozen=True)
class Unavailable:
    message: str = "Service unavailable"


@dataclass(frozen=True)
class Queued:
    """A newer desired quantity superseded this call; it was not sent."""


Failure = Union[NotFound, Unauthorized, Forbidden, BusinessError, TokenRejected, Unavailable]
Result = Union[Ok, Queued, Failure]


def from_error(code: str, message: str = "", details: Optional[Dict[str, Any]] = None) -> Failure:
    """Map an error envelope ``code`` to its tagged result."""
    code = (code or "").upper()
    if code == "NOT_FOUND":
        return NotFound(message or NotFound.message)
    if code == "UNAUTHORIZED":
        return Unauthorized(message or Unauthorized.message)
    if code == "FORBIDDEN":
        return Forbidden(message or Forbidden.message)
    if code == "CSRF_TOKEN_INVALID":
        return TokenRejected(message or TokenRejected.message)
    if code in ("BUSINESS_RULE_VIOLATION", "VALIDATION_ERROR"):
        reason = (details or {}).get("reason") or code.lower()
        return BusinessError(reason=reason, message=message, details=details)
    return Unavailable(message or Unavailable.message)


def from_envelope(payload: Dict[str, Any]) -> Failure:
    error = (payload or {}).get("error") or {}
    return from_error(error.get("code", ""), error.get("message", ""), error.get("details"))
