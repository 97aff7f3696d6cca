from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction

from apps.common import get_logger
from .protocols import ActivityLogRepositoryProtocol

logger = get_logger(__name__).bind(component="activity", layer="service")


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


class AuditLog:
    """Fire-and-forget activity recorder.

    A failed write is logged and dropped; it never fails the caller's
    operation. The insert runs in its own savepoint so a database error does
    not poison an enclosing transaction.
    """

    def __init__(self, entries: ActivityLogRepositoryProtocol):
        self.entries = entries
        self.logger = logger.bind(service="AuditLog")

    def record(
        self,
        action: str,
        *,
        user_id: Optional[int] = None,
        description: str = "",
        **metadata: Any,
    ) -> bool:
        payload: Dict[str, Any] = _jsonable(metadata)
        try:
            with transaction.atomic():
                self.entries.create(
                    user_id=user_id,
                    action=action,
                    description=description[:255],
                    metadata=payload,
                )
        except Exception as exc:
            self.logger.warning(
                "Audit entry dropped",
                action=action,
                user_id=user_id,
                error=str(exc),
                exception=exc.__class__.__name__,
            )
            return False
        self.logger.debug("Audit entry recorded", action=action, user_id=user_id)
        return True
