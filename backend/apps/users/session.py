from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .models import UserTier


@dataclass(frozen=True)
class Session:
    """Authenticated identity as seen by the cart core."""

    user_id: int
    tier: str = UserTier.NATURAL
    validated: bool = False

    @classmethod
    def from_user(cls, user: Any) -> "Session":
        return cls(
            user_id=int(user.id),
            tier=str(getattr(user, "tier", None) or UserTier.NATURAL),
            validated=bool(getattr(user, "validated", False)),
        )


def session_from_request(request) -> Session:
    return Session.from_user(request.user)
