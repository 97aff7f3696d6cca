from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ActivityLog


class ActivityLogRepositoryProtocol(Protocol):
    def create(self, **data) -> "ActivityLog": ...
