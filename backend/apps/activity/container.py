from __future__ import annotations

from .repositories import ActivityLogRepository
from .services import AuditLog


def build_audit_log() -> AuditLog:
    return AuditLog(entries=ActivityLogRepository())
