from enum import StrEnum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.auth.models import PrincipalKind


class AuditAction(StrEnum):
    """Standard audit actions."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"

    # Domain-specific actions
    REGISTER = "REGISTER"
    AUTO_ENROLL = "AUTO_ENROLL"
    CANCEL_SUBSCRIPTION = "CANCEL_SUBSCRIPTION"
    REQUEST_EXTRA = "REQUEST_EXTRA"
    APPROVE_EXTRA = "APPROVE_EXTRA"
    REJECT_EXTRA = "REJECT_EXTRA"
    MARK_DELIVERED = "MARK_DELIVERED"
    MARK_MISSED = "MARK_MISSED"


class AuditService:
    """Service for creating audit logs."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        action: str | AuditAction,
        entity_type: str,
        entity_id: int,
        actor_id: int | None = None,
        actor_kind: PrincipalKind | None = None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        comment: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        audit_log = AuditLog(
            actor_id=actor_id,
            actor_kind=actor_kind.value if actor_kind else None,
            action=str(action),
            entity_type=entity_type,
            entity_id=entity_id,
            old_values=old_values,
            new_values=new_values,
            comment=comment,
        )

        self.db.add(audit_log)
        await self.db.flush()

        return audit_log

    async def list_for_entity(self, entity_type: str, entity_id: int) -> list[AuditLog]:
        """Audit trail of one entity, oldest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id)
        )
        return list(result.scalars().all())
