"""
Audit service
Writes AuditLog rows inside the caller's transaction
"""
import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from retailops.models.audit import AuditLog

logger = logging.getLogger(__name__)


class AuditService:
    """Service class for audit log writes"""

    @staticmethod
    async def log(
        db: AsyncSession,
        actor_user_id: Optional[str],
        action: str,
        *,
        module: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        boutique_id: Optional[str] = None,
        before: Optional[dict[str, Any]] = None,
        after: Optional[dict[str, Any]] = None,
        reason: Optional[str] = None,
    ) -> AuditLog:
        """
        Add an audit row and flush it

        Used where the audit record is part of the operation's contract
        (e.g. global scope grants); errors propagate to the caller.
        """
        entry = AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            module=module,
            entity_type=entity_type,
            entity_id=entity_id,
            boutique_id=boutique_id,
            before_json=before,
            after_json=after,
            reason=reason,
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def log_best_effort(db: AsyncSession, actor_user_id: Optional[str], action: str, **kwargs) -> None:
        """
        Add an audit row whose failure must not abort the primary operation

        The row is written inside a savepoint; a failed write rolls back only
        the savepoint and the caller's transaction stays usable.
        Reference: https://docs.sqlalchemy.org/en/20/orm/session_transaction.html#using-savepoint
        """
        try:
            async with db.begin_nested():
                db.add(AuditLog(actor_user_id=actor_user_id, action=action, **_columns(kwargs)))
        except Exception as e:
            logger.warning(f"Audit write {action} failed (ignored): {e}")


def _columns(kwargs: dict[str, Any]) -> dict[str, Any]:
    """Map the keyword names used by log() onto AuditLog columns"""
    mapped = dict(kwargs)
    if "before" in mapped:
        mapped["before_json"] = mapped.pop("before")
    if "after" in mapped:
        mapped["after_json"] = mapped.pop("after")
    return mapped
