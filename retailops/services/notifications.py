"""
Event notifier
Hands reminder and workflow facts (task due soon, leave escalated) to an
external webhook. Delivery is best-effort: failures are logged and never
roll back the caller's state changes.
Reference: https://www.python-httpx.org/async/
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from retailops.core.config import settings

logger = logging.getLogger(__name__)

# Session.info key holding the request's outbox
OUTBOX_KEY = "notification_outbox"

# Deliveries in flight; referenced so they are not collected before finishing
_deliveries: set[asyncio.Task] = set()


@lru_cache()
def get_notifier() -> "Notifier":
    """
    Get a singleton Notifier instance.

    When NOTIFY_WEBHOOK_URL is unset, events are only logged.

    Reference: https://docs.python.org/3/library/functools.html#functools.lru_cache
    """
    if not settings.NOTIFY_WEBHOOK_URL:
        logger.warning("Notification webhook not configured - events will only be logged")
    return Notifier(settings.NOTIFY_WEBHOOK_URL, settings.NOTIFY_TIMEOUT_SECONDS)


class Notifier:
    """Posts event facts as JSON to a webhook"""

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 5.0):
        self.webhook_url = webhook_url.rstrip("/") if webhook_url else None
        self.timeout = timeout

    async def emit(
        self,
        event: str,
        *,
        boutique_id: Optional[str] = None,
        affected_user_ids: Optional[list[str]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Deliver one event

        Args:
            event: Event name (TASK_DUE_SOON, LEAVE_ESCALATED, ...)
            boutique_id: Boutique the event belongs to
            affected_user_ids: Users the event is for
            payload: Event-specific facts

        Returns:
            True if delivered (or logged when no webhook is set), False on failure
        """
        body = {
            "event": event,
            "boutique_id": boutique_id,
            "affected_user_ids": affected_user_ids or [],
            "payload": payload or {},
            "emitted_at": datetime.now(timezone.utc).isoformat(),
        }
        if not self.webhook_url:
            logger.info(f"Notification {event} for {body['affected_user_ids']}: {body['payload']}")
            return True
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=body)
                response.raise_for_status()
                return True
        except Exception as e:
            logger.error(f"Failed to deliver notification {event}: {type(e).__name__}: {e}", exc_info=True)
            return False


@dataclass
class Notification:
    event: str
    boutique_id: Optional[str] = None
    affected_user_ids: list[str] = field(default_factory=list)
    payload: dict[str, Any] = field(default_factory=dict)


class NotificationOutbox:
    """
    Events raised while handling one request

    Services add to the outbox. get_db dispatches it once the transaction has
    committed, without waiting for delivery; a rolled-back request emits
    nothing.
    """

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier
        self.pending: list[Notification] = []

    def add(
        self,
        event: str,
        *,
        boutique_id: Optional[str] = None,
        affected_user_ids: Optional[list[str]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(event, boutique_id, list(affected_user_ids or []), dict(payload or {}))
        self.pending.append(notification)
        return notification

    async def deliver(self, notifier: Optional[Notifier] = None) -> int:
        """Hand every pending event to the notifier; returns how many were delivered"""
        notifier = notifier or self.notifier or get_notifier()
        delivered = 0
        pending, self.pending = self.pending, []
        for n in pending:
            if await notifier.emit(
                n.event, boutique_id=n.boutique_id, affected_user_ids=n.affected_user_ids, payload=n.payload
            ):
                delivered += 1
        return delivered

    def dispatch(self) -> Optional[asyncio.Task]:
        """Start delivery in the background and return without waiting"""
        if not self.pending:
            return None
        task = asyncio.get_running_loop().create_task(self.deliver())
        _deliveries.add(task)
        task.add_done_callback(_deliveries.discard)
        return task

    def discard(self) -> None:
        if self.pending:
            logger.info(f"Dropping {len(self.pending)} notification(s) from a rolled-back request")
        self.pending = []


def session_outbox(session: AsyncSession, notifier: Optional[Notifier] = None) -> NotificationOutbox:
    """The outbox bound to a request session, created on first use"""
    outbox = session.info.get(OUTBOX_KEY)
    if outbox is None:
        outbox = session.info[OUTBOX_KEY] = NotificationOutbox(notifier)
    return outbox


def release_outbox(session: AsyncSession, committed: bool) -> Optional[asyncio.Task]:
    """Dispatch the session's outbox after a commit, or drop it after a rollback"""
    outbox = session.info.pop(OUTBOX_KEY, None)
    if outbox is None:
        return None
    if committed:
        return outbox.dispatch()
    outbox.discard()
    return None


async def drain_deliveries() -> None:
    """Wait for in-flight deliveries (application shutdown)"""
    if _deliveries:
        await asyncio.gather(*list(_deliveries), return_exceptions=True)
