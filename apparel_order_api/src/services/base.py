from __future__ import annotations

import logging
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from src.core.errors import VersionConflictError
from src.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services keep the workflow: they load records, ask the engine for a
    decision, persist the outcome in one commit and publish realtime events.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        """Commit, mapping a concurrent order write to version_conflict."""
        try:
            await self.session.commit()
        except StaleDataError:
            await self.session.rollback()
            logger.warning("Commit rejected: row was modified concurrently")
            raise VersionConflictError(None, None)

    async def publish(self, event_type: str, order_id: UUID, payload: Dict[str, Any]) -> None:
        """Best-effort realtime publish; failures are logged, never raised."""
        try:
            await broadcast_manager.publish_order_event(event_type, order_id, payload)
        except Exception:
            logger.exception("Failed to publish %s for order %s", event_type, order_id)
