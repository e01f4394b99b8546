from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging import actor_var
from src.db.session import get_async_session

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def get_session(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[AsyncSession, None]:
    """
    Yield the request-scoped AsyncSession.

    Tests override this dependency to point the app at a throw-away database.
    """
    yield session


# PUBLIC_INTERFACE
async def get_actor(x_actor: Optional[str] = Header(default=None, alias="X-Actor")) -> Optional[str]:
    """
    Return the operator named in the X-Actor header, if any.

    The value is recorded on status events and realtime envelopes; it is not
    an authenticated identity.
    """
    actor = (x_actor or "").strip() or None
    if actor:
        actor_var.set(actor)
    return actor
