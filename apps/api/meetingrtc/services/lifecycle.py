"""Connection open/close bookkeeping for signaling sessions."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set
from uuid import uuid4

from .sessions import ParticipantSession, SendCallable, SessionState
from .signaling import SignalingRelay, relay as default_relay

logger = logging.getLogger(__name__)


class ConnectionLifecycle:
    """Create sessions for new connections and tear them down exactly once.

    Explicit leaves, client disconnects and idle timeouts all end in ``close``,
    which is safe to call repeatedly. Cleanup runs in its own task, so cancelling
    the connection handler that called ``close`` cannot leave a member behind.
    """

    def __init__(self, relay: SignalingRelay) -> None:
        self.relay = relay
        self._cleanups: Set[asyncio.Task] = set()

    def open(self, send: SendCallable, connection_id: Optional[str] = None) -> ParticipantSession:
        """Register a new connection and return its session."""

        session = ParticipantSession(connection_id=connection_id or uuid4().hex, send=send)
        self.relay.directory.register(session)
        logger.info(
            "Signaling connection %s opened (%d live)",
            session.connection_id,
            len(self.relay.directory),
        )
        return session

    async def close(self, session: ParticipantSession, reason: str = "disconnect") -> bool:
        """Run departure cleanup for ``session``.

        Returns ``False`` if the session had already been closed.
        """

        if session.terminated:
            return False

        # Mark first so a concurrent close sees the session as already handled.
        session.state = SessionState.TERMINATED
        self.relay.directory.unregister(session.connection_id)

        task = asyncio.ensure_future(self._cleanup(session, reason))
        self._cleanups.add(task)
        task.add_done_callback(self._cleanups.discard)
        await asyncio.shield(task)
        return True

    async def drain(self) -> None:
        """Wait for cleanups whose callers were cancelled."""

        if self._cleanups:
            await asyncio.gather(*list(self._cleanups), return_exceptions=True)

    async def _cleanup(self, session: ParticipantSession, reason: str) -> None:
        await self.relay.leave(session)
        logger.info(
            "Signaling connection %s closed after %.1fs (%s)",
            session.connection_id,
            session.connected_for(),
            reason,
        )


lifecycle = ConnectionLifecycle(default_relay)
