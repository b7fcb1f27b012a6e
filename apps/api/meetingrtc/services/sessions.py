"""Per-connection participant state for the signaling relay."""
from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

SendCallable = Callable[[dict], Awaitable[None]]


class SessionState(str, enum.Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    TERMINATED = "terminated"


@dataclass(slots=True)
class ParticipantSession:
    """State held for one live signaling connection."""

    connection_id: str
    send: SendCallable
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    room_id: Optional[str] = None
    state: SessionState = SessionState.UNJOINED
    connected_at: float = field(default_factory=time.monotonic)

    @property
    def joined(self) -> bool:
        return self.state is SessionState.JOINED and self.room_id is not None

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def bind(self, room_id: str, user_id: str, user_name: str) -> None:
        """Record the identity supplied with a join and mark the session joined."""

        self.room_id = room_id
        self.user_id = user_id
        self.user_name = user_name
        self.state = SessionState.JOINED

    def unbind(self) -> None:
        """Clear the room affiliation; identity is kept for later joins."""

        self.room_id = None
        if self.state is SessionState.JOINED:
            self.state = SessionState.UNJOINED

    def connected_for(self) -> float:
        return time.monotonic() - self.connected_at

    def describe(self) -> dict[str, Optional[str]]:
        """Return the participant descriptor other clients see."""

        return {
            "userId": self.user_id,
            "userName": self.user_name,
            "connectionId": self.connection_id,
        }


class SessionDirectory:
    """Live sessions keyed by transport-assigned connection ID."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ParticipantSession] = {}

    def register(self, session: ParticipantSession) -> None:
        self._sessions[session.connection_id] = session

    def unregister(self, connection_id: str) -> Optional[ParticipantSession]:
        return self._sessions.pop(connection_id, None)

    def get(self, connection_id: str) -> Optional[ParticipantSession]:
        return self._sessions.get(connection_id)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
