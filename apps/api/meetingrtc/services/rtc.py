"""RTC service helpers.

Room identifiers are unguessable capability tokens: anyone holding one can join
the room, so they are drawn from ``secrets`` rather than derived from meeting data.
"""
from __future__ import annotations

from secrets import token_urlsafe

from ..core.config import settings


def issue_room_id(length: int | None = None) -> str:
    """Return a fresh URL-safe room identifier."""

    size = length or settings.room_id_length
    return token_urlsafe(size)[:size]


def ice_servers() -> list[dict[str, str]]:
    """Return the STUN/TURN servers clients should configure on their peer connections."""

    return [{"urls": url} for url in settings.ice_servers]
