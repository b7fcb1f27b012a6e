"""In-memory WebRTC signaling relay."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, Optional

from ..schemas.signaling import (
    AnswerPayload,
    IceCandidatePayload,
    InboundType,
    JoinPayload,
    MalformedMessageError,
    OfferPayload,
    OutboundType,
    SpeakingPayload,
    envelope,
    error_message,
    parse_inbound,
)
from .rooms import RoomRegistry
from .sessions import ParticipantSession, SessionDirectory

logger = logging.getLogger(__name__)

Handler = Callable[[ParticipantSession, object], Awaitable[None]]


class SignalingRelay:
    """Translate inbound signaling events into room changes and relayed messages.

    Offers, answers and ICE candidates go to exactly one target connection.
    Join, leave, mute and speaking events fan out to the rest of the sender's room.
    Delivery is best effort: unknown targets and failed sends are logged and dropped.
    Room-scoped fan-out only reaches sessions still in that room when the send
    happens, so a member that has moved on never hears about its old room.

    Malformed messages are logged and otherwise ignored, except that the sender
    gets an ``error`` message describing what was wrong. The connection stays open.
    """

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        directory: Optional[SessionDirectory] = None,
    ) -> None:
        self.registry = registry or RoomRegistry()
        self.directory = directory or SessionDirectory()
        self._handlers: Dict[InboundType, Handler] = {
            InboundType.JOIN: self._on_join,
            InboundType.OFFER: self._on_offer,
            InboundType.ANSWER: self._on_answer,
            InboundType.ICE_CANDIDATE: self._on_ice_candidate,
            InboundType.MUTE: self._on_mute,
            InboundType.UNMUTE: self._on_unmute,
            InboundType.SPEAKING: self._on_speaking,
            InboundType.LEAVE_ROOM: self._on_leave,
        }

    async def handle(self, session: ParticipantSession, message: object) -> None:
        """Process one decoded frame from ``session``."""

        if session.terminated:
            logger.debug("Ignoring message from closed connection %s", session.connection_id)
            return

        try:
            inbound = parse_inbound(message)
        except MalformedMessageError as exc:
            raw_type = message.get("type") if isinstance(message, dict) else None
            await self.reject(session, str(exc), raw_type if isinstance(raw_type, str) else None)
            return

        await self._handlers[inbound.type](session, inbound.payload)

    async def join(self, session: ParticipantSession, room_id: str, user_id: str, user_name: str) -> list[dict]:
        """Add ``session`` to ``room_id`` and introduce it to the other members.

        A session that is already in a room leaves it first. The joiner gets the
        participant list before anyone else hears about the join.
        """

        if session.room_id is not None:
            logger.info(
                "Connection %s switching from room %s to %s",
                session.connection_id,
                session.room_id,
                room_id,
            )
            await self.leave(session)

        session.bind(room_id, user_id, user_name)
        existing = await self.registry.join(room_id, session.connection_id)

        participants = []
        for connection_id in existing:
            peer = self.directory.get(connection_id)
            if peer is None or peer.user_id is None:
                continue
            participants.append(peer.describe())

        await self._deliver(session, envelope(OutboundType.ROOM_PARTICIPANTS, participants))
        await self._fan_out(existing, envelope(OutboundType.USER_JOINED, session.describe()), room_id)

        logger.info(
            "User %s (%s) joined room %s as %s; %d participant(s) now",
            user_name,
            user_id,
            room_id,
            session.connection_id,
            await self.registry.member_count(room_id),
        )
        return participants

    async def leave(self, session: ParticipantSession) -> bool:
        """Remove ``session`` from its room and tell the remaining members.

        Returns ``False`` when the session was not in a room.
        """

        room_id = session.room_id
        if room_id is None:
            return False

        session.unbind()
        removed = await self.registry.remove_member(room_id, session.connection_id)
        if not removed:
            return False

        await self.broadcast(
            room_id,
            session.connection_id,
            envelope(
                OutboundType.USER_LEFT,
                {"userId": session.user_id, "connectionId": session.connection_id},
            ),
        )
        logger.info("User %s left room %s", session.user_id, room_id)
        return True

    async def broadcast(self, room_id: str, sender_id: str, message: dict) -> int:
        """Send a message to every member of the room except the sender."""

        members = await self.registry.list_members(room_id, exclude=sender_id)
        return await self._fan_out(members, message, room_id)

    async def relay(self, target_id: str, message: dict) -> bool:
        """Deliver a message to a single connection, dropping it if the target is gone."""

        target = self.directory.get(target_id)
        if target is None or target.terminated:
            logger.debug("Dropping %s for unknown connection %s", message.get("type"), target_id)
            return False
        return await self._deliver(target, message)

    async def reject(self, session: ParticipantSession, detail: str, message_type: Optional[str] = None) -> None:
        """Log an unusable message and tell its sender; the connection stays open."""

        logger.warning("Malformed signaling message from %s: %s", session.connection_id, detail)
        await self._deliver(session, error_message("malformed_message", detail, message_type))

    async def participants(self, room_id: str) -> list[dict]:
        """Return descriptors for everyone currently in the room."""

        members = await self.registry.list_members(room_id)
        descriptors = []
        for connection_id in members:
            session = self.directory.get(connection_id)
            if session is not None:
                descriptors.append(session.describe())
        return descriptors

    async def _on_join(self, session: ParticipantSession, payload: JoinPayload) -> None:
        await self.join(session, payload.room_id, payload.user_id, payload.user_name)

    async def _on_leave(self, session: ParticipantSession, _payload: object) -> None:
        await self.leave(session)

    async def _on_offer(self, session: ParticipantSession, payload: OfferPayload) -> None:
        logger.debug("Forwarding offer from %s to %s", session.connection_id, payload.to)
        await self.relay(
            payload.to,
            envelope(
                OutboundType.OFFER,
                {
                    "offer": payload.offer,
                    "from": session.connection_id,
                    "userId": session.user_id,
                    "userName": session.user_name,
                },
            ),
        )

    async def _on_answer(self, session: ParticipantSession, payload: AnswerPayload) -> None:
        logger.debug("Forwarding answer from %s to %s", session.connection_id, payload.to)
        await self.relay(
            payload.to,
            envelope(OutboundType.ANSWER, {"answer": payload.answer, "from": session.connection_id}),
        )

    async def _on_ice_candidate(self, session: ParticipantSession, payload: IceCandidatePayload) -> None:
        await self.relay(
            payload.to,
            envelope(OutboundType.ICE_CANDIDATE, {"candidate": payload.candidate, "from": session.connection_id}),
        )

    async def _on_mute(self, session: ParticipantSession, _payload: object) -> None:
        await self._announce(session, OutboundType.USER_MUTED, {})

    async def _on_unmute(self, session: ParticipantSession, _payload: object) -> None:
        await self._announce(session, OutboundType.USER_UNMUTED, {})

    async def _on_speaking(self, session: ParticipantSession, payload: SpeakingPayload) -> None:
        await self._announce(session, OutboundType.USER_SPEAKING, {"isSpeaking": payload.is_speaking})

    async def _announce(self, session: ParticipantSession, kind: OutboundType, extra: dict) -> None:
        """Broadcast a status change for ``session`` to the rest of its room."""

        if session.room_id is None:
            logger.debug("Ignoring %s from %s outside a room", kind.value, session.connection_id)
            return
        body = {"userId": session.user_id, "connectionId": session.connection_id, **extra}
        await self.broadcast(session.room_id, session.connection_id, envelope(kind, body))

    async def _fan_out(self, connection_ids: Iterable[str], message: dict, room_id: str) -> int:
        targets = []
        for connection_id in connection_ids:
            session = self.directory.get(connection_id)
            if session is None or session.terminated or session.room_id != room_id:
                continue
            targets.append(session)
        if not targets:
            return 0

        results = await asyncio.gather(
            *(self._deliver(target, message) for target in targets),
            return_exceptions=True,
        )
        return sum(1 for result in results if result is True)

    async def _deliver(self, session: ParticipantSession, message: dict) -> bool:
        try:
            await session.send(message)
        except Exception as exc:  # noqa: BLE001 - peer socket may already be closed
            logger.warning(
                "Failed to deliver %s to %s: %s",
                message.get("type"),
                session.connection_id,
                exc,
            )
            return False
        return True


registry = RoomRegistry()
directory = SessionDirectory()
relay = SignalingRelay(registry, directory)
