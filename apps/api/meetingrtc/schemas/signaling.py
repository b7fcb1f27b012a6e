"""Wire contracts for the signaling WebSocket."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class MalformedMessageError(ValueError):
    """Raised when an inbound frame cannot be interpreted as a signaling message."""


class InboundType(str, enum.Enum):
    JOIN = "join"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    MUTE = "mute"
    UNMUTE = "unmute"
    SPEAKING = "speaking"
    LEAVE_ROOM = "leave-room"


class OutboundType(str, enum.Enum):
    CONNECTED = "connected"
    ROOM_PARTICIPANTS = "room-participants"
    USER_JOINED = "user-joined"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice-candidate"
    USER_MUTED = "user-muted"
    USER_UNMUTED = "user-unmuted"
    USER_SPEAKING = "user-speaking"
    USER_LEFT = "user-left"
    ERROR = "error"


# Event names used by the Socket.IO-era clients.
TYPE_ALIASES = {
    "join-room": InboundType.JOIN,
    "leave": InboundType.LEAVE_ROOM,
}


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class JoinPayload(_Payload):
    room_id: str = Field(..., alias="roomId", min_length=1, description="Room capability token")
    user_id: str = Field(..., alias="userId", min_length=1, description="Opaque user identifier")
    user_name: str = Field(default="", alias="userName", description="Display name")


class OfferPayload(_Payload):
    offer: Any = Field(..., description="Session description offered to the peer")
    to: str = Field(..., min_length=1, description="Target connection ID")


class AnswerPayload(_Payload):
    answer: Any = Field(..., description="Session description answering an offer")
    to: str = Field(..., min_length=1)


class IceCandidatePayload(_Payload):
    candidate: Any = Field(..., description="Network path candidate, null marks end of candidates")
    to: str = Field(..., min_length=1)


class SpeakingPayload(_Payload):
    is_speaking: bool = Field(..., alias="isSpeaking")


class EmptyPayload(_Payload):
    pass


PAYLOAD_MODELS: dict[InboundType, type[_Payload]] = {
    InboundType.JOIN: JoinPayload,
    InboundType.OFFER: OfferPayload,
    InboundType.ANSWER: AnswerPayload,
    InboundType.ICE_CANDIDATE: IceCandidatePayload,
    InboundType.MUTE: EmptyPayload,
    InboundType.UNMUTE: EmptyPayload,
    InboundType.SPEAKING: SpeakingPayload,
    InboundType.LEAVE_ROOM: EmptyPayload,
}


@dataclass(slots=True)
class InboundMessage:
    type: InboundType
    payload: _Payload


def parse_inbound(message: object) -> InboundMessage:
    """Validate a decoded JSON frame.

    Fields may be nested under ``payload`` or sit next to ``type``.
    """

    if not isinstance(message, dict):
        raise MalformedMessageError("Signaling messages must be JSON objects")

    raw_type = message.get("type")
    if not isinstance(raw_type, str) or not raw_type:
        raise MalformedMessageError("Missing message type")

    try:
        kind = TYPE_ALIASES.get(raw_type) or InboundType(raw_type)
    except ValueError as exc:
        raise MalformedMessageError(f"Unknown message type: {raw_type}") from exc

    body = message.get("payload")
    if body is None:
        body = {key: value for key, value in message.items() if key != "type"}
    if not isinstance(body, dict):
        raise MalformedMessageError(f"Payload for {kind.value} must be an object")

    try:
        payload = PAYLOAD_MODELS[kind].model_validate(body)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
        raise MalformedMessageError(f"Invalid {kind.value} payload: {fields}") from exc

    return InboundMessage(type=kind, payload=payload)


def envelope(kind: OutboundType, payload: Any) -> dict:
    """Wrap an outbound payload with its type tag."""

    return {"type": kind.value, "payload": payload}


def error_message(code: str, detail: str, message_type: str | None = None) -> dict:
    return envelope(OutboundType.ERROR, {"code": code, "message": detail, "type": message_type})
