"""Room, ICE and signaling endpoints."""
from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..core.config import settings
from ..schemas.rtc import IceServersResponse, RoomCreateResponse, RoomStatusResponse
from ..schemas.signaling import OutboundType, envelope
from ..services import rtc as rtc_service
from ..services.lifecycle import lifecycle
from ..services.signaling import relay

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/rooms", response_model=RoomCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_room() -> RoomCreateResponse:
    """Issue a new room identifier to hand out to participants."""

    return RoomCreateResponse(room_id=rtc_service.issue_room_id())


@router.get("/rooms/{room_id}", response_model=RoomStatusResponse)
async def get_room(room_id: str) -> RoomStatusResponse:
    """Return who is currently connected to the room."""

    participants = await relay.participants(room_id)
    return RoomStatusResponse(
        room_id=room_id,
        active=bool(participants),
        participant_count=len(participants),
        participants=participants,
    )


@router.get("/ice-servers", response_model=IceServersResponse)
async def get_ice_servers() -> IceServersResponse:
    """Return the ICE server list for peer connections."""

    return IceServersResponse(ice_servers=rtc_service.ice_servers())


@router.websocket("/signaling")
async def signaling_endpoint(websocket: WebSocket) -> None:
    """Relay join/leave notices and SDP/ICE payloads between room participants."""

    await websocket.accept()
    session = lifecycle.open(websocket.send_json)
    timeout = settings.idle_timeout
    reason = "disconnect"

    try:
        await websocket.send_json(envelope(OutboundType.CONNECTED, {"connectionId": session.connection_id}))
        while True:
            try:
                frame = await asyncio.wait_for(websocket.receive(), timeout=timeout)
            except asyncio.TimeoutError:
                reason = "idle timeout"
                logger.info("No signaling traffic from %s for %ss; closing", session.connection_id, timeout)
                await websocket.close(code=status.WS_1001_GOING_AWAY)
                break

            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))

            text = frame.get("text")
            if text is None:
                await relay.reject(session, "Binary frames are not supported")
                continue

            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await relay.reject(session, "Frames must be JSON")
                continue

            await relay.handle(session, message)
    except WebSocketDisconnect:
        pass
    finally:
        await lifecycle.close(session, reason=reason)
