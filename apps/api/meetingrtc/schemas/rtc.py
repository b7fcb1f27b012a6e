"""Data contracts for RTC HTTP endpoints."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RoomCreateResponse(_CamelModel):
    room_id: str = Field(..., alias="roomId", description="Room capability token to share with participants")


class ParticipantInfo(_CamelModel):
    user_id: str | None = Field(default=None, alias="userId")
    user_name: str | None = Field(default=None, alias="userName")
    connection_id: str = Field(..., alias="connectionId")


class RoomStatusResponse(_CamelModel):
    room_id: str = Field(..., alias="roomId")
    active: bool = Field(..., description="True while at least one participant is connected")
    participant_count: int = Field(..., ge=0, alias="participantCount")
    participants: list[ParticipantInfo] = Field(default_factory=list)


class IceServer(BaseModel):
    urls: str


class IceServersResponse(_CamelModel):
    ice_servers: list[IceServer] = Field(..., alias="iceServers")
