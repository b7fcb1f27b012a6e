"""End-to-end tests for the signaling WebSocket."""
from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from meetingrtc.core.config import settings
from meetingrtc.main import app

SIGNALING_URL = "/api/rtc/signaling"


def _room() -> str:
    return f"room-{uuid4().hex[:8]}"


def _connect_and_join(ws, room: str, user: str) -> tuple[str, dict]:
    connected = ws.receive_json()
    assert connected["type"] == "connected"
    ws.send_json({"type": "join", "payload": {"roomId": room, "userId": user, "userName": user.title()}})
    listing = ws.receive_json()
    assert listing["type"] == "room-participants"
    return connected["payload"]["connectionId"], listing


def test_join_offer_and_disconnect_flow():
    room = _room()
    with TestClient(app) as client:
        with client.websocket_connect(SIGNALING_URL) as ws_a:
            conn_a, listing_a = _connect_and_join(ws_a, room, "alice")
            assert listing_a["payload"] == []

            with client.websocket_connect(SIGNALING_URL) as ws_b:
                conn_b, listing_b = _connect_and_join(ws_b, room, "bob")
                assert listing_b["payload"] == [
                    {"userId": "alice", "userName": "Alice", "connectionId": conn_a}
                ]

                notice = ws_a.receive_json()
                assert notice == {
                    "type": "user-joined",
                    "payload": {"userId": "bob", "userName": "Bob", "connectionId": conn_b},
                }

                ws_b.send_json({"type": "offer", "payload": {"offer": {"sdp": "hello"}, "to": conn_a}})
                forwarded = ws_a.receive_json()
                assert forwarded == {
                    "type": "offer",
                    "payload": {"offer": {"sdp": "hello"}, "from": conn_b, "userId": "bob", "userName": "Bob"},
                }

                ws_a.send_json({"type": "answer", "payload": {"answer": {"sdp": "hi"}, "to": conn_b}})
                answer = ws_b.receive_json()
                assert answer == {"type": "answer", "payload": {"answer": {"sdp": "hi"}, "from": conn_a}}

            left_notice = ws_a.receive_json()
            assert left_notice == {"type": "user-left", "payload": {"userId": "bob", "connectionId": conn_b}}

            response = client.get(f"/api/rtc/rooms/{room}")
            assert response.json()["participantCount"] == 1


def test_unknown_target_and_bad_frames_keep_connection_open():
    room = _room()
    with TestClient(app) as client:
        with client.websocket_connect(SIGNALING_URL) as ws:
            _connect_and_join(ws, room, "alice")

            ws.send_json({"type": "ice-candidate", "payload": {"candidate": "Y", "to": "nonexistent-id"}})
            ws.send_text("{not json")
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["payload"]["code"] == "malformed_message"

            ws.send_json({"type": "speaking"})
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["payload"]["type"] == "speaking"

            ws.send_bytes(b"\x00\x01")
            assert ws.receive_json()["type"] == "error"

            ws.send_json({"type": "leave-room"})
            ws.send_json({"type": "join", "payload": {"roomId": room, "userId": "alice"}})
            assert ws.receive_json() == {"type": "room-participants", "payload": []}


def test_mute_and_speaking_broadcast():
    room = _room()
    with TestClient(app) as client:
        with client.websocket_connect(SIGNALING_URL) as ws_a, client.websocket_connect(SIGNALING_URL) as ws_b:
            conn_a, _ = _connect_and_join(ws_a, room, "alice")
            _connect_and_join(ws_b, room, "bob")
            assert ws_a.receive_json()["type"] == "user-joined"

            ws_a.send_json({"type": "mute"})
            ws_a.send_json({"type": "speaking", "payload": {"isSpeaking": True}})

            assert ws_b.receive_json() == {"type": "user-muted", "payload": {"userId": "alice", "connectionId": conn_a}}
            assert ws_b.receive_json() == {
                "type": "user-speaking",
                "payload": {"userId": "alice", "connectionId": conn_a, "isSpeaking": True},
            }


def test_last_member_leaving_removes_room():
    room = _room()
    with TestClient(app) as client:
        with client.websocket_connect(SIGNALING_URL) as ws:
            _connect_and_join(ws, room, "alice")
            assert client.get(f"/api/rtc/rooms/{room}").json()["active"] is True

        response = client.get(f"/api/rtc/rooms/{room}")

    assert response.json() == {"roomId": room, "active": False, "participantCount": 0, "participants": []}


def test_idle_connection_is_closed_and_cleaned_up(monkeypatch):
    monkeypatch.setattr(settings, "signaling_idle_timeout_seconds", 0.3)
    room = _room()
    with TestClient(app) as client:
        with client.websocket_connect(SIGNALING_URL) as ws:
            _connect_and_join(ws, room, "alice")
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()
            assert excinfo.value.code == 1001

        assert client.get(f"/api/rtc/rooms/{room}").json()["active"] is False
