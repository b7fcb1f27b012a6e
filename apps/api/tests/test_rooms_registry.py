"""Tests for the room membership registry."""
from __future__ import annotations

import asyncio

import pytest

from meetingrtc.services.rooms import RoomRegistry


@pytest.mark.asyncio
async def test_room_exists_only_while_it_has_members():
    registry = RoomRegistry()
    assert not await registry.has_room("r1")

    await registry.add_member("r1", "a")
    assert await registry.has_room("r1")
    assert await registry.member_count("r1") == 1

    assert await registry.remove_member("r1", "a") is True
    assert not await registry.has_room("r1")
    assert await registry.rooms() == {}


@pytest.mark.asyncio
async def test_add_member_is_idempotent():
    registry = RoomRegistry()
    await registry.add_member("r1", "a")
    await registry.add_member("r1", "a")

    assert await registry.member_count("r1") == 1
    assert await registry.list_members("r1") == ["a"]


@pytest.mark.asyncio
async def test_remove_unknown_member_or_room_is_noop():
    registry = RoomRegistry()
    assert await registry.remove_member("missing", "a") is False

    await registry.add_member("r1", "a")
    assert await registry.remove_member("r1", "b") is False
    assert await registry.list_members("r1") == ["a"]


@pytest.mark.asyncio
async def test_list_members_excludes_requester():
    registry = RoomRegistry()
    for member in ("a", "b", "c"):
        await registry.add_member("r1", member)

    assert sorted(await registry.list_members("r1", exclude="b")) == ["a", "c"]
    assert await registry.list_members("unknown", exclude="a") == []


@pytest.mark.asyncio
async def test_join_returns_members_present_before_the_joiner():
    registry = RoomRegistry()
    assert await registry.join("r1", "a") == []
    assert await registry.join("r1", "b") == ["a"]
    assert sorted(await registry.list_members("r1")) == ["a", "b"]


@pytest.mark.asyncio
async def test_list_members_returns_a_snapshot():
    registry = RoomRegistry()
    await registry.add_member("r1", "a")

    members = await registry.list_members("r1")
    members.append("intruder")

    assert await registry.list_members("r1") == ["a"]


@pytest.mark.asyncio
async def test_concurrent_joins_and_leaves_leave_exact_membership():
    registry = RoomRegistry()
    joined = [f"c{index}" for index in range(50)]

    await asyncio.gather(*(registry.add_member("r1", member) for member in joined))
    await asyncio.gather(*(registry.remove_member("r1", member) for member in joined[::2]))

    assert sorted(await registry.list_members("r1")) == sorted(joined[1::2])

    await asyncio.gather(*(registry.remove_member("r1", member) for member in joined[1::2]))
    assert not await registry.has_room("r1")


@pytest.mark.asyncio
async def test_rooms_are_independent():
    registry = RoomRegistry()
    await registry.add_member("r1", "a")
    await registry.add_member("r2", "b")
    await registry.remove_member("r1", "a")

    assert await registry.rooms() == {"r2": 1}
