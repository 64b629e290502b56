from __future__ import annotations

import asyncio
import json
from datetime import datetime

import pytest
import websockets

from room_bots.application.dto.bot_models import ConversationMessage, RoomSummary, RoomUser
from room_bots.application.services.backend_connector import BackendConnector
from room_bots.infrastructure.backend.event_channel import ReconnectPolicy

_FRAMES = [
    json.dumps(
        {
            "type": "message",
            "data": {"author": "Ann", "authorId": "u1", "text": "hello bots", "roomId": "r1"},
        }
    ),
    json.dumps(
        {"type": "user_joined", "data": {"roomId": "r1", "user": {"id": "u2", "username": "Ben"}}}
    ),
    "not json at all",
    json.dumps({"type": "typing", "data": {}}),
    json.dumps({"type": "log", "data": "[Backend] room r1 created"}),
]


class _UnusedBackendClient:
    async def login(self, *, username: str, password: str) -> None:
        raise AssertionError("not expected")

    async def logout(self, *, bot_id: str) -> None:
        raise AssertionError("not expected")

    async def search_rooms(self, *, bot_id: str) -> list[RoomSummary]:
        raise AssertionError("not expected")

    async def join_room(self, *, bot_id: str, room_name: str) -> str:
        raise AssertionError("not expected")

    async def leave_room(self, *, bot_id: str, room_id: str) -> None:
        raise AssertionError("not expected")

    async def send_message(self, *, bot_id: str, room_id: str, text: str) -> None:
        raise AssertionError("not expected")


@pytest.mark.asyncio
async def test_frames_from_real_websocket_reach_connector_subscribers() -> None:
    connections = 0

    async def handler(websocket) -> None:
        nonlocal connections
        connections += 1
        for frame in _FRAMES:
            await websocket.send(frame)

    stop_event = asyncio.Event()

    async def stop_instead_of_waiting(seconds: float) -> None:
        _ = seconds
        stop_event.set()

    connector = BackendConnector(
        backend_client=_UnusedBackendClient(),
        now=lambda: datetime(2026, 10, 18, 9, 30, 0),
    )
    messages: list[ConversationMessage] = []
    joined: list[tuple[str, RoomUser]] = []
    lines: list[str] = []
    connector.on_message(messages.append)
    connector.on_user_joined(lambda room_id, user: joined.append((room_id, user)))
    connector.on_log(lines.append)

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        channel = connector.build_event_channel(
            url=f"ws://127.0.0.1:{port}",
            reconnect_policy=ReconnectPolicy(delay_seconds=0.01),
            sleep=stop_instead_of_waiting,
        )
        await asyncio.wait_for(channel.run_until_stopped(stop_event), timeout=10.0)

    assert connections == 1
    assert [(message.author, message.text, message.room_id) for message in messages] == [
        ("Ann", "hello bots", "r1")
    ]
    assert joined == [("r1", RoomUser(id="u2", name="Ben"))]
    assert lines[0] == "[09:30:00] [WebSocket] Connected to backend server"
    assert "[09:30:00] [Backend] room r1 created" in lines
    assert lines[-1] == (
        "[09:30:00] [WebSocket] Disconnected from backend. Reconnecting in 0.01s..."
    )
    assert channel.reconnect_attempts == 1


@pytest.mark.asyncio
async def test_channel_reconnects_to_server_after_close() -> None:
    connections = 0
    stop_event = asyncio.Event()

    async def handler(websocket) -> None:
        nonlocal connections
        connections += 1
        await websocket.send(json.dumps({"type": "log", "data": f"connection {connections}"}))
        if connections == 2:
            stop_event.set()

    connector = BackendConnector(backend_client=_UnusedBackendClient())
    lines: list[str] = []
    connector.on_log(lines.append)

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        port = server.sockets[0].getsockname()[1]
        channel = connector.build_event_channel(
            url=f"ws://127.0.0.1:{port}",
            reconnect_policy=ReconnectPolicy(delay_seconds=0.01),
        )
        await asyncio.wait_for(channel.run_until_stopped(stop_event), timeout=10.0)

    assert connections == 2
    assert any(line.endswith("connection 1") for line in lines)


@pytest.mark.asyncio
async def test_unreachable_server_gives_up_after_policy_cap() -> None:
    server = await asyncio.start_server(lambda reader, writer: None, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    server.close()
    await server.wait_closed()

    connector = BackendConnector(backend_client=_UnusedBackendClient())
    lines: list[str] = []
    connector.on_log(lines.append)
    channel = connector.build_event_channel(
        url=f"ws://127.0.0.1:{port}",
        reconnect_policy=ReconnectPolicy(delay_seconds=0.01, max_attempts=1),
    )

    await asyncio.wait_for(channel.run_until_stopped(asyncio.Event()), timeout=10.0)

    assert sum(line.endswith("[WebSocket] Error connecting to backend") for line in lines) == 2
    assert lines[-1].endswith("[WebSocket] Giving up on backend connection.")
