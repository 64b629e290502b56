from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import pytest

from room_bots.domain.connection_state import ConnectionState
from room_bots.infrastructure.backend.event_channel import BackendEventChannel, ReconnectPolicy


class FakeConnection:
    def __init__(self, frames: list[str], *, hold_open: asyncio.Event | None = None) -> None:
        self._frames = frames
        self._hold_open = hold_open

    async def __aiter__(self) -> AsyncIterator[str]:
        for frame in self._frames:
            yield frame
        if self._hold_open is not None:
            await self._hold_open.wait()


class FakeConnector:
    """Hands out scripted connections; a script entry that is an exception is raised."""

    def __init__(self, script: list[FakeConnection | Exception]) -> None:
        self._script = list(script)
        self.urls: list[str] = []
        self.closed = 0

    def __call__(self, url: str):
        self.urls.append(url)
        entry = self._script.pop(0) if self._script else OSError("no more scripted connections")
        return self._open(entry)

    @asynccontextmanager
    async def _open(self, entry: FakeConnection | Exception):
        if isinstance(entry, Exception):
            raise entry
        try:
            yield entry
        finally:
            self.closed += 1


class StoppingSleep:
    """Sleep spy that sets the stop event once it has been awaited ``stop_after`` times."""

    def __init__(self, stop_event: asyncio.Event, *, stop_after: int) -> None:
        self._stop_event = stop_event
        self._stop_after = stop_after
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if len(self.calls) >= self._stop_after:
            self._stop_event.set()


def _channel(
    connector: FakeConnector,
    *,
    frames: list[str | bytes],
    lifecycle: list[str],
    sleep: StoppingSleep,
    policy: ReconnectPolicy | None = None,
) -> BackendEventChannel:
    async def on_frame(frame: str | bytes) -> None:
        frames.append(frame)

    async def on_lifecycle(line: str) -> None:
        lifecycle.append(line)

    return BackendEventChannel(
        url="ws://backend.test/ws",
        on_frame=on_frame,
        on_lifecycle=on_lifecycle,
        connect=connector,
        reconnect_policy=policy,
        sleep=sleep,
    )


@pytest.mark.asyncio
async def test_close_schedules_exactly_one_reconnect_after_fixed_delay() -> None:
    stop_event = asyncio.Event()
    connector = FakeConnector([FakeConnection(['{"type":"log","data":"x"}'])])
    sleep = StoppingSleep(stop_event, stop_after=1)
    frames: list[str | bytes] = []
    lifecycle: list[str] = []
    channel = _channel(connector, frames=frames, lifecycle=lifecycle, sleep=sleep)

    await channel.run_until_stopped(stop_event)

    assert connector.urls == ["ws://backend.test/ws"]
    assert sleep.calls == [3.0]
    assert channel.reconnect_attempts == 1
    assert frames == ['{"type":"log","data":"x"}']
    assert lifecycle == [
        "[WebSocket] Connected to backend server",
        "[WebSocket] Disconnected from backend. Reconnecting in 3s...",
    ]
    assert channel.state == ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_connection_errors_keep_retrying_with_one_wait_per_failure() -> None:
    stop_event = asyncio.Event()
    connector = FakeConnector(
        [
            ConnectionRefusedError("refused"),
            ConnectionRefusedError("refused"),
            FakeConnection([]),
        ]
    )
    sleep = StoppingSleep(stop_event, stop_after=3)
    lifecycle: list[str] = []
    channel = _channel(
        connector,
        frames=[],
        lifecycle=lifecycle,
        sleep=sleep,
        policy=ReconnectPolicy(delay_seconds=0.5),
    )

    await channel.run_until_stopped(stop_event)

    assert len(connector.urls) == 3
    assert sleep.calls == [0.5, 0.5, 0.5]
    assert lifecycle.count("[WebSocket] Error connecting to backend") == 2
    assert lifecycle.count("[WebSocket] Connected to backend server") == 1


@pytest.mark.asyncio
async def test_max_attempts_caps_reconnects() -> None:
    stop_event = asyncio.Event()
    connector = FakeConnector([OSError("down")] * 5)
    sleep = StoppingSleep(stop_event, stop_after=100)
    lifecycle: list[str] = []
    channel = _channel(
        connector,
        frames=[],
        lifecycle=lifecycle,
        sleep=sleep,
        policy=ReconnectPolicy(delay_seconds=1.0, max_attempts=2),
    )

    await channel.run_until_stopped(stop_event)

    assert len(connector.urls) == 3
    assert sleep.calls == [1.0, 1.0]
    assert lifecycle[-1] == "[WebSocket] Giving up on backend connection."


@pytest.mark.asyncio
async def test_stop_event_closes_open_connection_without_reconnect() -> None:
    stop_event = asyncio.Event()
    hold_open = asyncio.Event()
    connector = FakeConnector([FakeConnection(["a", "b"], hold_open=hold_open)])
    sleep = StoppingSleep(stop_event, stop_after=1)
    frames: list[str | bytes] = []
    channel = _channel(connector, frames=frames, lifecycle=[], sleep=sleep)

    task = asyncio.create_task(channel.run_until_stopped(stop_event))
    for _ in range(50):
        if len(frames) == 2:
            break
        await asyncio.sleep(0)
    assert channel.state == ConnectionState.OPEN
    stop_event.set()
    await asyncio.wait_for(task, timeout=1.0)

    assert frames == ["a", "b"]
    assert sleep.calls == []
    assert connector.closed == 1
    assert channel.state == ConnectionState.CLOSED


@pytest.mark.asyncio
async def test_stop_event_cuts_reconnect_wait_short() -> None:
    stop_event = asyncio.Event()
    connector = FakeConnector([OSError("down")])
    never_returns = asyncio.Event()

    async def slow_sleep(seconds: float) -> None:
        _ = seconds
        await never_returns.wait()

    channel = BackendEventChannel(
        url="ws://backend.test/ws",
        on_frame=lambda frame: asyncio.sleep(0),
        connect=connector,
        sleep=slow_sleep,
    )

    task = asyncio.create_task(channel.run_until_stopped(stop_event))
    for _ in range(50):
        if channel.reconnect_attempts == 1:
            break
        await asyncio.sleep(0)
    stop_event.set()
    await asyncio.wait_for(task, timeout=1.0)

    assert len(connector.urls) == 1


@pytest.mark.asyncio
async def test_frame_handler_errors_do_not_close_channel() -> None:
    stop_event = asyncio.Event()
    connector = FakeConnector([FakeConnection(["boom", "ok"])])
    handled: list[str | bytes] = []

    async def on_frame(frame: str | bytes) -> None:
        if frame == "boom":
            raise ValueError("bad frame")
        handled.append(frame)

    channel = BackendEventChannel(
        url="ws://backend.test/ws",
        on_frame=on_frame,
        connect=connector,
        sleep=StoppingSleep(stop_event, stop_after=1),
    )

    await channel.run_until_stopped(stop_event)

    assert handled == ["ok"]


def test_reconnect_policy_rejects_invalid_values() -> None:
    with pytest.raises(ValueError):
        ReconnectPolicy(delay_seconds=-1.0)
    with pytest.raises(ValueError):
        ReconnectPolicy(max_attempts=0)


def test_reconnect_policy_without_cap_allows_every_attempt() -> None:
    assert ReconnectPolicy().allows(10_000) is True
    assert ReconnectPolicy(max_attempts=3).allows(4) is False
