"""Persistent websocket channel receiving room events from the bot backend."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol

import websockets

from room_bots.domain.connection_state import ConnectionState, assert_transition
from room_bots.infrastructure.stoppable_sleep import SleepCallable, sleep_or_stop

FrameHandler = Callable[[str | bytes], Awaitable[None]]
LifecycleHandler = Callable[[str], Awaitable[None]]

logger = logging.getLogger(__name__)


class EventConnectionPort(Protocol):
    """Open websocket connection yielding inbound frames until closed."""

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        """Iterate inbound frames; iteration ends when the peer closes cleanly."""


ConnectCallable = Callable[[str], AbstractAsyncContextManager[EventConnectionPort]]


@dataclass(frozen=True)
class ReconnectPolicy:
    """Fixed-delay reconnect policy; ``max_attempts=None`` retries forever."""

    delay_seconds: float = 3.0
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")
        if self.max_attempts is not None and self.max_attempts <= 0:
            raise ValueError("max_attempts must be positive when set")

    def allows(self, attempt: int) -> bool:
        """Return whether reconnect attempt number ``attempt`` (1-based) may run."""

        return self.max_attempts is None or attempt <= self.max_attempts


def _default_connect(url: str) -> AbstractAsyncContextManager[EventConnectionPort]:
    return websockets.connect(url, open_timeout=10)


class BackendEventChannel:
    """Keeps one websocket to the backend open, reconnecting after every close.

    State moves connecting -> open -> closed -> connecting. Each close schedules
    exactly one reconnect after the policy delay. Setting the stop event passed to
    :meth:`run_until_stopped` closes the socket or cuts a pending wait short.
    """

    def __init__(
        self,
        *,
        url: str,
        on_frame: FrameHandler,
        on_lifecycle: LifecycleHandler | None = None,
        connect: ConnectCallable | None = None,
        reconnect_policy: ReconnectPolicy | None = None,
        sleep: SleepCallable | None = None,
    ) -> None:
        self._url = url
        self._on_frame = on_frame
        self._on_lifecycle = on_lifecycle
        self._connect = connect or _default_connect
        self._reconnect_policy = reconnect_policy or ReconnectPolicy()
        self._sleep = sleep or asyncio.sleep
        self._state = ConnectionState.CLOSED
        self._reconnect_attempts = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        """Number of reconnects scheduled since the channel started."""

        return self._reconnect_attempts

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Connect, pump frames and reconnect until stopped or out of attempts."""

        logger.info("event_channel_started url=%s", self._url)
        while not stop_event.is_set():
            self._transition(ConnectionState.CONNECTING)
            await self._run_connection(stop_event)
            self._transition(ConnectionState.CLOSED)
            if stop_event.is_set():
                break

            next_attempt = self._reconnect_attempts + 1
            if not self._reconnect_policy.allows(next_attempt):
                logger.error(
                    "event_channel_gave_up url=%s attempts=%s",
                    self._url,
                    self._reconnect_attempts,
                )
                await self._notify("[WebSocket] Giving up on backend connection.")
                break

            self._reconnect_attempts = next_attempt
            delay = self._reconnect_policy.delay_seconds
            await self._notify(
                f"[WebSocket] Disconnected from backend. Reconnecting in {delay:g}s..."
            )
            logger.info(
                "event_channel_reconnect_scheduled url=%s attempt=%s delay_seconds=%s",
                self._url,
                next_attempt,
                delay,
            )
            await self._wait_before_reconnect(delay, stop_event)

        logger.info("event_channel_stopped url=%s", self._url)

    async def _run_connection(self, stop_event: asyncio.Event) -> None:
        try:
            async with self._connect(self._url) as connection:
                self._transition(ConnectionState.OPEN)
                await self._notify("[WebSocket] Connected to backend server")
                await self._pump_until_closed_or_stopped(connection, stop_event)
        except websockets.ConnectionClosed as error:
            logger.warning("event_channel_closed url=%s reason=%s", self._url, error)
        except (OSError, asyncio.TimeoutError, websockets.WebSocketException) as error:
            logger.warning("event_channel_error url=%s error=%s", self._url, error)
            await self._notify("[WebSocket] Error connecting to backend")

    async def _pump_until_closed_or_stopped(
        self,
        connection: EventConnectionPort,
        stop_event: asyncio.Event,
    ) -> None:
        pump_task = asyncio.ensure_future(self._pump_frames(connection))
        stop_task = asyncio.ensure_future(stop_event.wait())
        try:
            await asyncio.wait({pump_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (pump_task, stop_task):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
        if pump_task.done() and not pump_task.cancelled():
            pump_task.result()

    async def _pump_frames(self, connection: EventConnectionPort) -> None:
        async for frame in connection:
            try:
                await self._on_frame(frame)
            except Exception:  # noqa: BLE001
                logger.exception("event_channel_frame_handler_failed url=%s", self._url)

    async def _wait_before_reconnect(self, delay: float, stop_event: asyncio.Event) -> None:
        await sleep_or_stop(self._sleep, delay, stop_event)

    def _transition(self, to_state: ConnectionState) -> None:
        if to_state == self._state:
            return
        assert_transition(self._state, to_state)
        logger.debug("event_channel_state from=%s to=%s", self._state.value, to_state.value)
        self._state = to_state

    async def _notify(self, line: str) -> None:
        if self._on_lifecycle is not None:
            await self._on_lifecycle(line)
