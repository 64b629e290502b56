"""Single point of contact between bots and the backend process."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from room_bots.application.dto.bot_models import LogEvent, RoomSummary
from room_bots.application.ports.backend_client_port import BackendClientPort
from room_bots.application.services.room_event_dispatcher import (
    LogSubscriber,
    MessageSubscriber,
    RoomEventDispatcher,
    Unsubscribe,
    UserJoinedSubscriber,
    UserLeftSubscriber,
)
from room_bots.infrastructure.backend.event_channel import (
    BackendEventChannel,
    ConnectCallable,
    ReconnectPolicy,
    SleepCallable,
)
from room_bots.infrastructure.backend.event_parser import parse_room_event

NowCallable = Callable[[], datetime]

logger = logging.getLogger(__name__)


class BackendConnector:
    """Relays bot actions to the backend and fans its room events out to subscribers.

    Every outbound operation converts failures into a benign result (``False``,
    ``None`` or an empty list) and a timestamped log line; nothing is raised to the
    caller.
    """

    def __init__(
        self,
        *,
        backend_client: BackendClientPort,
        dispatcher: RoomEventDispatcher | None = None,
        now: NowCallable = datetime.now,
    ) -> None:
        self._backend_client = backend_client
        self._dispatcher = dispatcher or RoomEventDispatcher()
        self._now = now

    def on_message(self, subscriber: MessageSubscriber) -> Unsubscribe:
        return self._dispatcher.subscribe_message(subscriber)

    def on_user_joined(self, subscriber: UserJoinedSubscriber) -> Unsubscribe:
        return self._dispatcher.subscribe_user_joined(subscriber)

    def on_user_left(self, subscriber: UserLeftSubscriber) -> Unsubscribe:
        return self._dispatcher.subscribe_user_left(subscriber)

    def on_log(self, subscriber: LogSubscriber) -> Unsubscribe:
        return self._dispatcher.subscribe_log(subscriber)

    async def handle_frame(self, frame: str | bytes) -> None:
        """Parse one event-channel frame and deliver it to subscribers."""

        event = parse_room_event(frame)
        if event is None:
            return
        if isinstance(event, LogEvent):
            await self._log(event.data)
            return
        await self._dispatcher.dispatch(event)

    def build_event_channel(
        self,
        *,
        url: str,
        reconnect_policy: ReconnectPolicy | None = None,
        connect: ConnectCallable | None = None,
        sleep: SleepCallable | None = None,
    ) -> BackendEventChannel:
        """Return an event channel feeding this connector's subscribers."""

        return BackendEventChannel(
            url=url,
            on_frame=self.handle_frame,
            on_lifecycle=self._log,
            connect=connect,
            reconnect_policy=reconnect_policy,
            sleep=sleep,
        )

    async def login(self, bot_id: str, username: str, password: str | None = None) -> bool:
        """Log the bot in; an empty password fails without contacting the backend."""

        if not password:
            await self._log(f"[{username}] Login failed: Password is required.")
            return False

        await self._log(f"[{username}] Attempting to login via backend...")
        try:
            await self._backend_client.login(username=username, password=password)
        except Exception as error:  # noqa: BLE001
            logger.warning("backend_login_failed bot_id=%s error=%s", bot_id, error)
            await self._log(f"[{username}] Login failed: {error}")
            return False

        await self._log(f"[{username}] Successfully logged in!")
        return True

    async def logout(self, bot_id: str) -> None:
        try:
            await self._backend_client.logout(bot_id=bot_id)
        except Exception as error:  # noqa: BLE001
            logger.warning("backend_logout_failed bot_id=%s error=%s", bot_id, error)
            await self._log(f"[{bot_id}] Logout failed: {error}")
            return
        await self._log(f"[{bot_id}] Logged out")

    async def get_rooms(self, bot_id: str) -> list[RoomSummary]:
        """Return public rooms, or an empty list when the backend cannot be reached."""

        await self._log(f"[{bot_id}] Fetching public rooms...")
        try:
            return await self._backend_client.search_rooms(bot_id=bot_id)
        except Exception as error:  # noqa: BLE001
            logger.warning("backend_get_rooms_failed bot_id=%s error=%s", bot_id, error)
            await self._log(f"[{bot_id}] Failed to fetch rooms: {error}")
            return []

    async def join_room(self, bot_id: str, room_name: str) -> str | None:
        """Join ``room_name`` and return its id, or ``None`` on failure."""

        await self._log(f"[{bot_id}] Joining room: {room_name}...")
        try:
            return await self._backend_client.join_room(bot_id=bot_id, room_name=room_name)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "backend_join_room_failed bot_id=%s room_name=%s error=%s",
                bot_id,
                room_name,
                error,
            )
            await self._log(f"[{bot_id}] Failed to join room: {error}")
            return None

    async def leave_room(self, bot_id: str, room_id: str) -> None:
        try:
            await self._backend_client.leave_room(bot_id=bot_id, room_id=room_id)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "backend_leave_room_failed bot_id=%s room_id=%s error=%s",
                bot_id,
                room_id,
                error,
            )
            await self._log(f"[{bot_id}] Failed to leave room: {error}")
            return
        await self._log(f"[{bot_id}] Left room {room_id}")

    async def send_message(self, bot_id: str, room_id: str, text: str) -> None:
        try:
            await self._backend_client.send_message(bot_id=bot_id, room_id=room_id, text=text)
        except Exception as error:  # noqa: BLE001
            logger.warning(
                "backend_send_message_failed bot_id=%s room_id=%s error=%s",
                bot_id,
                room_id,
                error,
            )
            await self._log(f"[{bot_id}] Failed to send message: {error}")

    async def _log(self, message: str) -> None:
        timestamp = self._now().strftime("%H:%M:%S")
        await self._dispatcher.publish_log(f"[{timestamp}] {message}")
