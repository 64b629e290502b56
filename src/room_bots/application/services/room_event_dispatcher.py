"""Fan-out of backend room events to per-kind subscriber lists."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from room_bots.application.dto.bot_models import (
    ConversationMessage,
    LogEvent,
    MessageEvent,
    RoomEvent,
    RoomUser,
    UserJoinedEvent,
    UserLeftEvent,
)

MessageSubscriber = Callable[[ConversationMessage], Awaitable[None] | None]
UserJoinedSubscriber = Callable[[str, RoomUser], Awaitable[None] | None]
UserLeftSubscriber = Callable[[str, str, str], Awaitable[None] | None]
LogSubscriber = Callable[[str], Awaitable[None] | None]
Unsubscribe = Callable[[], None]

logger = logging.getLogger(__name__)


class RoomEventDispatcher:
    """Holds subscriber lists for message, user-joined, user-left and log events.

    Subscribers may be plain callables or coroutine functions. A failing subscriber
    is logged and skipped; the rest still receive the event.
    """

    def __init__(self) -> None:
        self._message_subscribers: list[_Subscription] = []
        self._user_joined_subscribers: list[_Subscription] = []
        self._user_left_subscribers: list[_Subscription] = []
        self._log_subscribers: list[_Subscription] = []

    def subscribe_message(self, subscriber: MessageSubscriber) -> Unsubscribe:
        return _subscribe(self._message_subscribers, subscriber)

    def subscribe_user_joined(self, subscriber: UserJoinedSubscriber) -> Unsubscribe:
        return _subscribe(self._user_joined_subscribers, subscriber)

    def subscribe_user_left(self, subscriber: UserLeftSubscriber) -> Unsubscribe:
        return _subscribe(self._user_left_subscribers, subscriber)

    def subscribe_log(self, subscriber: LogSubscriber) -> Unsubscribe:
        return _subscribe(self._log_subscribers, subscriber)

    async def dispatch(self, event: RoomEvent) -> None:
        """Deliver one room event to every subscriber of its kind."""

        if isinstance(event, MessageEvent):
            await _deliver("message", self._message_subscribers, event.data)
        elif isinstance(event, UserJoinedEvent):
            await _deliver(
                "user_joined",
                self._user_joined_subscribers,
                event.data.room_id,
                event.data.user,
            )
        elif isinstance(event, UserLeftEvent):
            await _deliver(
                "user_left",
                self._user_left_subscribers,
                event.data.room_id,
                event.data.user_id,
                event.data.username,
            )
        elif isinstance(event, LogEvent):
            await self.publish_log(event.data)

    async def publish_log(self, line: str) -> None:
        """Deliver a log line to log subscribers."""

        await _deliver("log", self._log_subscribers, line)


def _subscribe(subscribers: list[_Subscription], subscriber: Any) -> Unsubscribe:
    # Each handle removes its own registration, even if the callable is registered twice.
    entry = _Subscription(subscriber)
    subscribers.append(entry)

    def unsubscribe() -> None:
        for index, candidate in enumerate(subscribers):
            if candidate is entry:
                del subscribers[index]
                return

    return unsubscribe


class _Subscription:
    __slots__ = ("callback",)

    def __init__(self, callback: Any) -> None:
        self.callback = callback


async def _deliver(kind: str, subscribers: list[_Subscription], *args: Any) -> None:
    for entry in list(subscribers):
        try:
            result = entry.callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            logger.exception("room_event_subscriber_failed kind=%s", kind)
