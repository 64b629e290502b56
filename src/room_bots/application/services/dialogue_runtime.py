"""Two-bot conversation loop running inside one backend room."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable

from room_bots.application.dto.bot_models import BotIdentity, ConversationMessage, DialogueTurn
from room_bots.application.services.backend_connector import BackendConnector
from room_bots.application.services.response_generator import ResponseGenerator
from room_bots.infrastructure.stoppable_sleep import SleepCallable, sleep_or_stop

HISTORY_CAPACITY = 50

logger = logging.getLogger(__name__)


class DialogueRuntime:
    """Logs two bots into a room and lets them take turns talking."""

    def __init__(
        self,
        *,
        connector: BackendConnector,
        generator: ResponseGenerator,
        bot_a: BotIdentity,
        bot_b: BotIdentity,
        room_name: str,
        turn_interval_seconds: float = 5.0,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        if bot_a.id == bot_b.id:
            raise ValueError("dialogue requires two distinct bots")
        self._connector = connector
        self._generator = generator
        self._bot_a = bot_a
        self._bot_b = bot_b
        self._room_name = room_name
        self._turn_interval_seconds = turn_interval_seconds
        self._sleep = sleep
        self._history: deque[ConversationMessage] = deque(maxlen=HISTORY_CAPACITY)
        self._room_ids: dict[str, str] = {}
        self._unsubscribe_message: Callable[[], None] | None = None

    @property
    def history(self) -> list[ConversationMessage]:
        return list(self._history)

    async def start(self) -> bool:
        """Log both bots in and join the room; return whether every step succeeded.

        On failure, bots that already joined leave the room and log out again.
        """

        for bot in (self._bot_a, self._bot_b):
            logged_in = await self._connector.login(
                bot.id,
                bot.username or bot.name,
                bot.password,
            )
            if not logged_in:
                logger.error("dialogue_login_failed bot_id=%s", bot.id)
                await self.stop()
                return False
            room_id = await self._connector.join_room(bot.id, self._room_name)
            if room_id is None:
                logger.error(
                    "dialogue_join_failed bot_id=%s room_name=%s",
                    bot.id,
                    self._room_name,
                )
                await self._connector.logout(bot.id)
                await self.stop()
                return False
            self._room_ids[bot.id] = room_id

        self._unsubscribe_message = self._connector.on_message(self.record_message)
        logger.info(
            "dialogue_started room_name=%s bot_a=%s bot_b=%s",
            self._room_name,
            self._bot_a.id,
            self._bot_b.id,
        )
        return True

    def record_message(self, message: ConversationMessage) -> None:
        """Append an inbound chat message to the shared history.

        Echoes of the bots' own messages are skipped since :meth:`run_once` already
        recorded them, as are messages tagged with another room.
        """

        if message.author_id in self._room_ids:
            return
        if message.room_id is not None and message.room_id not in self._room_ids.values():
            return
        self._history.append(message)

    async def run_once(self) -> DialogueTurn:
        """Play one turn: pick the speaker, generate its line and send it."""

        history = list(self._history)
        turn = await self._generator.coordinate_dialogue(
            bot_a=self._bot_a,
            bot_b=self._bot_b,
            history=history,
        )
        speaker = self._bot_a if turn.bot_to_speak == self._bot_a.id else self._bot_b
        room_id = self._room_ids.get(speaker.id)
        if room_id is not None:
            await self._connector.send_message(speaker.id, room_id, turn.message)
        self._history.append(
            ConversationMessage(author=speaker.name, author_id=speaker.id, text=turn.message)
        )
        logger.info("dialogue_turn bot_id=%s message=%r", speaker.id, turn.message)
        return turn

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Alternate turns until stop_event is set, then leave and log out."""

        try:
            while not stop_event.is_set():
                await self.run_once()
                if stop_event.is_set():
                    break
                await sleep_or_stop(self._sleep, self._turn_interval_seconds, stop_event)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Leave the room and log both bots out."""

        if self._unsubscribe_message is not None:
            self._unsubscribe_message()
            self._unsubscribe_message = None
        for bot_id, room_id in list(self._room_ids.items()):
            await self._connector.leave_room(bot_id, room_id)
            await self._connector.logout(bot_id)
        self._room_ids.clear()
