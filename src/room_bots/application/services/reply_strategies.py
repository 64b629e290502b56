"""Interchangeable strategies producing one chat line for a bot."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from room_bots.application.dto.bot_models import ConversationMessage, PersonalityConfig
from room_bots.application.services.prompt_builder import build_reply_prompt
from room_bots.infrastructure.llm.llm_client import LlmClientPort

SleepCallable = Callable[[float], Awaitable[None]]

FILLER_PHRASES: tuple[str, ...] = (
    "lol that's funny",
    "idk",
    "cool",
    "what do you mean?",
    "nice outfit!",
)
APOLOGY_REPLY = "I'm not sure what to say."

logger = logging.getLogger(__name__)


class ReplyStrategyPort(Protocol):
    """Produces one short chat line from personality and history."""

    async def generate(
        self,
        *,
        personality: PersonalityConfig,
        history: Sequence[ConversationMessage],
        bot_name: str,
    ) -> str:
        """Return the bot's next chat line; never raises."""


class MockReplyStrategy:
    """Filler-phrase strategy with simulated latency."""

    def __init__(
        self,
        *,
        min_delay_seconds: float = 0.5,
        max_delay_seconds: float = 1.0,
        rng: random.Random | None = None,
        sleep: SleepCallable = asyncio.sleep,
        phrases: Sequence[str] = FILLER_PHRASES,
    ) -> None:
        if min_delay_seconds < 0 or max_delay_seconds < min_delay_seconds:
            raise ValueError("delay window must satisfy 0 <= min <= max")
        if not phrases:
            raise ValueError("phrases must not be empty")
        self._min_delay_seconds = min_delay_seconds
        self._max_delay_seconds = max_delay_seconds
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._phrases = tuple(phrases)

    async def generate(
        self,
        *,
        personality: PersonalityConfig,
        history: Sequence[ConversationMessage],
        bot_name: str,
    ) -> str:
        _ = personality, history, bot_name
        await self._sleep(self._rng.uniform(self._min_delay_seconds, self._max_delay_seconds))
        return self._rng.choice(self._phrases)


class LlmReplyStrategy:
    """LLM-backed strategy: one completion call, first line only."""

    def __init__(self, *, llm_client: LlmClientPort) -> None:
        self._llm_client = llm_client

    async def generate(
        self,
        *,
        personality: PersonalityConfig,
        history: Sequence[ConversationMessage],
        bot_name: str,
    ) -> str:
        prompt = build_reply_prompt(personality=personality, history=history, bot_name=bot_name)
        try:
            raw_text = await self._llm_client.complete(
                system_prompt=prompt.system_prompt,
                user_prompt=prompt.user_prompt,
            )
        except Exception as error:  # noqa: BLE001
            logger.error("llm_reply_failed bot_name=%s error=%s", bot_name, error)
            return APOLOGY_REPLY

        return first_chat_line(raw_text) or FILLER_PHRASES[0]


def first_chat_line(text: str) -> str:
    """Return the first line of stripped model output."""

    return text.strip().split("\n")[0]
