"""Reply generation, room summaries, emotion tags and two-bot turn coordination."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Mapping, Sequence

from room_bots.application.dto.bot_models import (
    AiProvider,
    BotIdentity,
    ConversationMessage,
    DialogueTurn,
    PersonalityConfig,
)
from room_bots.application.services.reply_strategies import (
    MockReplyStrategy,
    ReplyStrategyPort,
    SleepCallable,
)
from room_bots.application.services.turn_taking import select_next_speaker

QUIET_ROOM_SUMMARY = "The room is quiet."
EMOTION_LABELS: tuple[str, ...] = ("happy", "neutral", "curious")

logger = logging.getLogger(__name__)


class ResponseGenerator:
    """Routes reply requests to the strategy selected by each bot's provider.

    Providers without a registered strategy (for example Gemini without an API key)
    fall back to the mock strategy.
    """

    _SUMMARY_DELAY_SECONDS = 0.3
    _EMOTION_DELAY_SECONDS = 0.2
    _COORDINATION_DELAY_SECONDS = 1.0

    def __init__(
        self,
        *,
        strategies: Mapping[AiProvider, ReplyStrategyPort] | None = None,
        mock_strategy: ReplyStrategyPort | None = None,
        rng: random.Random | None = None,
        sleep: SleepCallable = asyncio.sleep,
    ) -> None:
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._mock_strategy = mock_strategy or MockReplyStrategy(rng=self._rng, sleep=sleep)
        self._strategies = dict(strategies or {})
        self._strategies.setdefault(AiProvider.MOCK, self._mock_strategy)

    def strategy_for(self, provider: AiProvider) -> ReplyStrategyPort:
        """Return the strategy serving ``provider``, or the mock strategy."""

        strategy = self._strategies.get(provider)
        if strategy is None:
            logger.warning(
                "reply_provider_unavailable provider=%s fallback=mock",
                provider.value,
            )
            return self._mock_strategy
        return strategy

    async def generate_reply(
        self,
        *,
        personality: PersonalityConfig,
        history: Sequence[ConversationMessage],
        bot_name: str,
        provider: AiProvider,
    ) -> str:
        """Return one short chat line for the bot; never raises."""

        strategy = self.strategy_for(provider)
        return await strategy.generate(
            personality=personality,
            history=history,
            bot_name=bot_name,
        )

    async def summarize_room(self, history: Sequence[ConversationMessage]) -> str:
        """Return a one-sentence summary naming the last author and their text."""

        await self._sleep(self._SUMMARY_DELAY_SECONDS)
        if not history:
            return QUIET_ROOM_SUMMARY
        last_message = history[-1]
        return (
            f'The last message was from {last_message.author}: "{last_message.text}". '
            "The conversation seems casual."
        )

    async def detect_emotion(self, text: str) -> str:
        """Return an emotion label; the current implementation ignores ``text``."""

        _ = text
        await self._sleep(self._EMOTION_DELAY_SECONDS)
        return self._rng.choice(EMOTION_LABELS)

    async def coordinate_dialogue(
        self,
        *,
        bot_a: BotIdentity,
        bot_b: BotIdentity,
        history: Sequence[ConversationMessage],
    ) -> DialogueTurn:
        """Pick the bot whose turn it is and generate its message."""

        await self._sleep(self._COORDINATION_DELAY_SECONDS)
        speaker = select_next_speaker(bot_a=bot_a, bot_b=bot_b, history=history)
        message = await self.generate_reply(
            personality=speaker.personality,
            history=history,
            bot_name=speaker.name,
            provider=speaker.ai_provider,
        )
        return DialogueTurn(bot_to_speak=speaker.id, message=message)
