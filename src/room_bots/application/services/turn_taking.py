"""Strict alternation between two bots sharing a conversation."""

from __future__ import annotations

from collections.abc import Sequence

from room_bots.application.dto.bot_models import BotIdentity, ConversationMessage

HISTORY_WINDOW = 10


def recent_history(
    history: Sequence[ConversationMessage],
    *,
    window: int = HISTORY_WINDOW,
) -> list[ConversationMessage]:
    """Return the most recent ``window`` entries in chronological order."""

    if window <= 0:
        return []
    return list(history[-window:])


def last_speaker_id(history: Sequence[ConversationMessage], *, default: str) -> str:
    """Return the author id of the final history entry, or ``default`` when empty."""

    if not history:
        return default
    return history[-1].author_id


def select_next_speaker(
    *,
    bot_a: BotIdentity,
    bot_b: BotIdentity,
    history: Sequence[ConversationMessage],
) -> BotIdentity:
    """Return the bot whose turn it is.

    Bot A answers bot B, and bot B answers anyone else. An empty history counts
    bot B as the last speaker, so bot A opens.
    """

    if last_speaker_id(history, default=bot_b.id) == bot_b.id:
        return bot_a
    return bot_b
