"""Deterministic prompt rendering for bot chat replies."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from room_bots.application.dto.bot_models import ConversationMessage, PersonalityConfig
from room_bots.application.services.turn_taking import HISTORY_WINDOW, recent_history


@dataclass(frozen=True)
class ReplyPrompt:
    """System and user prompt pair sent to the LLM for one reply."""

    system_prompt: str
    user_prompt: str


def render_history(
    history: Sequence[ConversationMessage],
    *,
    window: int = HISTORY_WINDOW,
) -> str:
    """Render the most recent history entries as ``author: text`` lines."""

    recent = recent_history(history, window=window)
    return "\n".join(f"{message.author}: {message.text}" for message in recent)


def build_reply_prompt(
    *,
    personality: PersonalityConfig,
    history: Sequence[ConversationMessage],
    bot_name: str,
) -> ReplyPrompt:
    """Build the prompt pair asking the bot for its next chat line."""

    system_prompt = (
        f"You are an IMVU chat bot named {bot_name}. "
        "Your personality is strictly defined by these traits:\n"
        f"- Style: {personality.style}\n"
        f"- Humor Level (0-100): {personality.humor}\n"
        f"- Aggressiveness (0-100): {personality.aggressiveness}\n"
        f"- Creativity (0-100): {personality.creativity}\n"
        f"- Behavior: {personality.behavior}\n"
        f"- Mode: {personality.mode}\n"
        f"- Language: {personality.language}\n"
        "\n"
        "Based on this personality, you must continue the following conversation.\n"
        "Your response should be a single, short chat message. "
        "Do not use your name in the response."
    )
    user_prompt = (
        "Conversation History:\n"
        f"{render_history(history)}\n"
        "\n"
        f"{bot_name}:"
    )
    return ReplyPrompt(system_prompt=system_prompt, user_prompt=user_prompt)
