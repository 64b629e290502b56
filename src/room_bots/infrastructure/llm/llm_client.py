"""Generic LLM client protocol and a static test double."""

from __future__ import annotations

from typing import Protocol


class LlmClientPort(Protocol):
    """Protocol for one-shot text completion against a hosted LLM."""

    async def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        """Return completion text for the supplied prompts."""


class StaticLlmClient:
    """Test-friendly client returning fixed text and recording prompts."""

    def __init__(self, response_text: str) -> None:
        self._response_text = response_text
        self.calls: list[tuple[str, str]] = []

    async def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        return self._response_text
