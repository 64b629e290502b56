"""Gemini `generateContent` adapter implementing the generic LLM client port."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, cast
from urllib.parse import quote

from room_bots.infrastructure.http_transport import (
    HttpTransportPort,
    UrllibHttpTransport,
    preview_body,
)


class GeminiAdapterError(RuntimeError):
    """Raised for normalized Gemini adapter failures."""


class GeminiGenerateContentClient:
    """Gemini `models/{model}:generateContent` adapter for chat reply generation."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float | None = None,
        transport: HttpTransportPort | None = None,
        timeout_seconds: float = 30.0,
        base_url: str = "https://generativelanguage.googleapis.com",
    ) -> None:
        api_key_value = api_key.strip()
        model_value = model.strip()
        if not api_key_value:
            raise ValueError("api_key must be a non-empty string")
        if not model_value:
            raise ValueError("model must be a non-empty string")
        if temperature is not None and not (0.0 <= temperature <= 2.0):
            raise ValueError("temperature must be between 0.0 and 2.0")

        self._api_key = api_key_value
        self._model = model_value
        self._temperature = temperature
        self._transport = transport or UrllibHttpTransport()
        self._timeout_seconds = timeout_seconds
        self._base_url = base_url.rstrip("/")

    @property
    def model_name(self) -> str:
        """Return configured Gemini model name for this client instance."""

        return self._model

    async def complete(self, *, system_prompt: str, user_prompt: str) -> str:
        """Return the first candidate's text for the supplied prompts."""

        payload: dict[str, object] = {
            "systemInstruction": {"parts": [{"text": system_prompt}]},
            "contents": [{"role": "user", "parts": [{"text": user_prompt}]}],
        }
        if self._temperature is not None:
            payload["generationConfig"] = {"temperature": self._temperature}

        path = f"/v1beta/models/{quote(self._model, safe='')}:generateContent"
        response = await self._request_json(
            operation="generate_content",
            path=path,
            payload=payload,
        )
        return _extract_candidate_text(response=response)

    async def _request_json(
        self,
        *,
        operation: str,
        path: str,
        payload: dict[str, object],
    ) -> dict[str, object]:
        headers = {
            "x-goog-api-key": self._api_key,
            "Content-Type": "application/json",
        }
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        try:
            response = await self._transport.request(
                method="POST",
                url=f"{self._base_url}{path}",
                headers=headers,
                body=body,
                timeout_seconds=self._timeout_seconds,
            )
        except Exception as error:  # noqa: BLE001
            raise GeminiAdapterError(f"{operation} transport failure") from error

        if response.status_code < 200 or response.status_code >= 300:
            details = preview_body(response.body_bytes)
            raise GeminiAdapterError(
                f"{operation} failed with status {response.status_code}: {details}"
            )

        try:
            decoded = json.loads(response.body_bytes.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as error:
            raise GeminiAdapterError(f"{operation} returned invalid JSON payload") from error
        if not isinstance(decoded, dict):
            raise GeminiAdapterError(f"{operation} returned non-object JSON payload")
        return cast("dict[str, object]", decoded)


def _extract_candidate_text(*, response: Mapping[str, Any]) -> str:
    candidates = response.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise GeminiAdapterError("generate_content response missing candidates")

    first_candidate = candidates[0]
    if not isinstance(first_candidate, Mapping):
        raise GeminiAdapterError("generate_content response has invalid candidates payload")

    content = first_candidate.get("content")
    if not isinstance(content, Mapping):
        raise GeminiAdapterError("generate_content response missing content payload")

    parts = content.get("parts")
    if not isinstance(parts, list):
        raise GeminiAdapterError("generate_content response missing content parts")

    text_parts: list[str] = []
    for part in parts:
        if not isinstance(part, Mapping):
            continue
        text_value = part.get("text")
        if isinstance(text_value, str):
            text_parts.append(text_value)
    return "".join(text_parts)

