"""HTTP adapter for the bot backend's login and room endpoints."""

from __future__ import annotations

import json
from typing import Any, cast
from urllib.parse import quote

from room_bots.application.dto.bot_models import RoomSummary
from room_bots.infrastructure.http_transport import (
    HttpTransportPort,
    UrllibHttpTransport,
    preview_body,
)


class BackendAdapterError(RuntimeError):
    """Raised for normalized backend adapter failures."""


class BackendHttpClient:
    """Backend REST adapter for bot login, room membership and messaging."""

    def __init__(
        self,
        *,
        base_url: str,
        transport: HttpTransportPort | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport or UrllibHttpTransport()
        self._timeout_seconds = timeout_seconds

    async def login(self, *, username: str, password: str) -> None:
        """Log a bot account in; raises when the backend rejects it."""

        await self._request_json(
            operation="login",
            method="POST",
            path="/login",
            payload={"username": username, "password": password},
            require_success=True,
        )

    async def logout(self, *, bot_id: str) -> None:
        """Log a bot out of the backend."""

        await self._request_json(
            operation="logout",
            method="POST",
            path=f"/bots/{_segment(bot_id)}/logout",
            payload=None,
        )

    async def search_rooms(self, *, bot_id: str) -> list[RoomSummary]:
        """Return the public rooms visible to the bot."""

        response = await self._request_json(
            operation="search_rooms",
            method="GET",
            path=f"/bots/{_segment(bot_id)}/rooms/search",
            payload=None,
            require_success=True,
        )
        return _extract_rooms(response=response)

    async def join_room(self, *, bot_id: str, room_name: str) -> str:
        """Join a room by name and return its backend room id."""

        response = await self._request_json(
            operation="join_room",
            method="POST",
            path=f"/bots/{_segment(bot_id)}/rooms/join",
            payload={"room": room_name},
            require_success=True,
        )
        room_id = _id_text(response.get("roomId"))
        if room_id is None:
            raise BackendAdapterError("join_room response missing roomId")
        return room_id

    async def leave_room(self, *, bot_id: str, room_id: str) -> None:
        """Leave a previously joined room."""

        await self._request_json(
            operation="leave_room",
            method="POST",
            path=f"/bots/{_segment(bot_id)}/rooms/{_segment(room_id)}/leave",
            payload=None,
        )

    async def send_message(self, *, bot_id: str, room_id: str, text: str) -> None:
        """Post a chat message into a room as the bot."""

        await self._request_json(
            operation="send_message",
            method="POST",
            path=f"/bots/{_segment(bot_id)}/rooms/{_segment(room_id)}/send",
            payload={"message": text},
        )

    async def _request_json(
        self,
        *,
        operation: str,
        method: str,
        path: str,
        payload: dict[str, object] | None,
        require_success: bool = False,
    ) -> dict[str, object]:
        body = (
            json.dumps(payload, ensure_ascii=False).encode("utf-8")
            if payload is not None
            else None
        )
        headers: dict[str, str] = {"Accept": "application/json"}
        if payload is not None:
            headers["Content-Type"] = "application/json"

        url = f"{self._base_url}{path}"
        try:
            response = await self._transport.request(
                method=method,
                url=url,
                headers=headers,
                body=body,
                timeout_seconds=self._timeout_seconds,
            )
        except Exception as error:  # noqa: BLE001
            raise BackendAdapterError(f"{operation} transport failure: {error}") from error

        decoded = _decode_json_object(response.body_bytes)
        if response.status_code < 200 or response.status_code >= 300:
            details = _error_text(decoded) or preview_body(response.body_bytes)
            raise BackendAdapterError(
                f"{operation} failed with status {response.status_code}: {details}"
            )

        if decoded is None:
            if require_success:
                raise BackendAdapterError(f"{operation} returned invalid JSON payload")
            return {}

        if require_success and decoded.get("success") is not True:
            raise BackendAdapterError(_error_text(decoded) or "Unknown error")
        return decoded


def _segment(value: str) -> str:
    return quote(value, safe="")


def _decode_json_object(payload: bytes) -> dict[str, object] | None:
    if not payload:
        return None
    try:
        decoded = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(decoded, dict):
        return None
    return cast("dict[str, object]", decoded)


def _error_text(decoded: dict[str, object] | None) -> str | None:
    if decoded is None:
        return None
    error = decoded.get("error")
    if isinstance(error, str) and error:
        return error
    return None


def _extract_rooms(*, response: dict[str, Any]) -> list[RoomSummary]:
    rooms = response.get("rooms")
    if not isinstance(rooms, list):
        raise BackendAdapterError("search_rooms response missing rooms")

    extracted: list[RoomSummary] = []
    for room in rooms:
        if not isinstance(room, dict):
            continue
        room_id = _id_text(room.get("id"))
        name = room.get("name")
        if room_id is None or not isinstance(name, str):
            continue
        extracted.append(RoomSummary(id=room_id, name=name))
    return extracted


def _id_text(value: object) -> str | None:
    """Return a backend id as text; the backend may send ids as strings or numbers."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None
