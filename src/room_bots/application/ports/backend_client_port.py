"""Port for request-style calls against the bot backend."""

from __future__ import annotations

from typing import Protocol

from room_bots.application.dto.bot_models import RoomSummary


class BackendClientPort(Protocol):
    """Async backend operations; implementations raise on any failure."""

    async def login(self, *, username: str, password: str) -> None:
        """Log a bot account in."""

    async def logout(self, *, bot_id: str) -> None:
        """Log a bot out."""

    async def search_rooms(self, *, bot_id: str) -> list[RoomSummary]:
        """Return public rooms visible to the bot."""

    async def join_room(self, *, bot_id: str, room_name: str) -> str:
        """Join a room by name and return its id."""

    async def leave_room(self, *, bot_id: str, room_id: str) -> None:
        """Leave a joined room."""

    async def send_message(self, *, bot_id: str, room_id: str, text: str) -> None:
        """Post a chat message as the bot."""
