"""Pydantic models for bots, conversation history and backend room events."""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field


class FrozenModel(BaseModel):
    # Backend ids arrive as strings or numbers.
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class AiProvider(StrEnum):
    """Backend that produces a bot's chat text."""

    GEMINI = "gemini"
    MOCK = "mock"


_LEGACY_PROVIDER_NAMES = {"gpt": AiProvider.MOCK}


def _normalize_provider(value: Any) -> Any:
    """Map provider names used by older bot files onto current providers."""

    if isinstance(value, str):
        return _LEGACY_PROVIDER_NAMES.get(value.strip().lower(), value)
    return value


class PersonalityConfig(FrozenModel):
    style: str
    humor: int = Field(ge=0, le=100)
    aggressiveness: int = Field(ge=0, le=100)
    creativity: int = Field(ge=0, le=100)
    behavior: str
    mode: str
    language: str


class ConversationMessage(FrozenModel):
    """One chat line as seen by bots and the backend."""

    author: str
    author_id: str = Field(alias="authorId")
    text: str
    id: str | None = None
    room_id: str | None = Field(default=None, alias="roomId")
    timestamp: str | int | float | None = None


class BotIdentity(FrozenModel):
    id: str
    name: str
    personality: PersonalityConfig
    ai_provider: Annotated[AiProvider, BeforeValidator(_normalize_provider)] = Field(
        default=AiProvider.MOCK,
        alias="aiProvider",
    )
    username: str | None = None
    password: str | None = None


class RoomUser(FrozenModel):
    id: str
    name: str = Field(validation_alias=AliasChoices("name", "username"))


class RoomSummary(FrozenModel):
    id: str
    name: str


class UserJoinedData(FrozenModel):
    room_id: str = Field(alias="roomId")
    user: RoomUser


class UserLeftData(FrozenModel):
    room_id: str = Field(alias="roomId")
    user_id: str = Field(alias="userId")
    username: str


class MessageEvent(FrozenModel):
    type: Literal["message"]
    data: ConversationMessage


class UserJoinedEvent(FrozenModel):
    type: Literal["user_joined"]
    data: UserJoinedData


class UserLeftEvent(FrozenModel):
    type: Literal["user_left"]
    data: UserLeftData


class LogEvent(FrozenModel):
    type: Literal["log"]
    data: str


RoomEvent = Annotated[
    MessageEvent | UserJoinedEvent | UserLeftEvent | LogEvent,
    Field(discriminator="type"),
]
ROOM_EVENT_TYPES = frozenset({"message", "user_joined", "user_left", "log"})


class DialogueTurn(FrozenModel):
    """Which bot speaks next and what it says."""

    bot_to_speak: str
    message: str
