"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, HttpUrl, WebsocketUrl, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeFloat = Annotated[float, Field(ge=0.0)]
PositiveFloat = Annotated[float, Field(gt=0.0)]
PositiveInt = Annotated[int, Field(gt=0)]
TemperatureFloat = Annotated[float, Field(ge=0.0, le=2.0)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    )
    gemini_model: NonEmptyStr = Field(
        default="gemini-2.5-flash",
        validation_alias="GEMINI_MODEL",
    )
    gemini_temperature: TemperatureFloat | None = Field(
        default=None,
        validation_alias="GEMINI_TEMPERATURE",
    )
    gemini_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        validation_alias="GEMINI_TIMEOUT_SECONDS",
    )
    backend_url: HttpUrl = Field(
        default="http://localhost:3001",
        validation_alias="BACKEND_URL",
    )
    backend_ws_url: WebsocketUrl = Field(
        default="ws://localhost:3001/ws",
        validation_alias="BACKEND_WS_URL",
    )
    backend_timeout_seconds: PositiveFloat = Field(
        default=10.0,
        validation_alias="BACKEND_TIMEOUT_SECONDS",
    )
    backend_reconnect_delay_seconds: NonNegativeFloat = Field(
        default=3.0,
        validation_alias="BACKEND_RECONNECT_DELAY_SECONDS",
    )
    backend_reconnect_max_attempts: PositiveInt | None = Field(
        default=None,
        validation_alias="BACKEND_RECONNECT_MAX_ATTEMPTS",
    )
    mock_reply_min_delay_seconds: NonNegativeFloat = Field(
        default=0.5,
        validation_alias="MOCK_REPLY_MIN_DELAY_SECONDS",
    )
    mock_reply_max_delay_seconds: NonNegativeFloat = Field(
        default=1.0,
        validation_alias="MOCK_REPLY_MAX_DELAY_SECONDS",
    )
    dialogue_bots_file: NonEmptyStr | None = Field(
        default=None,
        validation_alias="DIALOGUE_BOTS_FILE",
    )
    dialogue_room: NonEmptyStr | None = Field(
        default=None,
        validation_alias="DIALOGUE_ROOM",
    )
    dialogue_turn_interval_seconds: NonNegativeFloat = Field(
        default=5.0,
        validation_alias="DIALOGUE_TURN_INTERVAL_SECONDS",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @model_validator(mode="after")
    def _check_mock_delay_window(self) -> "Settings":
        if self.mock_reply_min_delay_seconds > self.mock_reply_max_delay_seconds:
            raise ValueError(
                "MOCK_REPLY_MIN_DELAY_SECONDS must not exceed MOCK_REPLY_MAX_DELAY_SECONDS"
            )
        return self

    @property
    def llm_configured(self) -> bool:
        """Return whether an LLM credential is available."""

        return self.gemini_api_key is not None and bool(self.gemini_api_key.strip())

    @property
    def dialogue_configured(self) -> bool:
        """Return whether the two-bot dialogue runtime has everything it needs."""

        return self.dialogue_bots_file is not None and self.dialogue_room is not None


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()
