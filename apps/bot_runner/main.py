"""bot-runner entrypoint."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter

from room_bots.application.dto.bot_models import AiProvider, BotIdentity
from room_bots.application.ports.backend_client_port import BackendClientPort
from room_bots.application.services.backend_connector import BackendConnector
from room_bots.application.services.dialogue_runtime import DialogueRuntime
from room_bots.application.services.reply_strategies import (
    LlmReplyStrategy,
    MockReplyStrategy,
    ReplyStrategyPort,
)
from room_bots.application.services.response_generator import ResponseGenerator
from room_bots.config.settings import Settings, load_settings
from room_bots.infrastructure.backend.event_channel import BackendEventChannel, ReconnectPolicy
from room_bots.infrastructure.backend.http_client import BackendHttpClient
from room_bots.infrastructure.llm.gemini_client import GeminiGenerateContentClient
from room_bots.infrastructure.llm.llm_client import LlmClientPort
from room_bots.infrastructure.logging import configure_logging

_BOT_LIST_ADAPTER: TypeAdapter[list[BotIdentity]] = TypeAdapter(list[BotIdentity])
logger = logging.getLogger(__name__)
backend_log = logging.getLogger("room_bots.backend")


@dataclass(frozen=True)
class BotRunnerRuntime:
    """Composed bot-runner runtime dependencies."""

    settings: Settings
    generator: ResponseGenerator
    connector: BackendConnector
    event_channel: BackendEventChannel
    dialogue: DialogueRuntime | None


def build_response_generator(
    *,
    settings: Settings,
    llm_client: LlmClientPort | None = None,
) -> ResponseGenerator:
    """Build the reply generator; Gemini is registered only when a key is configured."""

    mock_strategy = MockReplyStrategy(
        min_delay_seconds=settings.mock_reply_min_delay_seconds,
        max_delay_seconds=settings.mock_reply_max_delay_seconds,
    )
    strategies: dict[AiProvider, ReplyStrategyPort] = {AiProvider.MOCK: mock_strategy}

    runtime_llm_client = llm_client
    if runtime_llm_client is None and settings.llm_configured:
        runtime_llm_client = GeminiGenerateContentClient(
            api_key=settings.gemini_api_key or "",
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
            timeout_seconds=settings.gemini_timeout_seconds,
        )
    if runtime_llm_client is not None:
        strategies[AiProvider.GEMINI] = LlmReplyStrategy(llm_client=runtime_llm_client)
    else:
        logger.warning(
            "llm_not_configured provider=%s fallback=mock hint=set GEMINI_API_KEY",
            AiProvider.GEMINI.value,
        )

    return ResponseGenerator(strategies=strategies, mock_strategy=mock_strategy)


def build_backend_connector(
    *,
    settings: Settings,
    backend_client: BackendClientPort | None = None,
) -> BackendConnector:
    """Build the backend connector and forward its log lines to process logging."""

    runtime_backend_client = backend_client or BackendHttpClient(
        base_url=str(settings.backend_url),
        timeout_seconds=settings.backend_timeout_seconds,
    )
    connector = BackendConnector(backend_client=runtime_backend_client)
    connector.on_log(backend_log.info)
    return connector


def load_dialogue_bots(path: Path) -> tuple[BotIdentity, BotIdentity]:
    """Read exactly two bot identities from a JSON file."""

    bots = _BOT_LIST_ADAPTER.validate_python(json.loads(path.read_text(encoding="utf-8")))
    if len(bots) != 2:
        raise ValueError(f"{path} must define exactly two bots, found {len(bots)}")
    return bots[0], bots[1]


def build_bot_runner_runtime(
    *,
    settings: Settings | None = None,
    llm_client: LlmClientPort | None = None,
    backend_client: BackendClientPort | None = None,
) -> BotRunnerRuntime:
    """Build runtime wiring for the event channel and optional dialogue."""

    runtime_settings = settings or load_settings()
    generator = build_response_generator(settings=runtime_settings, llm_client=llm_client)
    connector = build_backend_connector(settings=runtime_settings, backend_client=backend_client)
    event_channel = connector.build_event_channel(
        url=str(runtime_settings.backend_ws_url),
        reconnect_policy=ReconnectPolicy(
            delay_seconds=runtime_settings.backend_reconnect_delay_seconds,
            max_attempts=runtime_settings.backend_reconnect_max_attempts,
        ),
    )

    dialogue: DialogueRuntime | None = None
    if runtime_settings.dialogue_bots_file and runtime_settings.dialogue_room:
        bot_a, bot_b = load_dialogue_bots(Path(runtime_settings.dialogue_bots_file))
        dialogue = DialogueRuntime(
            connector=connector,
            generator=generator,
            bot_a=bot_a,
            bot_b=bot_b,
            room_name=runtime_settings.dialogue_room,
            turn_interval_seconds=runtime_settings.dialogue_turn_interval_seconds,
        )

    return BotRunnerRuntime(
        settings=runtime_settings,
        generator=generator,
        connector=connector,
        event_channel=event_channel,
        dialogue=dialogue,
    )


async def run_bot_runner(runtime: BotRunnerRuntime, stop_event: asyncio.Event) -> None:
    """Run the event channel, plus the dialogue when configured, until stopped."""

    channel_task = asyncio.create_task(runtime.event_channel.run_until_stopped(stop_event))
    try:
        if runtime.dialogue is not None and await runtime.dialogue.start():
            await runtime.dialogue.run_until_stopped(stop_event)
        await channel_task
    finally:
        if not channel_task.done():
            stop_event.set()
            channel_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await channel_task


async def _run_bot_runner() -> None:
    settings = load_settings()
    configure_logging(level=settings.log_level)
    logger.info(
        "bot_runner_starting backend_url=%s backend_ws_url=%s llm_configured=%s dialogue=%s",
        settings.backend_url,
        settings.backend_ws_url,
        settings.llm_configured,
        settings.dialogue_configured,
    )
    runtime = build_bot_runner_runtime(settings=settings)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop_event.set)

    await run_bot_runner(runtime, stop_event)
    logger.info("bot_runner_stopped")


def main() -> None:
    """Run the bot-runner until SIGINT or SIGTERM."""

    asyncio.run(_run_bot_runner())


if __name__ == "__main__":
    main()
