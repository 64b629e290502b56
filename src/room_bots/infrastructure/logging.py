"""Process logging setup for the bot runner."""

from __future__ import annotations

import logging

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_NOISY_LIBRARY_LOGGERS = ("websockets",)


def configure_logging(*, level: str) -> None:
    """Configure process logging with one format and the requested level.

    Library loggers listed in ``_NOISY_LIBRARY_LOGGERS`` stay at WARNING unless the
    process itself runs at DEBUG.
    """

    normalized_level = level.strip().upper() if level.strip() else "INFO"
    resolved_level = getattr(logging, normalized_level, logging.INFO)

    logging.basicConfig(
        level=resolved_level,
        format=_LOG_FORMAT,
    )
    library_level = resolved_level if resolved_level <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
