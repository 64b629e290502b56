"""Parser for JSON frames pushed by the backend over the event channel."""

from __future__ import annotations

import json
import logging

from pydantic import TypeAdapter, ValidationError

from room_bots.application.dto.bot_models import ROOM_EVENT_TYPES, RoomEvent

_ROOM_EVENT_ADAPTER: TypeAdapter[RoomEvent] = TypeAdapter(RoomEvent)

logger = logging.getLogger(__name__)


def parse_room_event(frame: str | bytes) -> RoomEvent | None:
    """Parse one backend frame into a typed room event.

    Returns ``None`` for malformed frames and for event types this client does not
    handle.
    """

    try:
        decoded = json.loads(frame)
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("backend_frame_invalid_json frame=%r", _preview(frame))
        return None

    if not isinstance(decoded, dict):
        logger.warning("backend_frame_not_object frame=%r", _preview(frame))
        return None

    event_type = decoded.get("type")
    if event_type not in ROOM_EVENT_TYPES:
        logger.debug("backend_frame_ignored type=%r", event_type)
        return None

    try:
        return _ROOM_EVENT_ADAPTER.validate_python(decoded)
    except ValidationError as error:
        logger.warning(
            "backend_frame_invalid type=%s errors=%s",
            event_type,
            error.error_count(),
        )
        return None


def _preview(frame: str | bytes) -> str | bytes:
    return frame[:200]
