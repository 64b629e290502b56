"""Connection states and allowed transitions for the backend event channel."""

from __future__ import annotations

from enum import StrEnum
from typing import Final


class ConnectionState(StrEnum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class InvalidConnectionTransitionError(ValueError):
    """Raised when the channel attempts a transition the state machine forbids."""


_ALLOWED_TRANSITIONS: Final[dict[ConnectionState, frozenset[ConnectionState]]] = {
    ConnectionState.CONNECTING: frozenset({ConnectionState.OPEN, ConnectionState.CLOSED}),
    ConnectionState.OPEN: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset({ConnectionState.CONNECTING}),
}


def can_transition(from_state: ConnectionState, to_state: ConnectionState) -> bool:
    """Return whether the channel may move between the two states."""

    return to_state in _ALLOWED_TRANSITIONS[from_state]


def assert_transition(from_state: ConnectionState, to_state: ConnectionState) -> None:
    """Assert a transition is allowed, else raise a domain error."""

    if not can_transition(from_state, to_state):
        raise InvalidConnectionTransitionError(
            f"Invalid connection state transition: {from_state.value} -> {to_state.value}"
        )
