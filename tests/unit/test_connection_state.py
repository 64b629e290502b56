import pytest

from room_bots.domain.connection_state import (
    ConnectionState,
    InvalidConnectionTransitionError,
    assert_transition,
    can_transition,
)


def test_lifecycle_transitions_are_allowed() -> None:
    assert can_transition(ConnectionState.CLOSED, ConnectionState.CONNECTING)
    assert can_transition(ConnectionState.CONNECTING, ConnectionState.OPEN)
    assert can_transition(ConnectionState.CONNECTING, ConnectionState.CLOSED)
    assert can_transition(ConnectionState.OPEN, ConnectionState.CLOSED)


def test_open_cannot_jump_back_to_connecting() -> None:
    assert not can_transition(ConnectionState.OPEN, ConnectionState.CONNECTING)

    with pytest.raises(InvalidConnectionTransitionError) as exc_info:
        assert_transition(ConnectionState.OPEN, ConnectionState.CONNECTING)

    assert "open -> connecting" in str(exc_info.value)


def test_closed_cannot_open_without_connecting() -> None:
    with pytest.raises(InvalidConnectionTransitionError):
        assert_transition(ConnectionState.CLOSED, ConnectionState.OPEN)
