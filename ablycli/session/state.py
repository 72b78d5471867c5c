"""Channel session lifecycle states."""

from __future__ import annotations

from enum import Enum

from ..errors import SessionStateError


class SessionState(str, Enum):
    START = "start"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUBSCRIBING = "subscribing"
    LISTENING = "listening"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SessionState.STOPPED, SessionState.FAILED)


# Allowed transitions. FAILED and STOPPED are terminal.
TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.START: frozenset(
        {SessionState.CONNECTING, SessionState.SHUTTING_DOWN}
    ),
    SessionState.CONNECTING: frozenset(
        {SessionState.CONNECTED, SessionState.SHUTTING_DOWN, SessionState.FAILED}
    ),
    SessionState.CONNECTED: frozenset(
        {SessionState.SUBSCRIBING, SessionState.SHUTTING_DOWN, SessionState.FAILED}
    ),
    SessionState.SUBSCRIBING: frozenset(
        {SessionState.LISTENING, SessionState.SHUTTING_DOWN, SessionState.FAILED}
    ),
    SessionState.LISTENING: frozenset(
        {SessionState.SHUTTING_DOWN, SessionState.FAILED}
    ),
    SessionState.SHUTTING_DOWN: frozenset(
        {SessionState.STOPPED, SessionState.FAILED}
    ),
    SessionState.STOPPED: frozenset(),
    SessionState.FAILED: frozenset(),
}


def check_transition(current: SessionState, new: SessionState) -> None:
    """Raise SessionStateError if ``current -> new`` is not allowed."""
    if new not in TRANSITIONS[current]:
        raise SessionStateError(
            f"Cannot move session from {current.value} to {new.value}"
        )
