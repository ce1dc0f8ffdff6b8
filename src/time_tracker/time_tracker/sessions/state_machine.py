"""Transition table of the per-user work-session lifecycle.

Every (state, event) pair is listed exactly once, either as an allowed
``Transition`` or as a rejection, so the table can be checked for completeness.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Type

from ..core.enums import SessionEvent, SessionState
from ..core.exceptions import AlreadyCheckedIn, AlreadyIdle, NoOpenSession, NotIdle, SessionStateError


@dataclass(frozen=True)
class Transition:
    target: SessionState
    closes_idle: bool = False


S = SessionState
E = SessionEvent

TRANSITIONS: Dict[Tuple[SessionState, SessionEvent], Transition] = {
    (S.CHECKED_OUT, E.CHECK_IN): Transition(S.CHECKED_IN),
    (S.CHECKED_IN, E.ACTIVITY): Transition(S.CHECKED_IN),
    (S.CHECKED_IN, E.IDLE_START): Transition(S.IDLE),
    (S.CHECKED_IN, E.CHECK_OUT): Transition(S.CHECKED_OUT),
    (S.IDLE, E.IDLE_END): Transition(S.CHECKED_IN, closes_idle=True),
    (S.IDLE, E.ACTIVITY): Transition(S.CHECKED_IN, closes_idle=True),
    (S.IDLE, E.CHECK_OUT): Transition(S.CHECKED_OUT, closes_idle=True),
}

REJECTIONS: Dict[Tuple[SessionState, SessionEvent], Tuple[Type[SessionStateError], str]] = {
    (S.CHECKED_OUT, E.ACTIVITY): (NoOpenSession, "No open work session"),
    (S.CHECKED_OUT, E.IDLE_START): (NoOpenSession, "No open work session"),
    (S.CHECKED_OUT, E.IDLE_END): (NoOpenSession, "No open work session"),
    (S.CHECKED_OUT, E.CHECK_OUT): (NoOpenSession, "No open work session"),
    (S.CHECKED_IN, E.CHECK_IN): (AlreadyCheckedIn, "Already checked in"),
    (S.CHECKED_IN, E.IDLE_END): (NotIdle, "No idle period is open"),
    (S.IDLE, E.CHECK_IN): (AlreadyCheckedIn, "Already checked in"),
    (S.IDLE, E.IDLE_START): (AlreadyIdle, "Idle tracking is already active"),
}

del S, E


def transition(state: SessionState, event: SessionEvent) -> Transition:
    """Return the allowed transition or raise the matching ``SessionStateError``."""
    key = (SessionState(state), SessionEvent(event))
    allowed = TRANSITIONS.get(key)
    if allowed is not None:
        return allowed

    error_cls, message = REJECTIONS[key]
    raise error_cls(message)
