from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    USER = "user"
    ADMIN = "admin"


class ActivityType(str, Enum):
    """Event types stored in the activity ledger."""

    CHECK_IN = "check-in"
    CHECK_OUT = "check-out"
    IDLE_START = "idle-start"
    IDLE_END = "idle-end"
    ACTIVITY = "activity"


class SessionState(str, Enum):
    """Where a user currently stands in the work-session lifecycle."""

    CHECKED_OUT = "CHECKED_OUT"
    CHECKED_IN = "CHECKED_IN"
    IDLE = "IDLE"


class SessionEvent(str, Enum):
    CHECK_IN = "CHECK_IN"
    ACTIVITY = "ACTIVITY"
    IDLE_START = "IDLE_START"
    IDLE_END = "IDLE_END"
    CHECK_OUT = "CHECK_OUT"
