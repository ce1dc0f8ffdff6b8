from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from ..core.enums import ActivityType


@dataclass(frozen=True)
class ActivityLog:
    """Domain entity: one immutable entry of a user's activity ledger."""

    log_id: int
    user_id: int
    activity_type: ActivityType
    timestamp: datetime
    metadata: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ActivityEvent:
    """A ledger entry that has not been stored yet.

    Session writes carry these so the entries commit together with the session row.
    """

    activity_type: ActivityType
    timestamp: datetime
    metadata: Optional[Mapping[str, Any]] = None

    def metadata_for_session(self, session_id: int) -> Dict[str, Any]:
        merged = dict(self.metadata or {})
        merged["session_id"] = session_id
        return merged
