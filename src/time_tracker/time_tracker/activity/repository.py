from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, Sequence

from ..core.enums import ActivityType
from .model import ActivityLog


class ActivityLogRepository(Protocol):
    """Append-only ledger. There is intentionally no update or delete method."""

    def append(
        self,
        *,
        user_id: int,
        activity_type: ActivityType,
        timestamp: datetime,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        raise NotImplementedError

    def list_recent_for_user(self, user_id: int, limit: int) -> Sequence[ActivityLog]:
        """Newest first; equal timestamps ordered by insertion, newest first."""

        raise NotImplementedError
