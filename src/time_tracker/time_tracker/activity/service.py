from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..common.validators import require_limit
from ..core.constants import DEFAULT_RECENT_ACTIVITY_LIMIT
from ..core.enums import ActivityType
from ..core.exceptions import PersistenceError
from .model import ActivityLog
from .repository import ActivityLogRepository

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Append events to the activity ledger and read bounded snapshots of it.

    ``append`` never rejects an event on business grounds; de-duplication is the
    caller's concern. Only a persistence failure makes it raise.
    """

    def __init__(self, logs: ActivityLogRepository):
        self._logs = logs

    def append(
        self,
        user_id: int,
        activity_type: ActivityType,
        timestamp: datetime,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> int:
        try:
            log_id = self._logs.append(
                user_id=int(user_id),
                activity_type=ActivityType(activity_type),
                timestamp=timestamp,
                metadata=dict(metadata) if metadata else None,
            )
        except PersistenceError:
            logger.exception(
                "activity_append_failed",
                extra={"user_id": user_id, "activity_type": ActivityType(activity_type).value},
            )
            raise
        logger.debug(
            "activity_appended",
            extra={"user_id": user_id, "log_id": log_id, "activity_type": ActivityType(activity_type).value},
        )
        return log_id

    def recent(self, user_id: int, limit: int = DEFAULT_RECENT_ACTIVITY_LIMIT) -> Sequence[ActivityLog]:
        return list(self._logs.list_recent_for_user(int(user_id), require_limit(limit)))
