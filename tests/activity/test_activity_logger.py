from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.time_tracker.time_tracker.activity.service import ActivityLogger
from src.time_tracker.time_tracker.core.constants import MAX_QUERY_LIMIT
from src.time_tracker.time_tracker.core.enums import ActivityType
from src.time_tracker.time_tracker.core.exceptions import PersistenceError, ValidationError


class FailingLogs:
    def append(self, **kwargs):
        raise PersistenceError("database unavailable")

    def list_recent_for_user(self, user_id, limit):
        return []


class RecordingLogs:
    def __init__(self):
        self.last_limit = None

    def list_recent_for_user(self, user_id, limit):
        self.last_limit = limit
        return []


def test_recent_is_newest_first(activity_logger, fixed_now):
    activity_logger.append(1, ActivityType.CHECK_IN, fixed_now)
    activity_logger.append(1, ActivityType.ACTIVITY, fixed_now + timedelta(minutes=5))
    activity_logger.append(1, ActivityType.CHECK_OUT, fixed_now + timedelta(minutes=10))

    logs = activity_logger.recent(1, 10)

    assert [log.activity_type for log in logs] == [
        ActivityType.CHECK_OUT,
        ActivityType.ACTIVITY,
        ActivityType.CHECK_IN,
    ]


def test_equal_timestamps_follow_insertion_order(activity_logger, fixed_now):
    first = activity_logger.append(1, ActivityType.ACTIVITY, fixed_now, {"n": 1})
    second = activity_logger.append(1, ActivityType.ACTIVITY, fixed_now, {"n": 2})
    third = activity_logger.append(1, ActivityType.ACTIVITY, fixed_now, {"n": 3})

    assert [log.log_id for log in activity_logger.recent(1, 10)] == [third, second, first]


def test_recent_is_bounded_and_scoped_to_user(activity_logger, fixed_now):
    for i in range(5):
        activity_logger.append(1, ActivityType.ACTIVITY, fixed_now + timedelta(minutes=i))
    activity_logger.append(2, ActivityType.ACTIVITY, fixed_now + timedelta(hours=1))

    logs = activity_logger.recent(1, 3)

    assert len(logs) == 3
    assert all(log.user_id == 1 for log in logs)
    assert logs[0].timestamp == fixed_now + timedelta(minutes=4)


def test_append_accepts_duplicate_events(activity_logger, fixed_now):
    activity_logger.append(1, ActivityType.IDLE_START, fixed_now)
    activity_logger.append(1, ActivityType.IDLE_START, fixed_now)

    assert len(activity_logger.recent(1, 10)) == 2


def test_metadata_is_copied_on_append(activity_logger, fixed_now):
    metadata = {"app": "editor"}
    activity_logger.append(1, ActivityType.ACTIVITY, fixed_now, metadata)
    metadata["app"] = "browser"

    assert activity_logger.recent(1, 1)[0].metadata == {"app": "editor"}


def test_append_propagates_persistence_errors(fixed_now):
    logger = ActivityLogger(FailingLogs())

    with pytest.raises(PersistenceError):
        logger.append(1, ActivityType.ACTIVITY, fixed_now)


@pytest.mark.parametrize("limit", [0, -1, "x"])
def test_recent_rejects_invalid_limits(activity_logger, limit):
    with pytest.raises(ValidationError):
        activity_logger.recent(1, limit)


def test_recent_caps_large_limits():
    logs = RecordingLogs()

    ActivityLogger(logs).recent(1, 10_000)

    assert logs.last_limit == MAX_QUERY_LIMIT
