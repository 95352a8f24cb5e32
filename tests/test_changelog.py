from datetime import datetime

import pytest
import pytz

from tracker_app.core.changelog import ChangeEntry, ChangeLog
from tracker_app.core.errors import InvalidEntityError


def _utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


def _sample_entries():
    return [
        ChangeEntry(_utc(2024, 10, 22, 10), "status", "In Progress", "Done"),
        ChangeEntry(_utc(2024, 10, 21, 10), "status", "Backlog", "In Progress"),
        ChangeEntry(_utc(2024, 10, 21, 11), "Epic Child", None, "KEY-2"),
        ChangeEntry(_utc(2024, 10, 21, 12), "labels", None, "x"),
    ]


def test_entries_sorted_chronologically():
    log = ChangeLog(_sample_entries(), entity_key="KEY-1")
    instants = [e.occurred_at for e in log]
    assert instants == sorted(instants)
    assert log.first().to_value == "In Progress"
    assert log.last().to_value == "Done"
    assert len(log) == 4


def test_for_field_filters_and_keeps_order():
    log = ChangeLog(_sample_entries(), entity_key="KEY-1")
    status = log.for_field("status")
    assert [e.to_value for e in status] == ["In Progress", "Done"]
    assert status.entity_key == "KEY-1"
    assert not log.for_field("priority")
    assert log.fields() == {"status", "Epic Child", "labels"}


def test_identical_timestamps_keep_input_order():
    t = _utc(2024, 10, 21, 10)
    log = ChangeLog(
        [
            ChangeEntry(t, "status", "Backlog", "In Progress"),
            ChangeEntry(t, "status", "In Progress", "Review"),
        ]
    )
    assert [e.to_value for e in log] == ["In Progress", "Review"]


def test_change_before_creation_is_rejected():
    with pytest.raises(InvalidEntityError) as excinfo:
        ChangeLog(_sample_entries(), entity_key="KEY-7", created_at=_utc(2024, 10, 22, 0))
    assert excinfo.value.entity_key == "KEY-7"
    assert "KEY-7" in str(excinfo.value)


def test_undated_change_is_rejected():
    with pytest.raises(InvalidEntityError):
        ChangeLog([ChangeEntry(None, "status", "Backlog", "Done")], entity_key="KEY-1")


def test_empty_log():
    log = ChangeLog()
    assert len(log) == 0
    assert log.first() is None
    assert list(log) == []


def test_naive_timestamps_are_treated_as_utc():
    log = ChangeLog(
        [
            ChangeEntry(datetime(2024, 10, 21, 12), "status", "In Progress", "Done"),
            ChangeEntry(datetime(2024, 10, 21, 10), "status", "Backlog", "In Progress"),
        ],
        entity_key="KEY-1",
        created_at=_utc(2024, 10, 21, 9),
    )
    assert [e.occurred_at for e in log] == [_utc(2024, 10, 21, 10), _utc(2024, 10, 21, 12)]
    assert all(e.occurred_at.tzinfo is not None for e in log)


def test_naive_change_before_aware_creation_is_rejected():
    with pytest.raises(InvalidEntityError) as excinfo:
        ChangeLog(
            [ChangeEntry(datetime(2024, 10, 21, 8), "status", "Backlog", "In Progress")],
            entity_key="KEY-3",
            created_at=_utc(2024, 10, 21, 9),
        )
    assert excinfo.value.entity_key == "KEY-3"
