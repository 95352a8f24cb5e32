from datetime import datetime

import pytz

from tracker_app.analytics.metrics.status_flow import (
    average_days_by_status,
    build_status_duration_frame,
    customer_sla_frame,
    extract_status_durations,
    resolution_time_records,
)
from tracker_app.core.changelog import ChangeEntry, ChangeLog
from tracker_app.core.clock import FixedClock
from tracker_app.core.models import TrackedEntity
from tracker_app.core.workflow_config import WorkflowPolicy


def _utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


def _entity(key, status, changes, resolved=None):
    created = _utc(2024, 10, 21, 9)
    entries = [ChangeEntry(at, "status", frm, to) for at, frm, to in changes]
    return TrackedEntity(
        key=key,
        created_at=created,
        current_status=status,
        change_log=ChangeLog(entries, entity_key=key, created_at=created),
        resolved_at=resolved,
        summary=f"Summary {key}",
        issue_type="Story",
    )


def _sample_entities():
    return [
        # Mon 9-13 Backlog, Mon 13 - Tue 13 In Progress, done Tue 13
        _entity(
            "KEY-1",
            "Done",
            [(_utc(2024, 10, 21, 13), "Backlog", "In Progress"), (_utc(2024, 10, 22, 13), "In Progress", "Done")],
            resolved=_utc(2024, 10, 22, 13),
        ),
        # Mon 9-17 Backlog, In Progress since Mon 17
        _entity("KEY-2", "In Progress", [(_utc(2024, 10, 21, 17), "Backlog", "In Progress")]),
    ]


CLOCK = FixedClock(_utc(2024, 10, 23, 17))


def test_extract_status_durations_in_days():
    durations = extract_status_durations(_sample_entities()[0], clock=CLOCK)
    assert durations == {"Backlog": 0.5, "In Progress": 1.0, "Done": 0.0}


def test_status_duration_frame():
    frame = build_status_duration_frame(_sample_entities(), clock=CLOCK)
    assert list(frame.columns) == ["key", "status", "duration_days", "is_open"]
    open_rows = frame[frame["key"] == "KEY-2"]
    assert open_rows["is_open"].all()
    in_progress = open_rows[open_rows["status"] == "In Progress"]["duration_days"].iloc[0]
    assert in_progress == 2.0


def test_status_duration_frame_empty():
    assert build_status_duration_frame([], clock=CLOCK).empty


def test_average_days_by_status():
    frame = build_status_duration_frame(_sample_entities(), clock=CLOCK)
    agg = average_days_by_status(frame)
    row = agg[agg["status"] == "Backlog"].iloc[0]
    assert row["mean_days"] == 0.75
    assert row["issues"] == 2
    assert average_days_by_status(frame.iloc[0:0]).empty


def test_resolution_time_records_stop_at_resolution():
    records = resolution_time_records(_sample_entities())
    resolved, open_issue = records
    assert resolved["time_in_states"] == [
        {"status": "Backlog", "days": 0.5},
        {"status": "Done", "days": 0.0},
        {"status": "In Progress", "days": 1.0},
    ]
    assert resolved["resolved"].startswith("2024-10-22T13:00")
    # open issues are measured up to their last status change only
    assert open_issue["time_in_states"] == [
        {"status": "Backlog", "days": 1.0},
        {"status": "In Progress", "days": 0.0},
    ]


def test_customer_sla_frame_sorted_longest_first():
    frame = customer_sla_frame(_sample_entities(), clock=CLOCK)
    assert list(frame["key"]) == ["KEY-2", "KEY-1"]
    assert frame.loc[0, "days_in_current_status"] == 2.0
    assert frame.loc[1, "days_in_current_status"] == 1.5


def test_status_duration_frame_applies_workflow_policy():
    policy = WorkflowPolicy(done_status="In Progress")
    frame = build_status_duration_frame(_sample_entities(), clock=CLOCK, policy=policy)
    assert frame[frame["key"] == "KEY-1"]["is_open"].all()
    assert not frame[frame["key"] == "KEY-2"]["is_open"].any()
