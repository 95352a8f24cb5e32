"""Status flow and duration analysis utilities.

This module turns replayed status timelines into the tabular views used by
the time-in-status, average resolution time and customer SLA reports.
"""

from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from tracker_app.core.clock import Clock
from tracker_app.core.config import DONE_STATUS
from tracker_app.core.models import TrackedEntity
from tracker_app.core.workflow_config import WorkflowPolicy

from .timeline import TimelineCache, accumulated_days_by_status, days_in_current_status


def extract_status_durations(
    entity: TrackedEntity,
    *,
    clock: Clock | None = None,
    cache: TimelineCache | None = None,
) -> dict[str, float]:
    """Working days spent in each status for a single entity.

    Resolved entities are measured up to their resolution instant, open
    ones up to ``clock.now()``.
    """
    if cache is None:
        cache = TimelineCache()
    return accumulated_days_by_status(cache.status_timeline(entity), clock=clock)


def build_status_duration_frame(
    entities: Iterable[TrackedEntity],
    *,
    clock: Clock | None = None,
    cache: TimelineCache | None = None,
    done_status: str = DONE_STATUS,
    policy: WorkflowPolicy | None = None,
) -> pd.DataFrame:
    """Build a long-form DataFrame of status durations for all entities.

    Parameters
    ----------
    entities : Iterable[TrackedEntity]
        Entities with change logs.
    clock : Clock, optional
        Source of "now" for entities that are still open.
    cache : TimelineCache, optional
        Per-report timeline memoization.
    policy : WorkflowPolicy, optional
        Supplies the done status and the status field name.

    Returns
    -------
    pd.DataFrame
        Columns: key, status, duration_days, is_open. Empty when no durations
        could be computed.
    """
    if policy is not None:
        done_status = policy.done_status
        if cache is None:
            cache = TimelineCache.for_policy(policy)
    if cache is None:
        cache = TimelineCache()
    records: list[dict[str, object]] = []
    for entity in entities:
        durations = extract_status_durations(entity, clock=clock, cache=cache)
        is_open = entity.current_status != done_status
        for status_name, days in durations.items():
            records.append(
                {
                    "key": entity.key,
                    "status": status_name,
                    "duration_days": float(days),
                    "is_open": is_open,
                }
            )
    if not records:
        return pd.DataFrame()
    return pd.DataFrame(records)


def resolution_time_records(
    entities: Iterable[TrackedEntity],
    *,
    cache: TimelineCache | None = None,
) -> list[dict[str, object]]:
    """Time spent in each state until resolution, one record per entity.

    The open interval after the last status change is only counted for
    resolved entities; for unresolved ones it stops at the last change.
    """
    if cache is None:
        cache = TimelineCache()
    out: list[dict[str, object]] = []
    for entity in entities:
        timeline = cache.status_timeline(entity)
        as_of = entity.resolved_at or timeline.changes[-1].effective_from
        days = accumulated_days_by_status(timeline, as_of)
        out.append(
            {
                "key": entity.key,
                "summary": entity.summary,
                "type": entity.issue_type,
                "status": entity.current_status,
                "created": entity.created_at.isoformat() if entity.created_at else "",
                "resolved": entity.resolved_at.isoformat() if entity.resolved_at else "",
                "url": entity.url,
                "time_in_states": [
                    {"status": status, "days": value} for status, value in sorted(days.items())
                ],
            }
        )
    return out


def average_days_by_status(frame: pd.DataFrame) -> pd.DataFrame:
    """Mean and median days per status from ``build_status_duration_frame`` output."""
    if frame.empty or "status" not in frame.columns:
        return pd.DataFrame(columns=["status", "mean_days", "median_days", "issues"])
    agg = (
        frame.groupby("status")
        .agg(
            mean_days=("duration_days", "mean"),
            median_days=("duration_days", "median"),
            issues=("key", "nunique"),
        )
        .sort_values(by="mean_days", ascending=False)
        .reset_index()
    )
    return agg


def customer_sla_frame(
    entities: Iterable[TrackedEntity],
    *,
    clock: Clock | None = None,
    cache: TimelineCache | None = None,
) -> pd.DataFrame:
    """Working days each entity has spent in its current status.

    Returns
    -------
    pd.DataFrame
        Columns: key, summary, type, status, days_in_current_status, url,
        sorted with the longest-waiting entity first.
    """
    if cache is None:
        cache = TimelineCache()
    rows = []
    for entity in entities:
        days = days_in_current_status(cache.status_timeline(entity), clock=clock)
        rows.append(
            {
                "key": entity.key,
                "summary": entity.summary,
                "type": entity.issue_type,
                "status": entity.current_status,
                "days_in_current_status": round(days, 1),
                "url": entity.url,
            }
        )
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows).sort_values(by="days_in_current_status", ascending=False).reset_index(drop=True)
