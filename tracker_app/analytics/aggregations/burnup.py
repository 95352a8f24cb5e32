"""Epic burnup series: done vs. in-scope children per day, with trend lines."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from tracker_app.analytics.metrics.timeline import TimelineCache
from tracker_app.core.clock import DEFAULT_CLOCK, Clock, to_utc
from tracker_app.core.config import DESCOPED_STATUSES, DONE_STATUS
from tracker_app.core.models import BurnupPoint, TrackedEntity
from tracker_app.core.workflow_config import WorkflowPolicy

from .periods import daily_snapshot_series

logger = logging.getLogger(__name__)


def burnup_series(
    epic: TrackedEntity,
    members: Mapping[str, TrackedEntity],
    *,
    start=None,
    end=None,
    clock: Clock | None = None,
    cache: TimelineCache | None = None,
    done_status: str = DONE_STATUS,
    descoped_statuses: Iterable[str] = DESCOPED_STATUSES,
    policy: WorkflowPolicy | None = None,
) -> list[BurnupPoint]:
    """Build the daily burnup of an epic's children.

    The range defaults to the epic start date (or its creation) through its
    due date (or today), inclusive. Trend lines are filled in before return.
    A ``policy`` takes precedence over ``done_status`` and ``descoped_statuses``.
    """
    clock = clock or DEFAULT_CLOCK
    range_start = to_utc(start) or epic.start_date or epic.created_at
    range_end = to_utc(end) or epic.due_date or clock.now()
    snapshots = daily_snapshot_series(
        [epic],
        members,
        range_start,
        range_end,
        cache=cache,
        done_status=done_status,
        descoped_statuses=descoped_statuses,
        policy=policy,
    )
    points = [
        BurnupPoint(
            instant=snap.instant,
            done_count=snap.done_count,
            done_keys=list(snap.done_keys),
            scope_count=snap.scope_count,
            scope_keys=list(snap.scope_keys),
        )
        for snap in snapshots
    ]
    add_ideal_trend(points)
    add_forecast_trend(points, clock=clock)
    logger.debug("Burnup for %s: %d points", epic.key, len(points))
    return points


def add_ideal_trend(points: list[BurnupPoint]) -> None:
    """Straight line from the first day's done count to the final scope (in place)."""
    if not points:
        return
    final_scope = points[-1].scope_count
    start_done = points[0].done_count
    points[0].ideal_trend = float(start_done)
    if len(points) == 1:
        return
    increment = (final_scope - start_done) / (len(points) - 1)
    for previous, point in zip(points, points[1:]):
        point.ideal_trend = previous.ideal_trend + increment


def add_forecast_trend(points: list[BurnupPoint], *, clock: Clock | None = None) -> None:
    """Project remaining scope evenly over the days from today onwards (in place).

    Days in the past carry no forecast.
    """
    if not points:
        return
    today = (clock or DEFAULT_CLOCK).now()
    final_scope = points[-1].scope_count
    for idx, point in enumerate(points):
        if point.instant < today:
            point.forecast_trend = None
            continue
        days_left = len(points) - idx
        previous_done = 0.0
        if idx > 0:
            prev = points[idx - 1]
            previous_done = prev.forecast_trend if prev.forecast_trend is not None else prev.done_count
        point.forecast_trend = previous_done + (final_scope - previous_done) / days_left
