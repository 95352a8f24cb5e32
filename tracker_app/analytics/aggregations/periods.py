"""Time-series and period aggregations over entity timelines.

Everything here is a pure function of its inputs: timelines are built (or
fetched from a per-report ``TimelineCache``) and queried, never mutated.
Cost scales with ``entities x days`` so callers bound the range they ask for.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timedelta

from tracker_app.analytics.metrics.binning import DurationSelector, size_histogram, timespent_days
from tracker_app.analytics.metrics.timeline import (
    MembershipTimeline,
    TimelineCache,
    is_in_scope,
    is_in_terminal_state,
    members_at,
    status_at,
)
from tracker_app.core.clock import to_utc
from tracker_app.core.config import (
    DEFAULT_MAX_BUCKET,
    DEFAULT_PERIOD_LENGTH_DAYS,
    DESCOPED_STATUSES,
    DONE_STATUS,
    MAX_PERIOD_ITERATIONS,
)
from tracker_app.core.errors import InvalidEntityError
from tracker_app.core.models import (
    CumulativeFlowData,
    CumulativeFlowDay,
    LeadTimePeriod,
    PeriodBucket,
    PeriodSnapshot,
    StatusGroup,
    TrackedEntity,
)
from tracker_app.core.workflow_config import WorkflowPolicy

logger = logging.getLogger(__name__)

MembershipProvider = Callable[[TrackedEntity], MembershipTimeline]


def index_by_key(entities: Iterable[TrackedEntity]) -> dict[str, TrackedEntity]:
    return {entity.key: entity for entity in entities}


def iter_days(start, end) -> Iterator[datetime]:
    """Yield one instant per calendar day from ``start`` to ``end`` inclusive."""
    current = to_utc(start)
    stop = to_utc(end)
    if current is None or stop is None:
        raise ValueError("Both start and end are required for a daily series")
    step = timedelta(days=1)
    while current <= stop:
        yield current
        current += step


def daily_snapshot_series(
    roots: Iterable[TrackedEntity],
    members: Mapping[str, TrackedEntity],
    start,
    end,
    *,
    membership_provider: MembershipProvider | None = None,
    cache: TimelineCache | None = None,
    done_status: str = DONE_STATUS,
    descoped_statuses: Iterable[str] = DESCOPED_STATUSES,
    policy: WorkflowPolicy | None = None,
) -> list[PeriodSnapshot]:
    """Snapshot the members of ``roots`` once per day.

    For each day the member set of every root is replayed with
    ``members_at`` and each member is classified as done and/or in scope at
    that day. The union over all roots forms the snapshot.

    Parameters
    ----------
    roots : Iterable[TrackedEntity]
        Owning entities (typically epics) whose membership is tracked.
    members : Mapping[str, TrackedEntity]
        Member entities by key; every key a root ever references must be
        present.
    start, end : datetime-like
        Inclusive date range.
    membership_provider : callable, optional
        Builds the membership timeline of a root. Defaults to the cache.
    cache : TimelineCache, optional
        Per-report timeline memoization (created if omitted).
    done_status, descoped_statuses : optional
        Status vocabulary used to classify members.
    policy : WorkflowPolicy, optional
        Loaded workflow policy; overrides ``done_status``,
        ``descoped_statuses`` and the field names of a new cache.

    Returns
    -------
    list[PeriodSnapshot]
        One snapshot per day; empty when ``end`` precedes ``start``.

    Raises
    ------
    InvalidEntityError
        If a root references a member key missing from ``members``.
    """
    if policy is not None:
        done_status = policy.done_status
        descoped_statuses = policy.descoped_statuses
        if cache is None:
            cache = TimelineCache.for_policy(policy)
    if cache is None:
        cache = TimelineCache()
    provider = membership_provider or cache.membership_timeline
    descoped = frozenset(descoped_statuses)
    root_timelines = [provider(root) for root in roots]

    snapshots: list[PeriodSnapshot] = []
    for day in iter_days(start, end):
        member_keys: set[str] = set()
        for timeline in root_timelines:
            member_keys |= members_at(timeline, day)
        done_keys: list[str] = []
        scope_keys: list[str] = []
        status_members: dict[str, list[str]] = {}
        for key in sorted(member_keys):
            entity = members.get(key)
            if entity is None:
                raise InvalidEntityError("member referenced by a root was not supplied", key)
            timeline = cache.status_timeline(entity)
            status_members.setdefault(status_at(timeline, day), []).append(key)
            if is_in_terminal_state(timeline, day, done_status=done_status):
                done_keys.append(key)
            if is_in_scope(timeline, day, descoped_statuses=descoped):
                scope_keys.append(key)
        snapshots.append(
            PeriodSnapshot(
                instant=day,
                member_keys=tuple(sorted(member_keys)),
                done_keys=tuple(done_keys),
                scope_keys=tuple(scope_keys),
                status_members={status: tuple(keys) for status, keys in status_members.items()},
            )
        )
    logger.debug("Built %d daily snapshots for %d roots", len(snapshots), len(root_timelines))
    return snapshots


def cumulative_flow_series(
    entities: Iterable[TrackedEntity],
    start,
    end,
    *,
    cache: TimelineCache | None = None,
) -> CumulativeFlowData:
    """Group entities by their status at each day of the range.

    Statuses appear in the order they are first seen, both per day and in
    ``all_statuses``.
    """
    if cache is None:
        cache = TimelineCache()
    entity_list = list(entities)
    timelines = [(entity.key, cache.status_timeline(entity)) for entity in entity_list]
    all_statuses: dict[str, None] = {}
    days: list[CumulativeFlowDay] = []
    for day in iter_days(start, end):
        grouped: dict[str, list[str]] = {}
        for key, timeline in timelines:
            status = status_at(timeline, day)
            grouped.setdefault(status, []).append(key)
            all_statuses.setdefault(status, None)
        days.append(
            CumulativeFlowDay(
                instant=day,
                statuses=tuple(StatusGroup(status, tuple(keys)) for status, keys in grouped.items()),
            )
        )
    return CumulativeFlowData(all_statuses=tuple(all_statuses), timeline=tuple(days))


def fixed_period_buckets(
    entities: Iterable[TrackedEntity],
    anchor,
    period_length_days: int = DEFAULT_PERIOD_LENGTH_DAYS,
    period_count: int | None = None,
) -> list[PeriodBucket]:
    """Group resolved entities into fixed-length periods walking back from ``anchor``.

    The first period starts at ``anchor``; each following one starts
    ``period_length_days`` earlier. An entity belongs to the most recent
    period whose start is strictly before its resolution instant and is
    removed from the pool once placed. The walk stops as soon as the pool is
    empty or after ``period_count`` periods (``MAX_PERIOD_ITERATIONS`` when
    omitted), so the number of buckets is at most that bound.

    Raises
    ------
    InvalidEntityError
        If an entity has no resolution instant.
    ValueError
        If the period length or count is not positive.
    """
    if period_length_days <= 0:
        raise ValueError(f"period_length_days must be positive, got {period_length_days}")
    limit = MAX_PERIOD_ITERATIONS if period_count is None else period_count
    if limit <= 0:
        raise ValueError(f"period_count must be positive, got {period_count}")
    anchor_utc = to_utc(anchor)
    if anchor_utc is None:
        raise ValueError("anchor is required")

    pool: list[TrackedEntity] = []
    for entity in entities:
        if entity.resolved_at is None:
            raise InvalidEntityError("cannot place an unresolved entity in a period", entity.key)
        pool.append(entity)

    step = timedelta(days=period_length_days)
    period_start = anchor_utc
    buckets: list[PeriodBucket] = []
    while pool and len(buckets) < limit:
        inside = [e for e in pool if to_utc(e.resolved_at) > period_start]
        pool = [e for e in pool if to_utc(e.resolved_at) <= period_start]
        buckets.append(PeriodBucket(period_start, period_start + step, tuple(inside)))
        period_start -= step
    if pool:
        logger.warning(
            "Dropped %d entities resolved before %s (period limit %d reached)",
            len(pool),
            (period_start + step).isoformat(),
            limit,
        )
    return buckets


def lead_time_series(
    entities: Iterable[TrackedEntity],
    anchor,
    period_length_days: int = DEFAULT_PERIOD_LENGTH_DAYS,
    period_count: int | None = None,
    *,
    duration_selector: DurationSelector = timespent_days,
    max_bucket: int = DEFAULT_MAX_BUCKET,
) -> list[LeadTimePeriod]:
    """Size histogram of each fixed period, most recent period first."""
    periods = fixed_period_buckets(entities, anchor, period_length_days, period_count)
    return [
        LeadTimePeriod(
            period_start=bucket.period_start,
            size_buckets=tuple(size_histogram(bucket.entities, duration_selector, max_bucket)),
        )
        for bucket in periods
    ]
