"""Domain data models for tracked entities, change logs and report outputs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .changelog import ChangeEntry, ChangeLog

__all__ = [
    "BurnupPoint",
    "ChangeEntry",
    "ChangeLog",
    "CumulativeFlowData",
    "CumulativeFlowDay",
    "LeadTimePeriod",
    "PeriodBucket",
    "PeriodSnapshot",
    "StatusGroup",
    "TimeBucket",
    "TrackedEntity",
]


@dataclass(slots=True, frozen=True)
class TrackedEntity:
    key: str
    created_at: datetime | None
    current_status: str
    change_log: ChangeLog = field(default_factory=ChangeLog)
    resolved_at: datetime | None = None
    summary: str | None = None
    issue_type: str | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None
    timespent_days: float | None = None
    url: str | None = None


@dataclass(slots=True, frozen=True)
class TimeBucket:
    days: int
    label: str
    entities: tuple[TrackedEntity, ...] = ()

    @property
    def keys(self) -> list[str]:
        return [e.key for e in self.entities]


@dataclass(slots=True, frozen=True)
class PeriodBucket:
    period_start: datetime
    period_end: datetime
    entities: tuple[TrackedEntity, ...] = ()

    @property
    def keys(self) -> list[str]:
        return [e.key for e in self.entities]


@dataclass(slots=True, frozen=True)
class LeadTimePeriod:
    period_start: datetime
    size_buckets: tuple[TimeBucket, ...]


@dataclass(slots=True, frozen=True)
class PeriodSnapshot:
    """State of a set of member entities at one instant (burnup / scope)."""

    instant: datetime
    member_keys: tuple[str, ...]
    done_keys: tuple[str, ...]
    scope_keys: tuple[str, ...]
    status_members: dict[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def done_count(self) -> int:
        return len(self.done_keys)

    @property
    def scope_count(self) -> int:
        return len(self.scope_keys)

    @property
    def status_counts(self) -> dict[str, int]:
        return {status: len(keys) for status, keys in self.status_members.items()}


@dataclass(slots=True, frozen=True)
class StatusGroup:
    status: str
    keys: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class CumulativeFlowDay:
    instant: datetime
    statuses: tuple[StatusGroup, ...]


@dataclass(slots=True, frozen=True)
class CumulativeFlowData:
    all_statuses: tuple[str, ...]
    timeline: tuple[CumulativeFlowDay, ...]


@dataclass(slots=True)
class BurnupPoint:
    instant: datetime
    done_count: int
    done_keys: list[str]
    scope_count: int
    scope_keys: list[str]
    ideal_trend: float = 0.0
    forecast_trend: float | None = None
