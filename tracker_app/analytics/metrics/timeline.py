"""Point-in-time reconstruction of entity state from change logs.

A timeline is a fold over an entity's sorted change log: each status change
becomes a ``StatusChange`` anchored at its timestamp, preceded by a synthesized
entry for the status the entity was created in. Membership (for example the
children of an epic) is replayed the same way into add/remove events.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from tracker_app.core.changelog import ChangeLog
from tracker_app.core.clock import DEFAULT_CLOCK, Clock, to_utc
from tracker_app.core.config import (
    DESCOPED_STATUSES,
    DONE_STATUS,
    HOURS_PER_WORKING_DAY,
    MEMBERSHIP_FIELD,
    NOT_CREATED_YET,
    STATUS_FIELD,
)
from tracker_app.core.errors import InvalidEntityError
from tracker_app.core.models import TrackedEntity

from .business_calendar import working_duration_between

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class StatusChange:
    effective_from: datetime
    status: str


@dataclass(slots=True, frozen=True)
class StatusTimeline:
    entity_key: str | None
    created_at: datetime
    current_status: str
    changes: tuple[StatusChange, ...]
    resolved_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class MembershipEvent:
    occurred_at: datetime
    added: bool
    member_key: str


@dataclass(slots=True, frozen=True)
class MembershipTimeline:
    owner_key: str | None
    events: tuple[MembershipEvent, ...]


# ------------------ Status timelines ------------------
def build_status_timeline(
    created_at: datetime | None,
    current_status: str,
    change_log: ChangeLog,
    *,
    entity_key: str | None = None,
    resolved_at: datetime | None = None,
    status_field: str = STATUS_FIELD,
) -> StatusTimeline:
    """Replay status changes into an ordered list of (instant, status) pairs.

    The first entry is anchored at ``created_at`` and carries the ``from``
    value of the first status change, or ``current_status`` when the entity
    never changed status. Each later entry is one change's ``to`` value.

    Raises
    ------
    InvalidEntityError
        If ``created_at`` is missing, a status change predates it, or the
        first change does not say which status the entity left.
    """
    key = entity_key or change_log.entity_key
    created_at = to_utc(created_at)
    resolved_at = to_utc(resolved_at)
    if created_at is None:
        raise InvalidEntityError("cannot build a status timeline without a creation instant", key)
    status_changes = change_log.for_field(status_field)
    first = status_changes.first()
    if first is None:
        return StatusTimeline(
            key, created_at, current_status, (StatusChange(created_at, current_status),), resolved_at
        )
    if first.occurred_at < created_at:
        raise InvalidEntityError(
            f"status change at {first.occurred_at.isoformat()} precedes creation", key
        )
    if first.from_value is None:
        raise InvalidEntityError("first status change has no previous status", key)
    changes = [StatusChange(created_at, first.from_value)]
    changes.extend(StatusChange(entry.occurred_at, entry.to_value) for entry in status_changes)
    return StatusTimeline(key, created_at, current_status, tuple(changes), resolved_at)


def status_timeline_for(entity: TrackedEntity, *, status_field: str = STATUS_FIELD) -> StatusTimeline:
    return build_status_timeline(
        entity.created_at,
        entity.current_status,
        entity.change_log,
        entity_key=entity.key,
        resolved_at=entity.resolved_at,
        status_field=status_field,
    )


def status_at(timeline: StatusTimeline, when: datetime | None = None) -> str:
    """Return the status that applied at ``when``.

    Without ``when`` the live current status is returned, bypassing the
    replayed history. Instants before creation yield ``NOT_CREATED_YET``.
    """
    if when is None:
        return timeline.current_status
    when = to_utc(when)
    if when < timeline.created_at:
        return NOT_CREATED_YET
    status = timeline.changes[0].status
    for change in timeline.changes[1:]:
        if change.effective_from > when:
            break
        status = change.status
    return status


def is_in_terminal_state(
    timeline: StatusTimeline,
    when: datetime | None = None,
    *,
    done_status: str = DONE_STATUS,
) -> bool:
    return status_at(timeline, when) == done_status


def is_in_scope(
    timeline: StatusTimeline,
    when: datetime | None = None,
    *,
    descoped_statuses: Iterable[str] = DESCOPED_STATUSES,
) -> bool:
    return status_at(timeline, when) not in set(descoped_statuses)


def statuses(timeline: StatusTimeline) -> list[str]:
    """Distinct statuses the entity has been in, sorted by name."""
    return sorted({change.status for change in timeline.changes if change.status is not None})


def _resolve_as_of(timeline: StatusTimeline, as_of, clock: Clock | None) -> datetime:
    if as_of is not None:
        return to_utc(as_of)
    if timeline.resolved_at is not None:
        return timeline.resolved_at
    return (clock or DEFAULT_CLOCK).now()


def accumulated_time_by_status(
    timeline: StatusTimeline,
    as_of: datetime | None = None,
    *,
    clock: Clock | None = None,
) -> dict[str, int]:
    """Working hours spent in each status up to ``as_of``.

    Each interval between consecutive changes is attributed to the earlier
    change's status, and the open interval from the last change to ``as_of``
    to the last status. Repeated statuses accumulate.

    Parameters
    ----------
    timeline : StatusTimeline
        Replayed status history.
    as_of : datetime, optional
        End of the measurement. Defaults to the resolution instant for
        resolved entities and to ``clock.now()`` otherwise.
    clock : Clock, optional
        Source of "now" for unresolved entities.

    Returns
    -------
    dict[str, int]
        Mapping of status name to working hours. Empty when ``as_of``
        precedes creation.
    """
    end = _resolve_as_of(timeline, as_of, clock)
    if end < timeline.created_at:
        return {}
    applicable = [c for c in timeline.changes if c.effective_from <= end]
    durations: dict[str, int] = {change.status: 0 for change in applicable}
    for previous, current in zip(applicable, applicable[1:]):
        durations[previous.status] += working_duration_between(
            previous.effective_from, current.effective_from
        )
    last = applicable[-1]
    durations[last.status] += working_duration_between(last.effective_from, end)
    return durations


def accumulated_days_by_status(
    timeline: StatusTimeline,
    as_of: datetime | None = None,
    *,
    clock: Clock | None = None,
) -> dict[str, float]:
    hours = accumulated_time_by_status(timeline, as_of, clock=clock)
    return {status: value / HOURS_PER_WORKING_DAY for status, value in hours.items()}


def days_in_current_status(timeline: StatusTimeline, *, clock: Clock | None = None) -> float:
    """Working days since the entity last entered its live status.

    Falls back to the creation instant when the entity was created in its
    current status and never left it.
    """
    current = timeline.current_status
    entered = timeline.created_at
    for change in reversed(timeline.changes):
        if change.status == current:
            entered = change.effective_from
            break
    now = (clock or DEFAULT_CLOCK).now()
    return working_duration_between(entered, now) / HOURS_PER_WORKING_DAY


# ------------------ Membership timelines ------------------
def build_membership_timeline(
    change_log: ChangeLog,
    *,
    owner_key: str | None = None,
    created_at: datetime | None = None,
    field: str = MEMBERSHIP_FIELD,
) -> MembershipTimeline:
    """Turn membership field changes into ordered add/remove events.

    A change with a ``to`` value adds that member; a change with only a
    ``from`` value removes it. Changes with neither are ignored.

    Raises
    ------
    InvalidEntityError
        If ``created_at`` is given and a membership change predates it.
    """
    owner_key = owner_key or change_log.entity_key
    created_at = to_utc(created_at)
    events: list[MembershipEvent] = []
    for entry in change_log.for_field(field):
        if created_at is not None and entry.occurred_at < created_at:
            raise InvalidEntityError(
                f"membership change at {entry.occurred_at.isoformat()} precedes creation", owner_key
            )
        if entry.to_value:
            events.append(MembershipEvent(entry.occurred_at, True, entry.to_value))
        elif entry.from_value:
            events.append(MembershipEvent(entry.occurred_at, False, entry.from_value))
        else:
            logger.debug("Ignoring empty %s change on %s", field, owner_key)
    return MembershipTimeline(owner_key, tuple(events))


def membership_timeline_for(entity: TrackedEntity, *, field: str = MEMBERSHIP_FIELD) -> MembershipTimeline:
    return build_membership_timeline(
        entity.change_log, owner_key=entity.key, created_at=entity.created_at, field=field
    )


def members_at(timeline: MembershipTimeline, when: datetime | None = None) -> set[str]:
    """Replay add/remove events up to ``when`` (inclusive) into a member set.

    Without ``when`` every event is replayed, giving the current members.
    """
    cutoff = to_utc(when) if when is not None else None
    members: set[str] = set()
    for event in timeline.events:
        if cutoff is not None and event.occurred_at > cutoff:
            break
        if event.added:
            members.add(event.member_key)
        else:
            members.discard(event.member_key)
    return members


# ------------------ Per-report memoization ------------------
class TimelineCache:
    """Memoize timelines per entity key for the lifetime of one report."""

    def __init__(self, *, status_field: str = STATUS_FIELD, membership_field: str = MEMBERSHIP_FIELD):
        self.status_field = status_field
        self.membership_field = membership_field
        self._status: dict[str, StatusTimeline] = {}
        self._membership: dict[str, MembershipTimeline] = {}

    @classmethod
    def for_policy(cls, policy) -> TimelineCache:
        """Cache reading the field names of a ``WorkflowPolicy``."""
        return cls(status_field=policy.status_field, membership_field=policy.membership_field)

    def status_timeline(self, entity: TrackedEntity) -> StatusTimeline:
        cached = self._status.get(entity.key)
        if cached is None:
            cached = status_timeline_for(entity, status_field=self.status_field)
            self._status[entity.key] = cached
        return cached

    def membership_timeline(self, entity: TrackedEntity) -> MembershipTimeline:
        cached = self._membership.get(entity.key)
        if cached is None:
            cached = membership_timeline_for(entity, field=self.membership_field)
            self._membership[entity.key] = cached
        return cached

    def clear(self) -> None:
        self._status.clear()
        self._membership.clear()

    def __len__(self) -> int:
        return len(self._status) + len(self._membership)
