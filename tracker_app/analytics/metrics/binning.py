"""Size-bucket histograms for lead-time style durations."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from tracker_app.core.config import DEFAULT_MAX_BUCKET
from tracker_app.core.models import TimeBucket, TrackedEntity

DurationSelector = Callable[[TrackedEntity], float | None]


def bucket_label(days: int, *, overflow: bool = False) -> str:
    """Human-readable label for a size bucket.

    Examples
    --------
    >>> bucket_label(1)
    '1 day'
    >>> bucket_label(3)
    '3 days'
    >>> bucket_label(10, overflow=True)
    '10+ days'
    """
    if overflow:
        return f"{days}+ days"
    return f"{days} day{'s' if days > 1 else ''}"


def size_histogram(
    entities: Iterable[TrackedEntity],
    duration_selector: DurationSelector,
    max_bucket: int = DEFAULT_MAX_BUCKET,
) -> list[TimeBucket]:
    """Group entities into integer-day size buckets.

    Produces a ``null`` bucket for entities without a measurable duration,
    one bucket per threshold ``1..max_bucket-1`` holding entities whose
    duration is at most that threshold (and above the previous one), and a
    final ``max_bucket+`` overflow bucket. Every entity lands in exactly one
    bucket.

    Parameters
    ----------
    entities : Iterable[TrackedEntity]
        Entities to partition.
    duration_selector : callable
        Returns the measured duration in days, or None when unmeasurable.
    max_bucket : int
        Overflow threshold (default 10).

    Returns
    -------
    list[TimeBucket]
        Buckets in ascending order, starting with the null bucket.
    """
    if max_bucket < 1:
        raise ValueError(f"max_bucket must be positive, got {max_bucket}")
    measured: list[tuple[TrackedEntity, float]] = []
    unmeasured: list[TrackedEntity] = []
    for entity in entities:
        duration = duration_selector(entity)
        if duration is None:
            unmeasured.append(entity)
        else:
            measured.append((entity, duration))

    buckets = [TimeBucket(0, "null", tuple(unmeasured))]
    remaining = measured
    for threshold in range(1, max_bucket):
        inside = [entity for entity, duration in remaining if duration <= threshold]
        remaining = [(entity, duration) for entity, duration in remaining if duration > threshold]
        buckets.append(TimeBucket(threshold, bucket_label(threshold), tuple(inside)))
    buckets.append(
        TimeBucket(
            max_bucket,
            bucket_label(max_bucket, overflow=True),
            tuple(entity for entity, _ in remaining),
        )
    )
    return buckets


def timespent_days(entity: TrackedEntity) -> float | None:
    """Default duration selector: logged time in 8-hour days."""
    return entity.timespent_days
