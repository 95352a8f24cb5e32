import pytest

from tracker_app.analytics.metrics.binning import bucket_label, size_histogram, timespent_days
from tracker_app.core.models import TrackedEntity


def _sample_entities():
    durations = [None, 0.5, 1, 1.5, 3, 9, 9.5, 12]
    return [
        TrackedEntity(key=f"KEY-{i}", created_at=None, current_status="Done", timespent_days=d)
        for i, d in enumerate(durations)
    ]


def test_bucket_labels():
    assert bucket_label(1) == "1 day"
    assert bucket_label(2) == "2 days"
    assert bucket_label(10, overflow=True) == "10+ days"


def test_size_histogram_shape_and_labels():
    buckets = size_histogram(_sample_entities(), timespent_days)
    assert len(buckets) == 11
    assert [b.days for b in buckets] == list(range(0, 11))
    assert buckets[0].label == "null"
    assert buckets[1].label == "1 day"
    assert buckets[9].label == "9 days"
    assert buckets[-1].label == "10+ days"


def test_size_histogram_places_each_entity_in_first_matching_bucket():
    buckets = {b.label: b.keys for b in size_histogram(_sample_entities(), timespent_days)}
    assert buckets["null"] == ["KEY-0"]
    assert buckets["1 day"] == ["KEY-1", "KEY-2"]
    assert buckets["2 days"] == ["KEY-3"]
    assert buckets["3 days"] == ["KEY-4"]
    assert buckets["9 days"] == ["KEY-5"]
    assert buckets["10+ days"] == ["KEY-6", "KEY-7"]


def test_size_histogram_partitions_input_exactly_once():
    entities = _sample_entities()
    buckets = size_histogram(entities, timespent_days)
    keys = [k for b in buckets for k in b.keys]
    assert sorted(keys) == sorted(e.key for e in entities)
    assert len(keys) == len(set(keys))


def test_size_histogram_custom_max_bucket_and_selector():
    entities = _sample_entities()
    buckets = size_histogram(entities, lambda e: 2.0, max_bucket=3)
    assert [b.label for b in buckets] == ["null", "1 day", "2 days", "3+ days"]
    assert len(buckets[2].entities) == len(entities)


def test_size_histogram_empty_input():
    buckets = size_histogram([], timespent_days)
    assert len(buckets) == 11
    assert all(not b.entities for b in buckets)


def test_size_histogram_rejects_non_positive_max_bucket():
    with pytest.raises(ValueError):
        size_histogram([], timespent_days, max_bucket=0)
