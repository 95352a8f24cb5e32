from datetime import datetime

import pytz

from tracker_app.analytics.aggregations.periods import cumulative_flow_series, lead_time_series
from tracker_app.core.models import BurnupPoint, CumulativeFlowData, TrackedEntity
from tracker_app.visual.charts import (
    burnup_chart,
    burnup_frame,
    cumulative_flow_chart,
    cumulative_flow_frame,
    lead_time_chart,
)


def _utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


def _sample_entities():
    return [
        TrackedEntity(
            key=f"KEY-{i}",
            created_at=_utc(2024, 10, 1, 9),
            current_status="Done" if i % 2 else "To Do",
            resolved_at=_utc(2024, 10, 15 + i),
            timespent_days=float(i),
        )
        for i in range(4)
    ]


def test_burnup_chart():
    points = [
        BurnupPoint(_utc(2024, 10, 1), 0, [], 2, ["A", "B"], 0.0, None),
        BurnupPoint(_utc(2024, 10, 2), 1, ["A"], 2, ["A", "B"], 2.0, 1.5),
    ]
    frame = burnup_frame(points)
    assert set(frame["series"]) == {"Done", "Scope", "Ideal", "Forecast"}
    assert len(frame) == 7
    assert burnup_chart(points) is not None
    assert burnup_chart([]) is None


def test_cumulative_flow_chart():
    data = cumulative_flow_series(_sample_entities(), _utc(2024, 10, 1, 12), _utc(2024, 10, 3, 12))
    frame = cumulative_flow_frame(data)
    assert len(frame) == 3 * len(data.all_statuses)
    assert cumulative_flow_chart(data) is not None
    assert cumulative_flow_chart(CumulativeFlowData((), ())) is None


def test_lead_time_chart():
    periods = lead_time_series(_sample_entities(), _utc(2024, 10, 21, 9), 14)
    assert lead_time_chart(periods) is not None
    assert lead_time_chart([]) is None
