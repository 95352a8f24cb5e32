"""Chart builders (Altair) for burnup, cumulative flow and lead time."""

from __future__ import annotations

from collections.abc import Sequence

import altair as alt
import pandas as pd

from tracker_app.core.models import BurnupPoint, CumulativeFlowData, LeadTimePeriod


def burnup_frame(points: Sequence[BurnupPoint]) -> pd.DataFrame:
    rows = []
    for p in points:
        rows.append({"date": p.instant, "series": "Done", "count": p.done_count})
        rows.append({"date": p.instant, "series": "Scope", "count": p.scope_count})
        rows.append({"date": p.instant, "series": "Ideal", "count": p.ideal_trend})
        if p.forecast_trend is not None:
            rows.append({"date": p.instant, "series": "Forecast", "count": p.forecast_trend})
    df = pd.DataFrame(rows, columns=["date", "series", "count"])
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"], utc=True)
    return df


def burnup_chart(points: Sequence[BurnupPoint]):
    df = burnup_frame(points)
    if df.empty:
        return None
    return (
        alt.Chart(df)
        .mark_line()
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("count:Q", title="Issues"),
            color=alt.Color("series:N", legend=alt.Legend(title="Series")),
            strokeDash=alt.StrokeDash("series:N", legend=None),
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("series:N", title="Series"),
                alt.Tooltip("count:Q", title="Count", format=".1f"),
            ],
        )
        .properties(height=300)
    )


def cumulative_flow_frame(data: CumulativeFlowData) -> pd.DataFrame:
    rows = []
    for day in data.timeline:
        counts = {group.status: len(group.keys) for group in day.statuses}
        for status in data.all_statuses:
            rows.append({"date": day.instant, "status": status, "count": counts.get(status, 0)})
    df = pd.DataFrame(rows, columns=["date", "status", "count"])
    if not df.empty:
        df["date"] = pd.to_datetime(df["date"], utc=True)
    return df


def cumulative_flow_chart(data: CumulativeFlowData, status_order: Sequence[str] | None = None):
    df = cumulative_flow_frame(data)
    if df.empty:
        return None
    order = list(status_order or data.all_statuses)
    return (
        alt.Chart(df)
        .mark_area()
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("count:Q", stack="zero", title="Issues"),
            color=alt.Color("status:N", sort=order, legend=alt.Legend(title="Status")),
            order=alt.Order("status:N"),
            tooltip=[
                alt.Tooltip("date:T", title="Date"),
                alt.Tooltip("status:N", title="Status"),
                alt.Tooltip("count:Q", title="Issues"),
            ],
        )
        .properties(height=320)
    )


def lead_time_frame(periods: Sequence[LeadTimePeriod]) -> pd.DataFrame:
    rows = []
    for period in periods:
        for bucket in period.size_buckets:
            rows.append(
                {
                    "period_start": period.period_start,
                    "bucket": bucket.label,
                    "days": bucket.days,
                    "count": len(bucket.entities),
                    "tickets": "\n".join(bucket.keys),
                }
            )
    df = pd.DataFrame(rows, columns=["period_start", "bucket", "days", "count", "tickets"])
    if not df.empty:
        df["period_start"] = pd.to_datetime(df["period_start"], utc=True)
    return df


def lead_time_chart(periods: Sequence[LeadTimePeriod]):
    df = lead_time_frame(periods)
    if df.empty:
        return None
    bucket_order = df.sort_values("days")["bucket"].drop_duplicates().tolist()
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("bucket:N", sort=bucket_order, title="Lead Time"),
            y=alt.Y("count:Q", title="Issues"),
            column=alt.Column("period_start:T", title="Period Start"),
            tooltip=[
                alt.Tooltip("bucket:N", title="Bucket"),
                alt.Tooltip("count:Q", title="Issues"),
                alt.Tooltip("tickets:N", title="Tickets"),
            ],
        )
        .properties(height=220)
    )
