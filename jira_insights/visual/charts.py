"""Chart builders (Altair) for correlation series."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import altair as alt
import pandas as pd

from jira_insights.analytics.aggregations.correlation import AnalysisSpec, CorrelationSeries

Y_TITLE = "Time-To-Close (hours)"


def bar_chart(
    means: Mapping[str, float | None],
    title: str,
    *,
    counts: Mapping[str, int] | None = None,
    y_title: str = Y_TITLE,
):
    """Bar per category mean; undefined (empty) categories are left out of the bars."""
    rows = [
        {"category": label, "mean_hours": value, "tickets": int((counts or {}).get(label, 0))}
        for label, value in means.items()
        if value is not None
    ]
    if not rows:
        return None
    chart_df = pd.DataFrame(rows)
    return (
        alt.Chart(chart_df)
        .mark_bar(color="#1f77b4")
        .encode(
            x=alt.X("category:N", title=None, sort=list(chart_df["category"])),
            y=alt.Y("mean_hours:Q", title=y_title),
            tooltip=[
                alt.Tooltip("category:N", title="Category"),
                alt.Tooltip("mean_hours:Q", title="Mean hours", format=".1f"),
                alt.Tooltip("tickets:Q", title="Tickets"),
            ],
        )
        .properties(title=title, height=320)
    )


def scatter_chart(series: CorrelationSeries, x_title: str, title: str, *, y_title: str = Y_TITLE):
    """Metric vs. resolution time, colored by resolution time, with a linear trend line."""
    if not len(series):
        return None
    chart_df = series.to_frame()
    chart_df["metric"] = pd.to_numeric(chart_df["metric"], errors="coerce")
    chart_df = chart_df.dropna(subset=["metric"])
    if chart_df.empty:
        return None
    base = alt.Chart(chart_df)
    points = base.mark_circle(size=40, opacity=0.75).encode(
        x=alt.X("metric:Q", title=x_title),
        y=alt.Y("resolution_hours:Q", title=y_title),
        color=alt.Color("resolution_hours:Q", scale=alt.Scale(scheme="viridis"), legend=None),
        tooltip=[
            alt.Tooltip("key:N", title="Ticket"),
            alt.Tooltip("metric:Q", title=x_title, format=".2f"),
            alt.Tooltip("resolution_hours:Q", title="Hours", format=".1f"),
        ],
    )
    trend = (
        base.transform_regression("metric", "resolution_hours")
        .mark_line(color="#d62728")
        .encode(x="metric:Q", y="resolution_hours:Q")
    )
    return (points + trend).properties(title=title, height=360)


def analysis_chart(series: CorrelationSeries, spec: AnalysisSpec):
    if spec.kind == "bar":
        return bar_chart(series.category_means, spec.title, counts=series.category_counts)
    return scatter_chart(series, spec.metric_title, spec.title)


def save_chart(chart, path: str | Path) -> Path:
    """Write a chart as a standalone HTML page."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    chart.save(str(target))
    return target
