"""Correlation aggregators: aligned (metric, resolution hours) series per analysis.

Every aggregator takes the ticket frame produced by
``tickets_to_dataframe``, applies the population filter once, and returns a
:class:`CorrelationSeries` whose ``keys[i]``, ``metric[i]`` and
``resolution_hours[i]`` describe the same ticket. Categorical analyses also
carry the mean resolution time per category; a category with no tickets
reports ``None`` rather than a NaN or zero.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from functools import partial
from typing import Any

import pandas as pd

from jira_insights.analytics.metrics.attachments import AttachmentCategory
from jira_insights.analytics.segments.filters import (
    METRIC_OUT_OF_BOUNDS,
    NO_SCORE,
    ResolutionBounds,
    count_reasons,
    exclusion_reasons,
    refine,
)
from jira_insights.core.config import MAX_FIELDS_WORDS, WITHOUT_ATTACHMENTS_LABEL
from jira_insights.core.errors import UnsupportedAnalysisError, UnsupportedFieldError


class TextField(StrEnum):
    SUMMARY = "summary"
    DESCRIPTION = "description"
    COMMENTS = "comments"
    SUMMARY_DESCRIPTION = "summary_description"

    @property
    def column(self) -> str:
        if self is TextField.COMMENTS:
            return "comment_words"
        return f"{self.value}_words"

    @classmethod
    def parse(cls, tag: str | TextField) -> TextField:
        if isinstance(tag, TextField):
            return tag
        text = str(tag or "").strip().lower()
        if text == "comment":
            text = TextField.COMMENTS.value
        try:
            return cls(text)
        except ValueError as exc:
            raise UnsupportedFieldError(str(tag), [f.value for f in cls]) from exc


@dataclass(slots=True)
class CorrelationSeries:
    analysis: str
    keys: list[str] = field(default_factory=list)
    metric: list[Any] = field(default_factory=list)
    resolution_hours: list[float] = field(default_factory=list)
    category_means: dict[str, float | None] = field(default_factory=dict)
    category_counts: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.keys)

    @property
    def is_categorical(self) -> bool:
        return bool(self.category_means)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "key": self.keys,
                "metric": self.metric,
                "resolution_hours": self.resolution_hours,
            }
        )

    def means_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "category": list(self.category_means),
                "tickets": [self.category_counts.get(c, 0) for c in self.category_means],
                "mean_resolution_hours": list(self.category_means.values()),
            }
        )


def category_mean(total: float, count: int) -> float | None:
    """Mean of a category, or None ("undefined") when the category is empty."""
    if count <= 0:
        return None
    return float(total) / count


def _select(
    df: pd.DataFrame,
    bounds: ResolutionBounds | None,
    refinements: list[tuple[pd.Series, str]] | None = None,
) -> tuple[pd.DataFrame, dict[str, int]]:
    if df.empty:
        return df, {}
    reasons = exclusion_reasons(df, bounds)
    for keep, reason in refinements or []:
        reasons = refine(reasons, keep, reason)
    return df[reasons.isna()].copy(), count_reasons(reasons)


def _series(analysis: str, selected: pd.DataFrame, metric_col: str, skipped: dict[str, int]) -> CorrelationSeries:
    if selected.empty:
        return CorrelationSeries(analysis=analysis, skipped=skipped)
    return CorrelationSeries(
        analysis=analysis,
        keys=selected["key"].astype(str).tolist(),
        metric=selected[metric_col].tolist(),
        resolution_hours=selected["resolution_hours"].astype(float).tolist(),
        skipped=skipped,
    )


def _label_means(
    labels: list[str],
    hours: list[float],
    categories: list[str],
) -> tuple[dict[str, int], dict[str, float | None]]:
    """Count and mean resolution time per label; every listed category is always reported."""
    totals: dict[str, float] = {c: 0.0 for c in categories}
    counts: dict[str, int] = {c: 0 for c in categories}
    for label, value in zip(labels, hours, strict=True):
        totals[label] = totals.get(label, 0.0) + value
        counts[label] = counts.get(label, 0) + 1
    return counts, {c: category_mean(totals[c], counts[c]) for c in counts}


# ------------------ Aggregators ------------------
def wordiness_analysis(
    df: pd.DataFrame,
    text_field: TextField | str,
    *,
    bounds: ResolutionBounds | None = None,
    max_fields_words: int = MAX_FIELDS_WORDS,
) -> CorrelationSeries:
    """Word count of a text field against resolution time.

    Comments only count tickets that have commented words; the combined
    summary + description field drops empty and log-sized texts
    (``>= max_fields_words``).
    """
    text_field = TextField.parse(text_field)
    analysis = f"{text_field.value}_wordiness"
    if df.empty:
        return CorrelationSeries(analysis=analysis)
    words = pd.to_numeric(df[text_field.column], errors="coerce").fillna(0)
    refinements: list[tuple[pd.Series, str]] = []
    if text_field is TextField.COMMENTS:
        refinements.append((words > 0, METRIC_OUT_OF_BOUNDS))
    elif text_field is TextField.SUMMARY_DESCRIPTION:
        refinements.append(((words > 0) & (words < max_fields_words), METRIC_OUT_OF_BOUNDS))
    selected, skipped = _select(df, bounds, refinements)
    if not selected.empty:
        selected[text_field.column] = pd.to_numeric(selected[text_field.column], errors="coerce").astype(float)
    return _series(analysis, selected, text_field.column, skipped)


def attachments_analysis(df: pd.DataFrame, *, bounds: ResolutionBounds | None = None) -> CorrelationSeries:
    """Attachment category against resolution time.

    A ticket contributes one entry per distinct attachment category, or a
    single ``Without Attachments`` entry when it has none.
    """
    analysis = "attachments"
    selected, skipped = _select(df, bounds)
    series = CorrelationSeries(analysis=analysis, skipped=skipped)
    if not selected.empty:
        work = selected[["key", "attachment_categories", "resolution_hours"]].copy()
        work["category"] = work["attachment_categories"].apply(
            lambda cats: list(cats) if isinstance(cats, list | tuple) and cats else [WITHOUT_ATTACHMENTS_LABEL]
        )
        exploded = work.explode("category")
        series.keys = exploded["key"].astype(str).tolist()
        series.metric = exploded["category"].astype(str).tolist()
        series.resolution_hours = exploded["resolution_hours"].astype(float).tolist()
    present = set(series.metric)
    observed = [c.value for c in AttachmentCategory if c.value in present]
    series.category_counts, series.category_means = _label_means(
        series.metric, series.resolution_hours, observed + [WITHOUT_ATTACHMENTS_LABEL]
    )
    return series


def _score_analysis(
    df: pd.DataFrame,
    analysis: str,
    flag_col: str,
    score_col: str,
    bounds: ResolutionBounds | None,
) -> CorrelationSeries:
    if df.empty:
        return CorrelationSeries(analysis=analysis)
    scored = df[flag_col].fillna(False).astype(bool) & df[score_col].notna()
    selected, skipped = _select(df, bounds, [(scored, NO_SCORE)])
    if not selected.empty:
        selected[score_col] = selected[score_col].astype(float)
    return _series(analysis, selected, score_col, skipped)


def sentiment_analysis(df: pd.DataFrame, *, bounds: ResolutionBounds | None = None) -> CorrelationSeries:
    return _score_analysis(df, "sentiment", "has_sentiment", "sentiment_score", bounds)


def grammar_analysis(df: pd.DataFrame, *, bounds: ResolutionBounds | None = None) -> CorrelationSeries:
    return _score_analysis(df, "grammar", "has_grammar", "grammar_score", bounds)


def _boolean_analysis(
    df: pd.DataFrame,
    analysis: str,
    flag_col: str,
    with_label: str,
    without_label: str,
    bounds: ResolutionBounds | None,
) -> CorrelationSeries:
    selected, skipped = _select(df, bounds)
    if not selected.empty:
        selected[flag_col] = selected[flag_col].fillna(False).astype(bool)
    series = _series(analysis, selected, flag_col, skipped)
    labels = [with_label if flag else without_label for flag in series.metric]
    series.category_counts, series.category_means = _label_means(
        labels, series.resolution_hours, [with_label, without_label]
    )
    return series


def steps_to_reproduce_analysis(df: pd.DataFrame, *, bounds: ResolutionBounds | None = None) -> CorrelationSeries:
    return _boolean_analysis(
        df,
        "steps_to_reproduce",
        "has_steps_to_reproduce",
        "With Steps to Reproduce",
        "Without Steps to Reproduce",
        bounds,
    )


def stack_trace_analysis(df: pd.DataFrame, *, bounds: ResolutionBounds | None = None) -> CorrelationSeries:
    return _boolean_analysis(
        df,
        "stack_traces",
        "has_stack_trace",
        "With Stack Traces",
        "Without Stack Traces",
        bounds,
    )


# ------------------ Registry ------------------
@dataclass(slots=True, frozen=True)
class AnalysisSpec:
    name: str
    title: str
    metric_title: str
    kind: str  # "scatter" or "bar"
    func: Callable[..., CorrelationSeries]
    accepts_word_cap: bool = False


ANALYSES: dict[str, AnalysisSpec] = {
    spec.name: spec
    for spec in (
        AnalysisSpec(
            "description_complexity",
            "Description Complexity Analysis",
            "Description Words",
            "scatter",
            partial(wordiness_analysis, text_field=TextField.DESCRIPTION),
        ),
        AnalysisSpec(
            "summary_complexity",
            "Summary Complexity Analysis",
            "Summary Words",
            "scatter",
            partial(wordiness_analysis, text_field=TextField.SUMMARY),
        ),
        AnalysisSpec(
            "comment_complexity",
            "Comments Complexity Analysis",
            "Comment Words",
            "scatter",
            partial(wordiness_analysis, text_field=TextField.COMMENTS),
        ),
        AnalysisSpec(
            "fields_complexity",
            "Fields Complexity Analysis",
            "Summary + Description Words",
            "scatter",
            partial(wordiness_analysis, text_field=TextField.SUMMARY_DESCRIPTION),
            accepts_word_cap=True,
        ),
        AnalysisSpec(
            "attachments", "Presence and Type of Attachments Analysis", "Attachment Type", "bar", attachments_analysis
        ),
        AnalysisSpec("sentiment", "Sentiment Analysis", "Sentiment Score", "scatter", sentiment_analysis),
        AnalysisSpec("grammar", "Grammar Correctness Analysis", "Grammar Correctness Score", "scatter", grammar_analysis),
        AnalysisSpec(
            "steps_to_reproduce", "Steps To Reproduce Analysis", "Steps to Reproduce", "bar", steps_to_reproduce_analysis
        ),
        AnalysisSpec("stack_traces", "Stack Traces Analysis", "Stack Traces", "bar", stack_trace_analysis),
    )
}


def get_analysis(name: str) -> AnalysisSpec:
    spec = ANALYSES.get(name)
    if spec is None:
        raise UnsupportedAnalysisError(name, list(ANALYSES))
    return spec


def run_analysis(
    df: pd.DataFrame,
    name: str,
    *,
    bounds: ResolutionBounds | None = None,
    max_fields_words: int = MAX_FIELDS_WORDS,
) -> CorrelationSeries:
    spec = get_analysis(name)
    if spec.accepts_word_cap:
        return spec.func(df, bounds=bounds, max_fields_words=max_fields_words)
    return spec.func(df, bounds=bounds)
