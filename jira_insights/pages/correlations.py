"""Correlation analysis page: ticket traits vs. time-to-close."""

from __future__ import annotations

import threading

import streamlit as st

from jira_insights.analytics.aggregations.correlation import ANALYSES, run_analysis
from jira_insights.analytics.segments.filters import ResolutionBounds, exclusion_reasons, priority_breakdown
from jira_insights.app import register_page
from jira_insights.core.config import DEFAULT_STORE_PATH
from jira_insights.core.mappers import tickets_to_dataframe
from jira_insights.core.service import TicketService
from jira_insights.core.store import TicketStore
from jira_insights.scoring.clients import BingGrammarScorer, GoogleSentimentScorer
from jira_insights.visual.charts import analysis_chart
from jira_insights.visual.progress import ProgressReporter

SCORED_ANALYSES = {"sentiment", "grammar"}


def _store() -> TicketStore:
    return TicketStore(st.session_state.get("store_path") or DEFAULT_STORE_PATH)


def _load_tickets():
    tickets = st.session_state.get("tickets")
    if tickets:
        return tickets
    store = _store()
    if not store.count():
        return []
    service = st.session_state.get("ticket_service") or TicketService()
    tickets = service.enrich(store.all())
    st.session_state["tickets"] = tickets
    return tickets


def _scorers_for(analysis: str):
    scorers = []
    if analysis == "grammar":
        key = st.secrets.get("BING_SPELLCHECK_KEY")
        if key:
            scorers.append(BingGrammarScorer(key))
    elif analysis == "sentiment":
        key = st.secrets.get("GOOGLE_API_KEY")
        if key:
            scorers.append(GoogleSentimentScorer(key))
    return scorers


@register_page("Correlation Analysis")
def correlations_page():
    st.title("Correlation Analysis")
    tickets = _load_tickets()
    if not tickets:
        st.warning("No tickets loaded. Fetch a project on the Setup page first.")
        return

    service = st.session_state.get("ticket_service") or TicketService()
    settings = service.settings
    bounds = ResolutionBounds.from_settings(settings)

    names = list(ANALYSES)
    analysis = st.selectbox("Analysis", names, format_func=lambda n: ANALYSES[n].title)
    spec = ANALYSES[analysis]

    if analysis in SCORED_ANALYSES:
        scorers = _scorers_for(analysis)
        if not scorers:
            st.info("No API key configured for this analysis; only previously scored tickets are shown.")
        else:
            score_col, cancel_col = st.columns(2)
            if cancel_col.button("Cancel scoring"):
                running = st.session_state.get("scoring_cancel")
                if running is not None:
                    running.set()
            if score_col.button("Score tickets"):
                cancel_event = threading.Event()
                st.session_state["scoring_cancel"] = cancel_event
                reporter = ProgressReporter("Scoring tickets")
                store = _store()
                report = service.score(
                    tickets, scorers, cancel_event=cancel_event, progress=reporter.callback, store=store
                )
                summary = (
                    f"Scored {report.scored.get(analysis, 0)} of {report.total} ticket(s); "
                    f"{len(report.failures)} failed; saved to {store.base_path}."
                )
                if report.cancelled:
                    reporter.error("Cancelled. " + summary)
                else:
                    reporter.complete(summary)

    df = tickets_to_dataframe(tickets)
    reasons = exclusion_reasons(df, bounds)
    eligible_count = int(reasons.isna().sum())
    c1, c2, c3 = st.columns(3)
    c1.metric("Tickets", len(df))
    c2.metric("Eligible", eligible_count)
    c3.metric("Excluded", len(df) - eligible_count)
    with st.expander("Priority breakdown"):
        st.write(dict(priority_breakdown(df)))

    series = run_analysis(df, analysis, bounds=bounds, max_fields_words=settings.max_fields_words)
    if not len(series):
        st.info("No tickets qualify for this analysis.")
    chart = analysis_chart(series, spec)
    if chart is not None:
        st.altair_chart(chart, use_container_width=True)

    if series.is_categorical:
        st.subheader("Mean time-to-close per category")
        st.dataframe(series.means_frame(), hide_index=True)
    if series.skipped:
        st.caption("Skipped: " + ", ".join(f"{k}={v}" for k, v in sorted(series.skipped.items())))

    frame = series.to_frame()
    with st.expander(f"Series ({len(frame)} rows)"):
        st.dataframe(frame, hide_index=True)
    st.download_button(
        "Download CSV",
        frame.to_csv(index=False).encode("utf-8"),
        file_name=f"{series.analysis}.csv",
        mime="text/csv",
    )
