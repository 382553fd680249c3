"""Connection setup page: collect Jira credentials, fetch and enrich a project."""

from __future__ import annotations

import logging

import streamlit as st

from jira_insights.app import register_page
from jira_insights.core.config import DEFAULT_STORE_PATH
from jira_insights.core.jira_client import JiraAPI
from jira_insights.core.service import TicketService
from jira_insights.core.store import TicketStore
from jira_insights.visual.progress import ProgressReporter

logger = logging.getLogger(__name__)


def _secret(name: str, *aliases: str) -> str | None:
    jira_secrets = st.secrets.get("jira", {})
    for key in (name, *aliases):
        value = jira_secrets.get(key) or st.secrets.get(key)
        if value:
            return value
    return None


@register_page("Setup / Connection")
def setup_page():
    st.title("Jira Connection Setup")
    st.caption("Enter credentials (use secrets manager in production).")

    server = st.text_input(
        "Jira Server URL",
        value=st.session_state.get("jira_server") or _secret("JIRA_SERVER") or "",
    )
    email = st.text_input(
        "Email / Username",
        value=st.session_state.get("jira_email") or _secret("JIRA_EMAIL") or "",
    )
    token = st.text_input("API Token", type="password", value=_secret("JIRA_API_TOKEN", "JIRA_TOKEN") or "")
    if st.button("Initialize Connection", type="primary"):
        if not (server and email and token):
            st.error("All fields required.")
            return
        try:
            api = JiraAPI(server, email, token)
        except Exception as exc:  # pragma: no cover - network error path
            logger.error("Failed to initialize Jira client: %s", exc)
            st.error(f"Failed to initialize Jira client: {exc}")
            return
        st.session_state["jira_server"] = server
        st.session_state["jira_email"] = email
        st.session_state["ticket_service"] = TicketService(api)
        st.success("Connection initialized.")

    st.markdown("---")
    store_path = st.text_input("Ticket store directory", value=str(DEFAULT_STORE_PATH))
    st.session_state["store_path"] = store_path
    store = TicketStore(store_path)
    st.caption(f"{store.count()} ticket(s) currently stored.")

    service: TicketService | None = st.session_state.get("ticket_service")
    project = st.text_input("Project key", value=st.session_state.get("project_key", ""))
    max_days = st.number_input("Only tickets created in the last N days (0 = all)", min_value=0, value=0)
    col_fetch, col_load = st.columns(2)

    if col_fetch.button("Fetch & Store", disabled=service is None or not project):
        reporter = ProgressReporter(f"Fetching tickets for {project}")
        try:
            tickets = service.fetch_and_enrich(
                project, progress=reporter.callback, max_days=int(max_days) or None
            )
            store.upsert(tickets)
        except RuntimeError as exc:
            logger.error("Jira API error fetching %s: %s", project, exc)
            reporter.error(f"Failed to fetch tickets: {exc}")
            return
        st.session_state["project_key"] = project
        st.session_state["tickets"] = tickets
        reporter.complete(f"Stored {len(tickets)} ticket(s) for {project}.")

    if col_load.button("Load From Store"):
        tickets = store.all()
        TicketService(settings=service.settings if service else None).enrich(tickets)
        st.session_state["tickets"] = tickets
        st.success(f"Loaded {len(tickets)} ticket(s) from {store_path}.")

    if service is not None:
        st.info("TicketService ready.")
