"""Convenience launcher for the Streamlit app.

Usage:
  streamlit run run_dashboard.py

Automatically imports every module in ``jira_insights/pages`` so each page
decorated with ``@register_page`` registers itself without manual edits here.
"""

import logging
from importlib import import_module
from pathlib import Path

import streamlit as st

from jira_insights.app import main

st.set_page_config(layout="wide")
logger = logging.getLogger(__name__)


def _auto_init_ticket_service():
    """Initialize the ticket service from Streamlit secrets if available."""
    if "ticket_service" in st.session_state:
        return

    jira_secrets = st.secrets.get("jira", {})
    server = jira_secrets.get("JIRA_SERVER") or st.secrets.get("JIRA_SERVER")
    email = jira_secrets.get("JIRA_EMAIL") or st.secrets.get("JIRA_EMAIL")
    token = jira_secrets.get("JIRA_API_TOKEN") or st.secrets.get("JIRA_API_TOKEN")

    if not (server and email and token):
        st.sidebar.warning("Jira secrets not found. Please use the Setup page.")
        return
    from jira_insights.core.jira_client import JiraAPI
    from jira_insights.core.service import TicketService

    try:
        api = JiraAPI(server, email, token)
    except Exception as e:
        st.sidebar.error(f"Jira connection failed: {e}")
        return
    st.session_state["jira_server"] = server
    st.session_state["ticket_service"] = TicketService(api)
    st.sidebar.success("Jira connection ready.")


_auto_init_ticket_service()

PAGES_DIR = Path(__file__).parent / "jira_insights" / "pages"
for py in sorted(PAGES_DIR.glob("[!_]*.py")):
    mod_name = f"jira_insights.pages.{py.stem}"
    try:
        import_module(mod_name)
    except ImportError as e:  # pragma: no cover
        logger.error("Failed importing page %s: %s", mod_name, e)

if __name__ == "__main__":
    main()
