"""Application entry point: page registry and router."""

from __future__ import annotations

import streamlit as st

PAGES = {}
PREFERRED_ORDER = ("Correlation Analysis", "Setup / Connection")


def register_page(label):
    def decorator(func):
        PAGES[label] = func
        return func

    return decorator


def main():
    st.sidebar.title("Jira Insights")
    if not PAGES:
        st.write("No pages registered yet.")
        return
    pages = [name for name in PREFERRED_ORDER if name in PAGES]
    pages += sorted(name for name in PAGES if name not in PREFERRED_ORDER)
    # Nothing to analyze until a project has been loaded
    if "Setup / Connection" in pages and "tickets" not in st.session_state:
        default = pages.index("Setup / Connection")
    else:
        default = 0
    page = st.sidebar.selectbox("Page", pages, index=default)
    PAGES[page]()


if __name__ == "__main__":
    main()
