"""Streamlit status panel for fetch / enrich / scoring passes."""

from __future__ import annotations

from collections.abc import Callable

import streamlit as st

ProgressCallback = Callable[[str, int | None, int | None], None]


class ProgressReporter:
    """Status panel fed by ``(message, current, total)`` progress callbacks.

    Each distinct message is treated as a pipeline stage (querying, comment
    hydration, metric derivation, scoring) and gets its own progress bar.
    """

    def __init__(self, title: str):
        self._status = st.status(title, expanded=True)
        self._stage: str | None = None
        self._bar = None
        self._done = False

    def callback(self, message: str, current: int | None = None, total: int | None = None) -> None:
        if self._done:
            return
        if message != self._stage:
            self._stage = message
            self._status.write(message)
            self._bar = self._status.progress(0.0)
        if total:
            done = max(0, current or 0)
            self._bar.progress(min(done / total, 1.0), text=f"{done}/{total}")

    def complete(self, message: str) -> None:
        if not self._done:
            self._status.update(label=message, state="complete", expanded=False)
            self._done = True

    def error(self, message: str) -> None:
        if not self._done:
            self._status.error(message)
            self._status.update(label=message, state="error")
            self._done = True
