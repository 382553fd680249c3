"""Central configuration, constants, and tuning knobs for the analysis engine."""

from __future__ import annotations

import re
from collections.abc import Sequence
from pathlib import Path

# =============================================================================
# Jira Connection Settings
# =============================================================================
JIRA_REST_API_VERSION = "2"

# Canonical field list for Jira fetches (changelog is requested as an expand)
JIRA_FETCH_BASE_FIELDS = [
    "summary",
    "description",
    "created",
    "priority",
    "status",
    "issuetype",
    "comment",
    "attachment",
]

# JQL search paging and result caching
SEARCH_PAGE_SIZE = 100
SEARCH_CACHE_TTL_SECONDS = 300.0

# Comment hydration: the search endpoint truncates embedded comment lists.
FULL_COMMENT_HYDRATION = False
COMMENT_HYDRATION_MAX_WORKERS = 8
COMMENT_HYDRATION_MIN_PARALLEL = 4
COMMENT_PAGE_SIZE_GUESS = 20

# =============================================================================
# Workflow Status Configuration
# =============================================================================
STATUS_FIELD = "status"
STATUS_OPEN = "Open"
STATUS_IN_PROGRESS = "In Progress"
STATUS_CLOSED = "Closed"
STATUS_REOPENED = "Reopened"

# =============================================================================
# Priority Configuration
# =============================================================================
HIGH_PRIORITY_NAMES: frozenset[str] = frozenset({"Critical", "Major"})

# Priority aliases for normalization (lowercase keys)
PRIORITY_ALIASES: dict[str, str] = {
    "blocker": "Blocker",
    "critical": "Critical",
    "major": "Major",
    "minor": "Minor",
    "trivial": "Trivial",
    "none": "Undefined",
    "undefined": "Undefined",
    # Numeric priority IDs (legacy Jira values)
    "1": "Critical",
    "2": "Major",
    "3": "Minor",
    "4": "Trivial",
}


_MIGRATED_SUFFIX = re.compile(r"\s*\(migrated\)\s*$", re.IGNORECASE)


def normalize_priority_name(priority: str | None) -> str:
    """Canonical priority name for a raw Jira value.

    ``"Major (migrated)"``, ``"  MAJOR "`` and the legacy id ``"2"`` all map
    to ``"Major"``; empty values become ``"Undefined"`` and unknown names are
    returned stripped but otherwise untouched.
    """
    name = _MIGRATED_SUFFIX.sub("", str(priority or "")).strip()
    return PRIORITY_ALIASES.get(name.lower(), name or "Undefined")


# =============================================================================
# Analysis Bounds
# =============================================================================
# Resolution times outside (MIN, MAX] hours are treated as data-entry outliers.
MIN_RESOLUTION_HOURS = 0.0
MAX_RESOLUTION_HOURS = 27000.0
# Summary + description word counts at or above this cap are pasted logs, not prose.
MAX_FIELDS_WORDS = 1000

WITHOUT_ATTACHMENTS_LABEL = "Without Attachments"

# =============================================================================
# Pattern Detection
# =============================================================================
# Two or more consecutive lines that start with an (optionally indented) bullet.
STEPS_TO_REPRODUCE_PATTERN = r"(?m)(?:^[ \t]*\*[^\n]*(?:\n|\Z)){2,}"
# A line mentioning an Exception followed by at least two "at ..." frame lines.
STACK_TRACE_PATTERN = r"(?m)^[^\n]*Exception[^\n]*\n(?:[ \t]*at\b[^\n]*(?:\n|\Z)){2,}"

# =============================================================================
# Attachment Classification
# =============================================================================
ATTACHMENT_EXTENSIONS: dict[str, str] = {
    # image
    "png": "image",
    "jpg": "image",
    "jpeg": "image",
    "gif": "image",
    "bmp": "image",
    "svg": "image",
    "tiff": "image",
    # text
    "txt": "text",
    "md": "text",
    "pdf": "text",
    "log": "text",
    "rtf": "text",
    "doc": "text",
    "docx": "text",
    "html": "text",
    # video
    "mp4": "video",
    "avi": "video",
    "mkv": "video",
    "mov": "video",
    "webm": "video",
    # archive
    "zip": "archive",
    "tar": "archive",
    "gz": "archive",
    "tgz": "archive",
    "bz2": "archive",
    "7z": "archive",
    "rar": "archive",
    "jar": "archive",
    # config
    "xml": "config",
    "yaml": "config",
    "yml": "config",
    "json": "config",
    "ini": "config",
    "properties": "config",
    "conf": "config",
    "cfg": "config",
    "toml": "config",
    # spreadsheet
    "csv": "spreadsheet",
    "xls": "spreadsheet",
    "xlsx": "spreadsheet",
    "ods": "spreadsheet",
    "tsv": "spreadsheet",
    # other (binary blobs that are neither source nor documents)
    "bin": "other",
    "dat": "other",
    "exe": "other",
    "hprof": "other",
    "dump": "other",
}
# Unrecognized extensions are assumed to be source files.
DEFAULT_ATTACHMENT_CATEGORY = "code"

# =============================================================================
# Scoring
# =============================================================================
SCORING_MAX_WORKERS = 8
SCORING_MIN_PARALLEL = 4
SCORING_TIMEOUT_SECONDS = 15.0
BING_SPELLCHECK_URL = "https://api.bing.microsoft.com/v7.0/spellcheck"
GOOGLE_SENTIMENT_URL = "https://language.googleapis.com/v1/documents:analyzeSentiment"

# =============================================================================
# Storage & Output
# =============================================================================
DEFAULT_STORE_PATH = Path("data") / "tickets"
GRAPHS_PATH = Path("resources") / "graphs"

# Columns of the analysis DataFrame built from enriched tickets
TICKET_FRAME_COLUMNS: Sequence[str] = (
    "key",
    "summary",
    "priority",
    "status",
    "created",
    "resolution_hours",
    "final_state",
    "summary_words",
    "description_words",
    "comment_words",
    "summary_description_words",
    "attachment_categories",
    "has_attachments",
    "has_steps_to_reproduce",
    "has_stack_trace",
    "sentiment_score",
    "has_sentiment",
    "grammar_score",
    "has_grammar",
)
