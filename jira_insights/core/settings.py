"""Load analysis tuning from ``analysis.yaml`` (with fallbacks to config constants)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import load_dotenv

from jira_insights.analytics.metrics.patterns import PatternDetector
from jira_insights.analytics.metrics.resolution import ClosurePolicy

from .config import (
    MAX_FIELDS_WORDS,
    MAX_RESOLUTION_HOURS,
    MIN_RESOLUTION_HOURS,
    SCORING_MAX_WORKERS,
    STACK_TRACE_PATTERN,
    STEPS_TO_REPRODUCE_PATTERN,
)
from .errors import ConfigurationError

_CACHE: AnalysisSettings | None = None


@dataclass(slots=True)
class AnalysisSettings:
    min_resolution_hours: float = MIN_RESOLUTION_HOURS
    max_resolution_hours: float = MAX_RESOLUTION_HOURS
    max_fields_words: int = MAX_FIELDS_WORDS
    closure_policy: ClosurePolicy = ClosurePolicy.FIRST
    scoring_max_workers: int = SCORING_MAX_WORKERS
    steps_to_reproduce_pattern: str = STEPS_TO_REPRODUCE_PATTERN
    stack_trace_pattern: str = STACK_TRACE_PATTERN

    def steps_detector(self) -> PatternDetector:
        return PatternDetector("steps_to_reproduce", self.steps_to_reproduce_pattern)

    def stack_trace_detector(self) -> PatternDetector:
        return PatternDetector("stack_trace", self.stack_trace_pattern)


@dataclass(slots=True)
class Credentials:
    jira_server: str | None = None
    jira_email: str | None = None
    jira_token: str | None = None
    bing_key: str | None = None
    google_api_key: str | None = None

    @property
    def has_jira(self) -> bool:
        return bool(self.jira_server and self.jira_email and self.jira_token)


def _parse(data: dict) -> AnalysisSettings:
    defaults = AnalysisSettings()
    bounds = data.get("bounds") or {}
    patterns = data.get("patterns") or {}
    scoring = data.get("scoring") or {}
    policy_name = str(data.get("closure_policy") or defaults.closure_policy.value).lower()
    try:
        policy = ClosurePolicy(policy_name)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown closure_policy {policy_name!r}") from exc
    settings = AnalysisSettings(
        min_resolution_hours=float(bounds.get("min_resolution_hours", defaults.min_resolution_hours)),
        max_resolution_hours=float(bounds.get("max_resolution_hours", defaults.max_resolution_hours)),
        max_fields_words=int(bounds.get("max_fields_words", defaults.max_fields_words)),
        closure_policy=policy,
        scoring_max_workers=int(scoring.get("max_workers", defaults.scoring_max_workers)),
        steps_to_reproduce_pattern=patterns.get("steps_to_reproduce") or defaults.steps_to_reproduce_pattern,
        stack_trace_pattern=patterns.get("stack_trace") or defaults.stack_trace_pattern,
    )
    # Compile overrides now so a bad expression fails at load time.
    settings.steps_detector()
    settings.stack_trace_detector()
    return settings


def load_analysis_settings(base_path: str | Path | None = None, *, reload: bool = False) -> AnalysisSettings:
    global _CACHE
    if _CACHE is not None and not reload and base_path is None:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parents[2])
    yaml_path = base / "analysis.yaml"
    if not yaml_path.exists():
        settings = AnalysisSettings()
    else:
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Could not parse {yaml_path}: {exc}") from exc
        settings = _parse(data)
    if base_path is None:
        _CACHE = settings
    return settings


def load_credentials(env_file: str | Path | None = None) -> Credentials:
    """Read service credentials from the environment (``.env`` is loaded if present)."""
    load_dotenv(env_file)
    return Credentials(
        jira_server=os.getenv("JIRA_SERVER"),
        jira_email=os.getenv("JIRA_EMAIL"),
        jira_token=os.getenv("JIRA_API_TOKEN") or os.getenv("JIRA_TOKEN"),
        bing_key=os.getenv("BING_SPELLCHECK_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
    )
