"""Command-line entry point: fetch tickets, derive metrics, render correlation charts.

Usage::

    jira-insights fetch PROJ
    jira-insights analyze --type all
    jira-insights plot --type attachments
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from jira_insights.analytics.aggregations.correlation import ANALYSES, get_analysis, run_analysis
from jira_insights.analytics.segments.filters import ResolutionBounds
from jira_insights.core.config import DEFAULT_STORE_PATH, GRAPHS_PATH
from jira_insights.core.errors import ConfigurationError, JiraInsightsError
from jira_insights.core.jira_client import JiraAPI
from jira_insights.core.mappers import tickets_to_dataframe
from jira_insights.core.service import TicketService
from jira_insights.core.settings import Credentials, load_analysis_settings, load_credentials
from jira_insights.core.store import TicketStore
from jira_insights.scoring.base import Scorer
from jira_insights.scoring.clients import BingGrammarScorer, GoogleSentimentScorer
from jira_insights.visual.charts import analysis_chart, save_chart

logger = logging.getLogger(__name__)

SCORED_TYPES = ("grammar", "sentiment")
DERIVED_TYPES = ("steps_to_reproduce", "stack_traces", "attachments", "comment_complexity", "fields_complexity")
ANALYZE_TYPES = (*SCORED_TYPES, *DERIVED_TYPES, "all")


class LogProgress:
    """Progress callback that reports through the module logger."""

    def __init__(self, every: int = 50):
        self.every = max(1, every)

    def __call__(self, message: str, current: int | None = None, total: int | None = None) -> None:
        if current is None or total is None:
            logger.info("%s", message)
        elif current == total or current % self.every == 0:
            logger.info("%s (%s/%s)", message, current, total)


def _build_scorers(kind: str, creds: Credentials) -> list[Scorer]:
    wanted = SCORED_TYPES if kind == "all" else (kind,) if kind in SCORED_TYPES else ()
    scorers: list[Scorer] = []
    if "grammar" in wanted:
        if creds.bing_key:
            scorers.append(BingGrammarScorer(creds.bing_key))
        else:
            logger.warning("BING_SPELLCHECK_KEY not set; skipping grammar scoring")
    if "sentiment" in wanted:
        if creds.google_api_key:
            scorers.append(GoogleSentimentScorer(creds.google_api_key))
        else:
            logger.warning("GOOGLE_API_KEY not set; skipping sentiment scoring")
    return scorers


def cmd_fetch(args, creds: Credentials) -> int:
    if not creds.has_jira:
        raise ConfigurationError("JIRA_SERVER, JIRA_EMAIL and JIRA_API_TOKEN must be set to fetch tickets")
    service = TicketService(JiraAPI(creds.jira_server, creds.jira_email, creds.jira_token))
    tickets = service.fetch_and_enrich(args.project, progress=LogProgress(), max_days=args.max_days)
    written = TicketStore(args.store).upsert(tickets)
    print(f"Stored {written} ticket(s) for {args.project} in {args.store}")
    return 0


def cmd_analyze(args, creds: Credentials) -> int:
    store = TicketStore(args.store)
    service = TicketService()
    tickets = service.enrich(store.all(), progress=LogProgress())
    scorers = _build_scorers(args.type, creds)
    if scorers:
        report = service.score(tickets, scorers, progress=LogProgress())
        for target, scored in sorted(report.scored.items()):
            print(f"{target}: scored {scored}, skipped {report.skipped_no_score(target)}")
    store.upsert(tickets)
    print(f"Analyzed {len(tickets)} ticket(s)")
    return 0


def cmd_plot(args, creds: Credentials) -> int:
    settings = load_analysis_settings()
    bounds = ResolutionBounds.from_settings(settings)
    df = tickets_to_dataframe(TicketStore(args.store).all())
    names = list(ANALYSES) if args.type == "all" else [get_analysis(args.type).name]
    out_dir = Path(args.output)
    for name in names:
        spec = ANALYSES[name]
        series = run_analysis(df, name, bounds=bounds, max_fields_words=settings.max_fields_words)
        print(f"{spec.title}: {len(series)} point(s)")
        for category, mean in series.category_means.items():
            shown = "undefined" if mean is None else f"{mean:.2f}"
            print(f"  {category}: {shown} h ({series.category_counts.get(category, 0)} ticket(s))")
        if series.skipped:
            print("  skipped: " + ", ".join(f"{k}={v}" for k, v in sorted(series.skipped.items())))
        chart = analysis_chart(series, spec)
        if chart is None:
            logger.warning("No data to plot for %s", name)
            continue
        path = save_chart(chart, out_dir / f"{name}.html")
        print(f"  chart: {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jira-insights", description=__doc__.splitlines()[0])
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    parser.add_argument("--env-file", default=None, help="dotenv file with credentials")
    parser.add_argument("--store", default=str(DEFAULT_STORE_PATH), help="ticket store directory")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="fetch a project's tickets into the store")
    fetch.add_argument("project", help="Jira project key")
    fetch.add_argument("--max-days", type=int, default=None, help="only tickets created in the last N days")
    fetch.set_defaults(func=cmd_fetch)

    analyze = sub.add_parser("analyze", help="derive metrics and scores for stored tickets")
    analyze.add_argument("--type", choices=ANALYZE_TYPES, default="all")
    analyze.set_defaults(func=cmd_analyze)

    plot = sub.add_parser("plot", help="render correlation charts for stored tickets")
    plot.add_argument("--type", choices=(*ANALYSES, "all"), default="all")
    plot.add_argument("--output", default=str(GRAPHS_PATH), help="chart output directory")
    plot.set_defaults(func=cmd_plot)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    creds = load_credentials(args.env_file)
    try:
        return args.func(args, creds)
    except JiraInsightsError as exc:
        logger.error("%s", exc)
        return 2
    except RuntimeError as exc:
        logger.error("Jira request failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
