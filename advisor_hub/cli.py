#!/usr/bin/env python3
"""Advisor Hub command line: scraping, blog generation and database chores.

Usage::

    advisor-hub scrape https://samslist.co/advisors --limit 20 --max-pages 2
    advisor-hub generate-blog --set alpha
    advisor-hub seed
    advisor-hub create-admin ops@example.com
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import pandas as pd
from dotenv import load_dotenv
from rich import box
from rich.table import Table

from . import create_app
from .config import Settings, get_settings
from .extensions import db
from .ingestion.errors import ConfigurationError
from .ingestion.models import IngestionSummary, OutcomeStatus
from .ingestion.pipeline import DEFAULT_LIMIT, DEFAULT_MAX_PAGES, DEFAULT_SOURCE_URL, run_scraper_pipeline
from .ingestion.utils import console, setup_logging
from .seed_data import seed_advisors
from .services.content_service import ARTICLE_SETS, ArticleWriter, publish_articles

logger = logging.getLogger("advisor_hub")

EXPORT_COLUMNS = ["name", "slug", "status", "priority_score", "detail", "source_url"]

STATUS_STYLES = {
    OutcomeStatus.ADDED: "[green]",
    OutcomeStatus.DUPLICATE: "[yellow]",
    OutcomeStatus.ERROR: "[red]",
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------
def _report_missing(missing: List[str]) -> int:
    for name in missing:
        logger.critical("Missing required environment variable: %s", name)
    return 1


def print_summary(summary: IngestionSummary) -> None:
    table = Table(
        title="Scraper Summary",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Advisor", style="white", max_width=40)
    table.add_column("Score", justify="center", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Slug / detail", style="dim")

    for outcome in summary.outcomes:
        style = STATUS_STYLES.get(outcome.status, "")
        score = "-" if outcome.priority_score is None else str(outcome.priority_score)
        table.add_row(
            outcome.name,
            score,
            f"{style}{outcome.status.value}[/]",
            outcome.detail or outcome.slug or "",
        )

    console.print(table)
    console.print(
        f"Found [bold]{summary.found}[/bold], added [green]{summary.added}[/green], "
        f"skipped [yellow]{summary.skipped}[/yellow], errors [red]{summary.errored}[/red], "
        f"failed sources [red]{summary.sources_failed}[/red]"
    )


def export_outcomes(summary: IngestionSummary, output_path: str) -> int:
    rows = [outcome.model_dump(include=set(EXPORT_COLUMNS), mode="json") for outcome in summary.outcomes]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    df.to_csv(output_path, index=False, encoding="utf-8")
    logger.info("Exported %d outcomes -> %s", len(df), output_path)
    return len(df)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------
def cmd_scrape(args: argparse.Namespace, settings: Settings) -> int:
    missing = settings.missing_pipeline_credentials()
    if missing:
        return _report_missing(missing)

    app = create_app(settings)
    with app.app_context():
        try:
            summary = asyncio.run(
                run_scraper_pipeline(
                    url=args.url,
                    storage=app.storage_service,
                    limit=args.limit,
                    max_pages=args.max_pages,
                    settings=settings,
                )
            )
        except ConfigurationError as exc:
            logger.critical("%s", exc)
            return 1

    print_summary(summary)
    if args.output:
        export_outcomes(summary, args.output)
    return 0


def cmd_generate_blog(args: argparse.Namespace, settings: Settings) -> int:
    if not settings.api_key:
        return _report_missing(["GEMINI_API_KEY"])

    specs = ARTICLE_SETS[args.set]
    writer = ArticleWriter.from_api_key(settings.api_key, model=settings.gemini_model)
    app = create_app(settings)
    with app.app_context():
        logger.info("Generating %d %s articles", len(specs), args.set)
        counts = asyncio.run(publish_articles(specs, writer, app.storage_service))

    logger.info(
        "Blog generation complete: %d created, %d skipped, %d errors",
        counts["created"],
        counts["skipped"],
        counts["errored"],
    )
    return 0


def cmd_seed(args: argparse.Namespace, settings: Settings) -> int:
    app = create_app(settings)
    with app.app_context():
        seed_advisors(app.storage_service)
    return 0


def cmd_init_db(args: argparse.Namespace, settings: Settings) -> int:
    app = create_app(settings)
    with app.app_context():
        db.create_all()
    logger.info("Database tables verified / created.")
    return 0


def cmd_create_admin(args: argparse.Namespace, settings: Settings) -> int:
    app = create_app(settings)
    with app.app_context():
        admin = app.storage_service.create_admin_user(args.email)
    logger.info("Admin user ready: %s", admin.email)
    if not settings.admin_password:
        logger.warning("ADMIN_PASSWORD is not set; admin login stays disabled until it is.")
    return 0


COMMANDS = {
    "scrape": cmd_scrape,
    "generate-blog": cmd_generate_blog,
    "seed": cmd_seed,
    "init-db": cmd_init_db,
    "create-admin": cmd_create_admin,
}


# ------------------------------------------------------------------
# CLI argument parser
# ------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="advisor-hub",
        description="Advisor Hub: directory ingestion and maintenance tasks.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser("scrape", help="Scrape a listing page into the directory")
    scrape.add_argument("url", nargs="?", default=DEFAULT_SOURCE_URL, help="Listing page URL")
    scrape.add_argument(
        "--limit", type=int, default=DEFAULT_LIMIT, help=f"Max advisors per page (default {DEFAULT_LIMIT})"
    )
    scrape.add_argument(
        "--max-pages", type=int, default=DEFAULT_MAX_PAGES, help="Number of listing pages to visit"
    )
    scrape.add_argument("--output", default=None, help="Write per-candidate outcomes to this CSV")

    blog = subparsers.add_parser("generate-blog", help="Generate and publish a set of articles")
    blog.add_argument("--set", choices=sorted(ARTICLE_SETS), default="pillar", help="Article set")

    subparsers.add_parser("seed", help="Insert the sample advisor profiles")
    subparsers.add_parser("init-db", help="Create database tables")

    admin = subparsers.add_parser("create-admin", help="Register an admin email")
    admin.add_argument("email", help="Admin email address")

    return parser


# ------------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, log_file=args.log_file)
    return COMMANDS[args.command](args, get_settings())


if __name__ == "__main__":
    sys.exit(main())
