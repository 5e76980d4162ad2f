"""Ingestion orchestrator: scrape -> parse -> dedupe -> score -> rewrite -> persist.

Sources and candidates are processed strictly one at a time. A failed
source or candidate is logged and counted; it never aborts the run.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from ..config import Settings, get_settings
from ..slugs import generate_advisor_slug
from .errors import ConfigurationError, DuplicateAdvisorError, ScrapeError
from .fetcher import FirecrawlFetcher
from .locations import format_location, normalize_city, normalize_state
from .models import CandidateOutcome, IngestionSummary, OutcomeStatus, ScrapedAdvisor
from .parsers import parse_advisors
from .rewriter import BioRewriter, generate_fallback_bio
from .scoring import sort_by_priority
from .utils import call_with_fallback

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_URL = "https://samslist.co/advisors"
DEFAULT_LIMIT = 20
DEFAULT_MAX_PAGES = 1
MAX_SPECIALTIES = 6

Sleep = Callable[[float], Awaitable[Any]]


def build_source_urls(url: str, max_pages: int = 1) -> List[str]:
    """Return ``url`` followed by ``?page=2`` .. ``?page=max_pages`` variants."""
    urls = [url]
    parsed = urlparse(url)
    query = [(key, value) for key, value in parse_qsl(parsed.query) if key != "page"]
    for page in range(2, max(max_pages, 1) + 1):
        page_query = urlencode(query + [("page", str(page))])
        urls.append(urlunparse(parsed._replace(query=page_query)))
    return urls


def merge_specialties(scraped: Sequence[str], rewritten: Sequence[str]) -> List[str]:
    """Scraped specialties first, then the model's, without repeats."""
    merged: List[str] = []
    for specialty in [*scraped, *rewritten]:
        if specialty and specialty not in merged:
            merged.append(specialty)
    return merged[:MAX_SPECIALTIES]


def normalize_candidate(candidate: ScrapedAdvisor) -> ScrapedAdvisor:
    return candidate.model_copy(
        update={
            "city": normalize_city(candidate.city),
            "state": normalize_state(candidate.state),
        }
    )


def candidate_slug(candidate: ScrapedAdvisor) -> str:
    primary = candidate.specialties[0] if candidate.specialties else candidate.designation
    return generate_advisor_slug(candidate.name, candidate.city, primary)


class IngestionPipeline:
    """Runs listing sources through the full pipeline.

    ``storage`` needs ``advisor_exists(slug=..., website_url=...)`` and
    ``create_advisor(data)``; the latter raises ``DuplicateAdvisorError`` on a
    unique collision. ``sleep`` is injectable so tests skip the courtesy delays.
    """

    def __init__(
        self,
        fetcher: FirecrawlFetcher,
        rewriter: BioRewriter,
        storage: Any,
        sleep: Sleep = asyncio.sleep,
        candidate_delay: float = 0.5,
        source_delay: float = 3.0,
    ) -> None:
        self._fetcher = fetcher
        self._rewriter = rewriter
        self._storage = storage
        self._sleep = sleep
        self._candidate_delay = candidate_delay
        self._source_delay = source_delay

    async def run(self, source_urls: Iterable[str], limit: int) -> IngestionSummary:
        summary = IngestionSummary()
        for index, url in enumerate(source_urls):
            if index:
                await self._sleep(self._source_delay)
            logger.info("=" * 50)
            logger.info("Source %d: %s (limit %d)", index + 1, url, limit)
            try:
                await self._process_source(url, limit, summary)
            except Exception as exc:
                logger.exception("Source %s failed: %s", url, exc)
                summary.sources_failed += 1

        logger.info("=" * 50)
        logger.info(
            "Pipeline complete. Found: %d | Added: %d | Skipped: %d | Errors: %d | Failed sources: %d",
            summary.found,
            summary.added,
            summary.skipped,
            summary.errored,
            summary.sources_failed,
        )
        return summary

    async def _process_source(self, url: str, limit: int, summary: IngestionSummary) -> None:
        try:
            markdown = await self._fetcher.fetch_markdown(url)
        except ScrapeError as exc:
            logger.error("Skipping source %s: %s", url, exc)
            summary.sources_failed += 1
            return

        candidates = parse_advisors(markdown, limit, url)
        summary.found += len(candidates)
        if not candidates:
            logger.info("No advisors found at %s", url)
            return

        survivors: List[ScrapedAdvisor] = []
        for candidate in candidates:
            normalized = normalize_candidate(candidate)
            slug = candidate_slug(normalized)
            logger.debug(
                "Location: %s, %s -> %s, %s",
                candidate.city,
                candidate.state,
                normalized.city,
                normalized.state,
            )
            try:
                exists = self._storage.advisor_exists(slug=slug, website_url=normalized.website_url)
            except Exception as exc:
                logger.exception("ERROR: duplicate check for %s - %s", normalized.name, exc)
                summary.record(
                    CandidateOutcome(
                        name=normalized.name,
                        slug=slug,
                        status=OutcomeStatus.ERROR,
                        detail=str(exc),
                        source_url=url,
                    )
                )
                continue
            if exists:
                logger.info("SKIPPED: %s (%s) already exists", normalized.name, slug)
                summary.record(
                    CandidateOutcome(
                        name=normalized.name,
                        slug=slug,
                        status=OutcomeStatus.DUPLICATE,
                        detail="Duplicate advisor (website or slug already exists)",
                        source_url=url,
                    )
                )
                continue
            survivors.append(normalized)

        prioritized = sort_by_priority(survivors)
        for rank, advisor in enumerate(prioritized, start=1):
            logger.info("  %d. %s (score: %s)", rank, advisor.name, advisor.priority_score)

        for advisor in prioritized:
            summary.record(await self._ingest(advisor, url))
            await self._sleep(self._candidate_delay)

    async def _ingest(self, advisor: ScrapedAdvisor, source_url: str) -> CandidateOutcome:
        slug = candidate_slug(advisor)
        outcome = functools.partial(
            CandidateOutcome,
            name=advisor.name,
            slug=slug,
            priority_score=advisor.priority_score,
            source_url=source_url,
        )
        logger.info("Processing: %s", advisor.name)

        try:
            location = format_location(advisor.city, advisor.state)
            rewritten = await call_with_fallback(
                functools.partial(self._rewriter.rewrite, advisor.bio or ""),
                functools.partial(generate_fallback_bio, firm_name=advisor.firm_name),
                advisor.name,
                advisor.designation,
                location,
            )
            self._storage.create_advisor(self._advisor_record(advisor, slug, rewritten.bio, rewritten.specialties))
        except DuplicateAdvisorError as exc:
            logger.info("SKIPPED: %s - %s", advisor.name, exc)
            return outcome(status=OutcomeStatus.DUPLICATE, detail=str(exc))
        except Exception as exc:
            logger.exception("ERROR: %s - %s", advisor.name, exc)
            return outcome(status=OutcomeStatus.ERROR, detail=str(exc))

        logger.info("SUCCESS: Added %s -> %s", advisor.name, slug)
        return outcome(status=OutcomeStatus.ADDED)

    @staticmethod
    def _advisor_record(
        advisor: ScrapedAdvisor, slug: str, bio: str, specialties: Sequence[str]
    ) -> Dict[str, Any]:
        return {
            "name": advisor.name,
            "firm_name": advisor.firm_name,
            "designation": advisor.designation,
            "city": advisor.city,
            "state": advisor.state,
            "zip_code": advisor.zip_code,
            "website_url": advisor.website_url,
            "linkedin_url": advisor.linkedin_url,
            "bio": bio,
            "specialties": merge_specialties(advisor.specialties, specialties),
            "is_verified_strategist": False,
            "slug": slug,
        }


async def run_scraper_pipeline(
    url: str = DEFAULT_SOURCE_URL,
    storage: Any = None,
    limit: int = DEFAULT_LIMIT,
    max_pages: int = DEFAULT_MAX_PAGES,
    settings: Optional[Settings] = None,
    sleep: Sleep = asyncio.sleep,
) -> IngestionSummary:
    """Wire the fetcher, rewriter and pipeline from settings and run it.

    Raises ``ConfigurationError`` before any network call when a credential
    or the storage backend is missing.
    """
    settings = settings or get_settings()
    missing = [name for name in settings.missing_pipeline_credentials() if name != "DATABASE_URL"]
    if storage is None:
        missing.append("DATABASE_URL")
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    pipeline = IngestionPipeline(
        fetcher=FirecrawlFetcher(settings.firecrawl_api_key, settings.firecrawl_api_url),
        rewriter=BioRewriter.from_api_key(settings.api_key, model=settings.gemini_model),
        storage=storage,
        sleep=sleep,
        candidate_delay=settings.candidate_delay_seconds,
        source_delay=settings.source_delay_seconds,
    )
    logger.info("Starting Advisor Scraper Pipeline: %s (limit %d, pages %d)", url, limit, max_pages)
    return await pipeline.run(build_source_urls(url, max_pages), limit)
