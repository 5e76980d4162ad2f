"""Exceptions raised by the ingestion pipeline."""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for pipeline failures."""


class ConfigurationError(IngestionError):
    """Required credentials are missing. Fatal: raised before any work starts."""


class ScrapeError(IngestionError):
    """The scrape service failed or returned no content for a source."""


class RewriteError(IngestionError):
    """The model call failed or its response could not be parsed."""


class DuplicateAdvisorError(IngestionError):
    """An advisor with the same slug or website already exists."""

    def __init__(self, slug: str, website_url: str | None = None) -> None:
        self.slug = slug
        self.website_url = website_url
        super().__init__(f"Duplicate advisor (website or slug already exists): {slug}")
