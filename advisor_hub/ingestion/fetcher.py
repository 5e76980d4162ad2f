"""Firecrawl client: turns a listing page URL into markdown."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .errors import ScrapeError

logger = logging.getLogger(__name__)

FIRECRAWL_SCRAPE_URL = "https://api.firecrawl.dev/v1/scrape"


class FirecrawlFetcher:
    """Wraps the Firecrawl scrape endpoint. Failures surface as ``ScrapeError``.

    Not retried: a failed source is logged by the pipeline and skipped.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = FIRECRAWL_SCRAPE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_url = api_url
        self._transport = transport

    async def fetch_markdown(self, url: str) -> str:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {"url": url, "formats": ["markdown"]}
        logger.info("Scraping listing page: %s", url)

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(self._api_url, json=payload, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            raise ScrapeError(f"Scrape request failed for {url}: {exc}") from exc
        except ValueError as exc:
            raise ScrapeError(f"Scrape service returned invalid JSON for {url}") from exc

        if not isinstance(data, dict):
            raise ScrapeError(f"Unexpected scrape response shape for {url}: {type(data).__name__}")
        if not data.get("success", True):
            raise ScrapeError(f"Scrape service reported failure for {url}: {data.get('error')}")

        nested = data.get("data")
        if nested is not None and not isinstance(nested, dict):
            raise ScrapeError(f"Unexpected scrape payload for {url}: {type(nested).__name__}")
        markdown = (nested or {}).get("markdown") or data.get("markdown") or ""
        if not isinstance(markdown, str) or not markdown.strip():
            raise ScrapeError(f"No content returned for {url}")
        return markdown
