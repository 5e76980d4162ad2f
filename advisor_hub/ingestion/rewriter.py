"""Gemini-backed bio rewriter and its deterministic fallback."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from google import genai

from .errors import RewriteError
from .models import RewrittenBio
from .utils import retry, strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

FALLBACK_SPECIALTIES: List[str] = ["Tax Planning", "Wealth Management", "Risk Management"]

REWRITE_PROMPT = """You are an SEO content specialist for a financial advisor directory focused on Strategic Wealth and Tax Planning.

Rewrite the following advisor bio to be:
1. Completely unique (no duplicate content penalty from Google)
2. Professional and authoritative in tone
3. Focused on Strategic Wealth and Tax Planning themes
4. Optimized for SEO with natural keyword usage
5. Between 150-300 words
6. Highlighting their expertise in areas like: captive insurance, reinsurance strategies, tax optimization, wealth preservation, and business succession planning

Also extract or infer 3-5 key specialties from the bio.

Advisor Details:
- Name: {name}
- Designation: {designation}
- Location: {location}
- Original Bio: {original_bio}

Respond in JSON format only:
{{
  "bio": "The rewritten bio text here...",
  "specialties": ["Specialty 1", "Specialty 2", "Specialty 3"]
}}"""


def build_rewrite_prompt(original_bio: str, name: str, designation: str, location: str) -> str:
    return REWRITE_PROMPT.format(
        name=name,
        designation=designation,
        location=location,
        original_bio=original_bio or "No bio provided",
    )


def parse_rewrite_response(raw: Optional[str]) -> RewrittenBio:
    """Parse the model's JSON answer. Anything unusable raises ``RewriteError``."""
    if not raw or not raw.strip():
        raise RewriteError("Empty response from model")

    cleaned = strip_code_fences(raw)
    try:
        data: Any = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.debug("Unparsable model response: %s", raw[:200])
        raise RewriteError("Failed to parse AI response as JSON") from exc

    if not isinstance(data, dict):
        raise RewriteError("AI response is not a JSON object")
    bio = data.get("bio")
    if not isinstance(bio, str) or not bio.strip():
        raise RewriteError("AI response is missing 'bio'")

    specialties = data.get("specialties") or []
    if not isinstance(specialties, list):
        specialties = []
    return RewrittenBio(
        bio=bio.strip(),
        specialties=[str(item).strip() for item in specialties if str(item).strip()],
    )


class BioRewriter:
    """Rewrites scraped bios for SEO with Gemini.

    Each call is retried up to three times, sleeping 2s then 4s between
    attempts. Malformed JSON counts as a failed attempt, same as a network
    error. Callers combine it with ``generate_fallback_bio`` through
    ``call_with_fallback``.
    """

    def __init__(self, client: Any, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self._model = model

    @classmethod
    def from_api_key(cls, api_key: str, model: str = DEFAULT_MODEL) -> "BioRewriter":
        return cls(genai.Client(api_key=api_key), model=model)

    @retry(max_attempts=3, base_delay=2.0, backoff="linear")
    async def rewrite(
        self,
        original_bio: str,
        name: str,
        designation: str,
        location: str,
    ) -> RewrittenBio:
        prompt = build_rewrite_prompt(original_bio, name, designation, location)
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=prompt,
            )
        except Exception as exc:
            raise RewriteError(f"Gemini request failed: {exc}") from exc

        result = parse_rewrite_response(getattr(response, "text", None))
        logger.info("Rewrote bio for %s (%d specialties)", name, len(result.specialties))
        return result


def generate_fallback_bio(
    name: str,
    designation: str,
    location: str,
    firm_name: Optional[str] = None,
) -> RewrittenBio:
    """Templated bio used when every rewrite attempt fails.

    Always contains ``name`` and ``designation`` verbatim.
    """
    firm = f" at {firm_name}" if firm_name else ""
    bio = (
        f"{name} is a distinguished {designation}{firm} based in {location}. "
        f"With a focus on strategic wealth and tax planning, {name} helps clients "
        "navigate complex financial decisions and optimize their tax positions. "
        "Specializing in innovative risk management solutions including captive "
        f"insurance and reinsurance strategies, {name} delivers comprehensive "
        "financial guidance tailored to each client's unique situation."
    )
    return RewrittenBio(bio=bio, specialties=list(FALLBACK_SPECIALTIES))
