"""Priority scoring: how valuable a candidate is for the tax / captive / HNW niche."""

from __future__ import annotations

from typing import Iterable, List

from .models import ScrapedAdvisor

HIGH_PRIORITY_KEYWORDS = (
    "tax", "captive", "reinsurance", "831(b)", "831b",
    "high net worth", "hnw", "uhnw", "ultra high",
    "business owner", "entrepreneur", "succession",
    "estate planning", "wealth preservation", "tax optimization",
    "strategic", "proactive", "advanced tax",
)

MEDIUM_PRIORITY_KEYWORDS = (
    "cpa", "accounting", "financial planning", "wealth management",
    "investment", "retirement", "executive", "corporate",
)

HIGH_POINTS, HIGH_CAP = 10, 50
MEDIUM_POINTS, MEDIUM_CAP = 5, 25
CPA_BONUS = 15
SPECIALTY_BONUS = 10
MAX_SCORE = 100


def _search_text(advisor: ScrapedAdvisor) -> str:
    parts = [advisor.name, advisor.firm_name, advisor.bio, advisor.designation, *advisor.specialties]
    return " ".join(part for part in parts if part).lower()


def _keyword_points(text: str, keywords: Iterable[str], points: int, cap: int) -> int:
    return min(sum(points for keyword in keywords if keyword in text), cap)


def calculate_priority_score(advisor: ScrapedAdvisor) -> int:
    """Score ``advisor`` from 0 to 100. Pure; does not modify the advisor."""
    text = _search_text(advisor)

    score = _keyword_points(text, HIGH_PRIORITY_KEYWORDS, HIGH_POINTS, HIGH_CAP)
    score += _keyword_points(text, MEDIUM_PRIORITY_KEYWORDS, MEDIUM_POINTS, MEDIUM_CAP)
    if "cpa" in advisor.designation.lower() or "cpa" in text:
        score += CPA_BONUS
    if advisor.specialties:
        score += SPECIALTY_BONUS
    return max(0, min(score, MAX_SCORE))


def sort_by_priority(advisors: Iterable[ScrapedAdvisor]) -> List[ScrapedAdvisor]:
    """Return scored copies, highest first. Ties keep their input order."""
    scored = [
        advisor.model_copy(update={"priority_score": calculate_priority_score(advisor)})
        for advisor in advisors
    ]
    return sorted(scored, key=lambda advisor: advisor.priority_score or 0, reverse=True)
