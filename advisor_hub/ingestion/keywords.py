"""Keyword rule tables for specialty and designation inference.

Rules are evaluated in table order. Matching is token level: ``ea`` matches
"EA" or "CPA, EA" but not "team".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from .models import DEFAULT_DESIGNATION

CPA_DESIGNATION = "CPA"
COMBINED_DESIGNATION = "CPA & Wealth Manager"


@dataclass(frozen=True)
class KeywordRule:
    """Contributes ``value`` when ``keyword`` appears as a whole token."""

    keyword: str
    value: str
    _pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        pattern = re.compile(
            r"(?<![a-z0-9])" + re.escape(self.keyword.lower()) + r"(?![a-z0-9])"
        )
        object.__setattr__(self, "_pattern", pattern)

    def matches(self, text: str) -> bool:
        return bool(self._pattern.search(text.lower()))


SPECIALTY_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule("cpa", "Tax Planning"),
    KeywordRule("cfp", "Financial Planning"),
    KeywordRule("tax", "Tax Planning"),
    KeywordRule("estate", "Estate Planning"),
    KeywordRule("retirement", "Retirement Planning"),
    KeywordRule("captive", "Captive Insurance"),
    KeywordRule("reinsurance", "Reinsurance"),
    KeywordRule("401(k)", "401(k) Management"),
    KeywordRule("ira", "IRA Planning"),
    KeywordRule("investment", "Investment Management"),
    KeywordRule("insurance", "Insurance Planning"),
    KeywordRule("portfolio", "Portfolio Management"),
    KeywordRule("wealth", "Wealth Management"),
    KeywordRule("financial planning", "Financial Planning"),
)

TAX_TOKENS: Tuple[KeywordRule, ...] = tuple(
    KeywordRule(token, "tax") for token in ("cpa", "tax", "accounting", "ea")
)
WEALTH_TOKENS: Tuple[KeywordRule, ...] = tuple(
    KeywordRule(token, "wealth")
    for token in ("wealth", "financial", "cfp", "cfa", "investment", "advisor")
)


def _any_match(rules: Iterable[KeywordRule], text: str) -> bool:
    return any(rule.matches(text) for rule in rules)


def infer_specialties(text: str, limit: int | None = None) -> List[str]:
    """Specialties contributed by ``text``, in rule order, without repeats."""
    specialties: List[str] = []
    for rule in SPECIALTY_RULES:
        if rule.value not in specialties and rule.matches(text):
            specialties.append(rule.value)
    return specialties[:limit] if limit else specialties


def infer_designation(text: str) -> str:
    has_tax = _any_match(TAX_TOKENS, text)
    has_wealth = _any_match(WEALTH_TOKENS, text)
    if has_tax and has_wealth:
        return COMBINED_DESIGNATION
    if has_tax:
        return CPA_DESIGNATION
    return DEFAULT_DESIGNATION
