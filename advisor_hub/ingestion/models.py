"""Pydantic data models for the advisor ingestion pipeline."""

from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, Field

DEFAULT_DESIGNATION = "Wealth Manager"

# Zero-filled postal code for listings that do not publish one. No enrichment
# step replaces it, so readers of the advisors table must tolerate it.
PLACEHOLDER_ZIP = "00000"


class ScrapedAdvisor(BaseModel):
    """One advisor candidate extracted from a listing page."""

    name: str
    firm_name: str | None = None
    designation: str = DEFAULT_DESIGNATION
    city: str = ""
    state: str = ""
    zip_code: str = PLACEHOLDER_ZIP
    website_url: str | None = None
    linkedin_url: str | None = None
    profile_url: str | None = None
    bio: str | None = None
    specialties: List[str] = Field(default_factory=list)
    priority_score: int | None = Field(default=None, ge=0, le=100)


class RewrittenBio(BaseModel):
    """Bio text and specialties returned by the model (or the fallback template)."""

    bio: str
    specialties: List[str] = Field(default_factory=list)


class OutcomeStatus(str, Enum):
    ADDED = "added"
    DUPLICATE = "duplicate"
    ERROR = "error"


class CandidateOutcome(BaseModel):
    name: str
    slug: str | None = None
    status: OutcomeStatus
    priority_score: int | None = None
    detail: str | None = None
    source_url: str = ""


class IngestionSummary(BaseModel):
    """Aggregate counts for one pipeline run."""

    found: int = 0
    added: int = 0
    skipped: int = 0
    errored: int = 0
    sources_failed: int = 0
    outcomes: List[CandidateOutcome] = Field(default_factory=list)

    def record(self, outcome: CandidateOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status is OutcomeStatus.ADDED:
            self.added += 1
        elif outcome.status is OutcomeStatus.DUPLICATE:
            self.skipped += 1
        else:
            self.errored += 1
