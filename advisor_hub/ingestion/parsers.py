"""Source-specific parsers that pull advisor candidates out of scraped markdown.

Each listing source gets its own ``SourceParser`` subclass with a primary
pattern and an alternative pattern. The alternative only runs when the
primary finds nothing. Parsers never raise; a page that matches neither
pattern yields an empty list.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Set, Type
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from .keywords import infer_designation, infer_specialties
from .locations import STATE_NAMES
from .models import PLACEHOLDER_ZIP, ScrapedAdvisor

logger = logging.getLogger(__name__)


class SourceId(str, Enum):
    SAMSLIST = "samslist"
    DIRECTORY = "directory"

    @classmethod
    def from_url(cls, url: Optional[str]) -> "SourceId":
        """Pick the source from the URL's domain; unknown domains are generic directories."""
        if not url:
            return cls.DIRECTORY
        parsed = urlparse(url if "://" in url else f"https://{url}")
        host = (parsed.hostname or "").lower()
        if host == "samslist.co" or host.endswith(".samslist.co"):
            return cls.SAMSLIST
        return cls.DIRECTORY


# ----------------------------------------------------------------------
# Shared helpers
# ----------------------------------------------------------------------

NAV_TOKENS = re.compile(
    r"\b(?:home|contact|view more|about|login|sign|menu|search|privacy|terms)\b",
    re.IGNORECASE,
)
MIN_NAME_LENGTH = 3

_MD_LINK = re.compile(r"\[([^\]]*)\]\(([^)\s]+)[^)]*\)")
_LIST_MARKER = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+")
_EMPHASIS = re.compile(r"(\*\*|__|\*|_)")
_ZIP = re.compile(r"^\d{5}(?:-\d{4})?$")

_STATE_FULL_NAMES = {name.upper() for name in STATE_NAMES.values()}


def clean_text(text: str) -> str:
    """Strip inline HTML and markdown emphasis, collapse whitespace."""
    if "<" in text and ">" in text:
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = _EMPHASIS.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def is_state(value: str) -> bool:
    candidate = value.strip().upper()
    return candidate in STATE_NAMES or candidate in _STATE_FULL_NAMES


def parse_location(line: str) -> Optional[tuple[str, str, str]]:
    """Parse ``City, ST [zip]`` into ``(city, state, zip)``; ``None`` if it isn't one."""
    cleaned = clean_text(_LIST_MARKER.sub("", line))
    if cleaned.count(",") != 1:
        return None
    city, rest = (part.strip() for part in cleaned.split(","))
    if not city or not re.fullmatch(r"[A-Za-z][A-Za-z .'\-]*", city):
        return None

    tokens = rest.split()
    zip_code = PLACEHOLDER_ZIP
    if tokens and _ZIP.match(tokens[-1]):
        zip_code = tokens.pop()[:5]
    state = " ".join(tokens)
    if not state or not is_state(state):
        return None
    return city, state, zip_code


class NameFilter:
    """Exclusion rules shared by every parser, scoped to one parse pass."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()

    def accept(self, name: str) -> bool:
        if len(name) < MIN_NAME_LENGTH:
            return False
        if name.startswith(("#", "!")):
            return False
        if NAV_TOKENS.search(name):
            return False
        if name in self._seen:
            return False
        self._seen.add(name)
        return True


def _quoted(text: str, min_len: int, max_len: int) -> Optional[str]:
    match = re.search(r'["“]([^"“”]{%d,%d})["”]' % (min_len, max_len), text)
    return clean_text(match.group(1)) if match else None


# ----------------------------------------------------------------------
# Parser interface
# ----------------------------------------------------------------------


class SourceParser:
    """Common interface: ``parse(content, limit) -> list[ScrapedAdvisor]``."""

    source_id: ClassVar[SourceId]

    def parse(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        if not content or limit <= 0:
            return []
        advisors = self.parse_primary(content, limit)
        if not advisors:
            logger.info("%s primary pattern found nothing, trying alternative", self.source_id.value)
            advisors = self.parse_alternative(content, limit)
        return advisors[:limit]

    def parse_primary(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        raise NotImplementedError

    def parse_alternative(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        raise NotImplementedError


class SamslistParser(SourceParser):
    """samslist.co cards: ``![Name | Specialty, Specialty](img)`` then a name line.

    The listing page shows no location, so every record gets the New York
    default, zip included.
    """

    source_id = SourceId.SAMSLIST

    DEFAULT_CITY = "New York"
    DEFAULT_STATE = "NY"
    DEFAULT_ZIP = "10001"
    MAX_SPECIALTIES = 5
    ALTERNATIVE_SPECIALTIES = ["Financial Planning", "Wealth Management"]

    CARD = re.compile(r"!\[([^|\]]+)\s*\|\s*([^\]]+)\]\([^)]+\)\s*\n\n([^\n]+?)(?:\n|$)")
    CREDENTIALED_NAME = re.compile(
        r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)+),?\s*(CFP|CPA|EA|BFA|CEPA)\b"
    )
    BARE_NAME = re.compile(r"^([A-Z][a-z]+(?:\s+[A-Z][a-z]+)+)\s*$")
    COMPANY_WORDS = ("LLC", "Inc", "Group", "Wealth")

    def _advisor(self, **fields) -> ScrapedAdvisor:
        return ScrapedAdvisor(
            city=self.DEFAULT_CITY,
            state=self.DEFAULT_STATE,
            zip_code=self.DEFAULT_ZIP,
            **fields,
        )

    def parse_primary(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        advisors: List[ScrapedAdvisor] = []
        names = NameFilter()
        matches = list(self.CARD.finditer(content))

        for index, match in enumerate(matches):
            if len(advisors) >= limit:
                break
            alt_name = clean_text(match.group(1))
            specialties_text = clean_text(match.group(2))
            name = clean_text(match.group(3)) or alt_name
            if not names.accept(name):
                continue

            # Testimonials belong to the card they follow, never the next one.
            end = matches[index + 1].start() if index + 1 < len(matches) else len(content)
            bio = _quoted(content[match.end():end], 50, 500)

            specialties = [s.strip() for s in specialties_text.split(",") if s.strip()]
            advisors.append(
                self._advisor(
                    name=name,
                    designation=infer_designation(specialties_text),
                    bio=bio,
                    specialties=specialties[: self.MAX_SPECIALTIES],
                )
            )
        return advisors

    def parse_alternative(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        advisors: List[ScrapedAdvisor] = []
        names = NameFilter()
        lines = content.split("\n")

        for i, raw_line in enumerate(lines):
            if len(advisors) >= limit:
                break
            line = raw_line.strip()
            if len(line) < 5 or line.startswith(("#", "[", "!")):
                continue

            credential = ""
            match = self.CREDENTIALED_NAME.match(line)
            if match:
                credential = match.group(2)
            else:
                match = self.BARE_NAME.match(line)
            if not match:
                continue

            name = match.group(1).strip()
            if len(name) < 5 or any(word in name for word in self.COMPANY_WORDS):
                continue
            if not names.accept(name):
                continue

            context = " ".join(lines[max(0, i - 3): i + 5])
            specialties = infer_specialties(context) or list(self.ALTERNATIVE_SPECIALTIES)
            advisors.append(
                self._advisor(
                    name=name,
                    designation=infer_designation(credential),
                    bio=_quoted(context, 30, 300),
                    specialties=specialties,
                )
            )
        return advisors


class DirectoryParser(SourceParser):
    """Generic advisor directories.

    Primary: a headshot image ``![Name, CREDS headshot](img)`` followed within
    a few lines by an optional firm line and a ``City, ST [zip]`` line.
    Alternative: one-line entries ``Name, CREDS - City, ST [zip]``.
    """

    source_id = SourceId.DIRECTORY

    LOOKAHEAD_LINES = 6

    HEADSHOT = re.compile(
        r"!\[\s*(?P<name>[^\],|]+?)(?:\s*,\s*(?P<creds>[^\]]*?))?\s+headshot\s*\]\([^)]*\)",
        re.IGNORECASE,
    )
    ONE_LINE = re.compile(
        r"^(?P<name>[A-Z][A-Za-z.'\- ]+?),\s*(?P<creds>[A-Za-z&/,. ]+?)"
        r"\s+[-|–]\s+(?P<location>.+)$"
    )

    def parse_primary(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        advisors: List[ScrapedAdvisor] = []
        names = NameFilter()

        for match in self.HEADSHOT.finditer(content):
            if len(advisors) >= limit:
                break
            name = clean_text(match.group("name"))
            credentials = clean_text(match.group("creds") or "")

            following = content[match.end():].split("\n")
            firm_name: Optional[str] = None
            location = None
            links: Dict[str, str] = {}
            for raw_line in [line for line in following if line.strip()][: self.LOOKAHEAD_LINES]:
                if self.HEADSHOT.search(raw_line):
                    break
                location = parse_location(raw_line)
                if location:
                    break
                if _MD_LINK.search(raw_line):
                    self._collect_links(raw_line, links)
                    continue
                candidate = clean_text(_LIST_MARKER.sub("", raw_line)).lstrip("# ")
                if firm_name is None and candidate and candidate != name:
                    firm_name = candidate

            if location is None or not names.accept(name):
                continue

            city, state, zip_code = location
            keyword_text = " ".join(filter(None, [credentials, firm_name]))
            advisors.append(
                ScrapedAdvisor(
                    name=name,
                    firm_name=firm_name,
                    designation=infer_designation(keyword_text),
                    city=city,
                    state=state,
                    zip_code=zip_code,
                    specialties=infer_specialties(keyword_text),
                    **links,
                )
            )
        return advisors

    def parse_alternative(self, content: str, limit: int) -> List[ScrapedAdvisor]:
        advisors: List[ScrapedAdvisor] = []
        names = NameFilter()

        for raw_line in content.split("\n"):
            if len(advisors) >= limit:
                break
            line = clean_text(_LIST_MARKER.sub("", raw_line))
            match = self.ONE_LINE.match(line)
            if not match:
                continue
            location = parse_location(match.group("location"))
            if location is None:
                continue
            name = match.group("name").strip()
            if not names.accept(name):
                continue

            credentials = match.group("creds")
            city, state, zip_code = location
            advisors.append(
                ScrapedAdvisor(
                    name=name,
                    designation=infer_designation(credentials),
                    city=city,
                    state=state,
                    zip_code=zip_code,
                    specialties=infer_specialties(credentials),
                )
            )
        return advisors

    @staticmethod
    def _collect_links(line: str, links: Dict[str, str]) -> None:
        for text, url in _MD_LINK.findall(line):
            if "linkedin.com" in url:
                links.setdefault("linkedin_url", url)
            elif "website" in text.lower():
                links.setdefault("website_url", url)
            else:
                links.setdefault("profile_url", url)


PARSERS: Dict[SourceId, Type[SourceParser]] = {
    SourceId.SAMSLIST: SamslistParser,
    SourceId.DIRECTORY: DirectoryParser,
}


def get_parser(source_url: Optional[str]) -> SourceParser:
    return PARSERS[SourceId.from_url(source_url)]()


def parse_advisors(content: str, limit: int, source_url: Optional[str] = None) -> List[ScrapedAdvisor]:
    """Parse ``content`` with the parser registered for ``source_url``'s domain."""
    parser = get_parser(source_url)
    advisors = parser.parse(content, limit)
    logger.info("Parsed %d advisor(s) from %s", len(advisors), source_url or "content")
    return advisors
