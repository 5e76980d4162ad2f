"""URL slug helpers shared by the directory, the blog and the pipeline."""

from __future__ import annotations

import re
from typing import Optional

MAX_SLUG_LENGTH = 100

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(value: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Lowercase ``value`` and collapse every non-alphanumeric run into ``-``."""

    slug = _NON_ALNUM.sub("-", (value or "").lower()).strip("-")
    return slug[:max_length].rstrip("-")


def generate_advisor_slug(name: str, city: str, primary_specialty: Optional[str] = None) -> str:
    """Return the ``name-city-specialty`` slug used for advisor profile URLs."""

    parts = [name, city]
    if primary_specialty:
        parts.append(primary_specialty)
    return slugify("-".join(parts))


def generate_blog_slug(title: str) -> str:
    return slugify(title)


def city_slug(city: str, state: str) -> str:
    """Slug for a city hub, e.g. ``duluth-ga``."""

    return slugify(f"{city}-{state}")
