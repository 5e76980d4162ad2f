"""Location normalization for SEO-stable city and state values.

Both helpers are best effort: they never raise and always return a string,
which may be low quality when the input is malformed.
"""

from __future__ import annotations

import re
from typing import Dict

STATE_NAMES: Dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas", "CA": "California",
    "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware", "FL": "Florida", "GA": "Georgia",
    "HI": "Hawaii", "ID": "Idaho", "IL": "Illinois", "IN": "Indiana", "IA": "Iowa",
    "KS": "Kansas", "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi", "MO": "Missouri",
    "MT": "Montana", "NE": "Nebraska", "NV": "Nevada", "NH": "New Hampshire", "NJ": "New Jersey",
    "NM": "New Mexico", "NY": "New York", "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio",
    "OK": "Oklahoma", "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah", "VT": "Vermont",
    "VA": "Virginia", "WA": "Washington", "WV": "West Virginia", "WI": "Wisconsin", "WY": "Wyoming",
    "DC": "District of Columbia",
}

_STATE_CODES_BY_NAME: Dict[str, str] = {name.upper(): code for code, name in STATE_NAMES.items()}

CITY_NORMALIZATIONS: Dict[str, str] = {
    "nyc": "New York",
    "ny": "New York",
    "la": "Los Angeles",
    "sf": "San Francisco",
    "dc": "Washington",
    "philly": "Philadelphia",
    "vegas": "Las Vegas",
    "nola": "New Orleans",
    "chi": "Chicago",
    "atl": "Atlanta",
    "dallas-fort worth": "Dallas",
    "dfw": "Dallas",
}

_WHITESPACE = re.compile(r"\s+")


def normalize_city(city: str) -> str:
    """Map nicknames to canonical names, otherwise title-case each word."""

    collapsed = _WHITESPACE.sub(" ", (city or "").strip())
    nickname = CITY_NORMALIZATIONS.get(collapsed.lower())
    if nickname:
        return nickname
    return " ".join(word[:1].upper() + word[1:].lower() for word in collapsed.split(" ") if word)


def normalize_state(state: str) -> str:
    """Return a two-letter state code, falling back to the first two characters."""

    upper_state = _WHITESPACE.sub(" ", (state or "").strip()).upper()
    if upper_state in STATE_NAMES:
        return upper_state

    code = _STATE_CODES_BY_NAME.get(upper_state)
    if code:
        return code

    # Unvalidated: may not be a real state code.
    return upper_state[:2]


def format_location(city: str, state: str) -> str:
    return f"{city}, {state}"
