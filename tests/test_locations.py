from __future__ import annotations

from unittest import TestCase

from advisor_hub.ingestion.locations import (
    CITY_NORMALIZATIONS,
    STATE_NAMES,
    format_location,
    normalize_city,
    normalize_state,
)


class NormalizeCityTests(TestCase):
    def test_nicknames_map_to_canonical_names(self) -> None:
        self.assertEqual("New York", normalize_city("NYC"))
        self.assertEqual("San Francisco", normalize_city(" sf "))
        self.assertEqual("Dallas", normalize_city("Dallas-Fort Worth"))

    def test_nickname_normalization_is_idempotent(self) -> None:
        for nickname in CITY_NORMALIZATIONS:
            once = normalize_city(nickname)
            self.assertEqual(once, normalize_city(once), nickname)

    def test_other_cities_are_title_cased_with_collapsed_whitespace(self) -> None:
        self.assertEqual("Fort Lauderdale", normalize_city("  fort   LAUDERDALE "))
        self.assertEqual("Duluth", normalize_city("duluth"))

    def test_empty_city_stays_empty(self) -> None:
        self.assertEqual("", normalize_city(""))


class NormalizeStateTests(TestCase):
    def test_valid_codes_are_returned_unchanged(self) -> None:
        for code in STATE_NAMES:
            self.assertEqual(code, normalize_state(code))

    def test_lowercase_code_and_full_name(self) -> None:
        self.assertEqual("GA", normalize_state("ga"))
        self.assertEqual("NC", normalize_state("north carolina"))
        self.assertEqual("DC", normalize_state("District of Columbia"))

    def test_unknown_value_falls_back_to_first_two_characters(self) -> None:
        self.assertEqual("ON", normalize_state("Ontario"))

    def test_format_location(self) -> None:
        self.assertEqual("Duluth, GA", format_location("Duluth", "GA"))
