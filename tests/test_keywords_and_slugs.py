from __future__ import annotations

import re
from unittest import TestCase

from advisor_hub.ingestion.keywords import (
    COMBINED_DESIGNATION,
    CPA_DESIGNATION,
    KeywordRule,
    infer_designation,
    infer_specialties,
)
from advisor_hub.slugs import MAX_SLUG_LENGTH, city_slug, generate_advisor_slug, generate_blog_slug, slugify


class KeywordRuleTests(TestCase):
    def test_matches_whole_tokens_only(self) -> None:
        rule = KeywordRule("ea", "Tax Planning")
        self.assertTrue(rule.matches("John Smith, CPA, EA"))
        self.assertFalse(rule.matches("our team of planners"))

    def test_infer_specialties_follows_rule_order_without_repeats(self) -> None:
        specialties = infer_specialties("Wealth advisor focused on tax, estate and CPA services")
        self.assertEqual(["Tax Planning", "Estate Planning", "Wealth Management"], specialties)

    def test_infer_specialties_limit(self) -> None:
        self.assertEqual(["Tax Planning"], infer_specialties("cpa estate retirement", limit=1))

    def test_infer_designation(self) -> None:
        self.assertEqual(CPA_DESIGNATION, infer_designation("CPA"))
        self.assertEqual(COMBINED_DESIGNATION, infer_designation("CPA, CFP"))
        self.assertEqual("Wealth Manager", infer_designation("CFP"))
        self.assertEqual("Wealth Manager", infer_designation(""))


class SlugTests(TestCase):
    SLUG_SHAPE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

    def test_advisor_slug_is_deterministic(self) -> None:
        first = generate_advisor_slug("Jane Doe", "Duluth", "Tax Planning")
        second = generate_advisor_slug("Jane Doe", "Duluth", "Tax Planning")
        self.assertEqual(first, second)
        self.assertEqual("jane-doe-duluth-tax-planning", first)

    def test_slug_shape_and_length(self) -> None:
        slug = generate_advisor_slug("  Dr. José O'Neil--Smith!! ", "St. Louis", "401(k) " * 40)
        self.assertLessEqual(len(slug), MAX_SLUG_LENGTH)
        self.assertRegex(slug, self.SLUG_SHAPE)

    def test_slug_without_specialty(self) -> None:
        self.assertEqual("bob-jones-austin", generate_advisor_slug("Bob Jones", "Austin"))

    def test_slugify_strips_edges(self) -> None:
        self.assertEqual("captives-101", slugify("--Captives 101!--"))
        self.assertEqual("", slugify(""))

    def test_blog_and_city_slugs(self) -> None:
        self.assertEqual("captives-101-a-complete-guide", generate_blog_slug("Captives 101: A Complete Guide"))
        self.assertEqual("duluth-ga", city_slug("Duluth", "GA"))
