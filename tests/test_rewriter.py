from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest import TestCase
from unittest.mock import AsyncMock, patch

from advisor_hub.ingestion.errors import RewriteError
from advisor_hub.ingestion.rewriter import (
    FALLBACK_SPECIALTIES,
    BioRewriter,
    build_rewrite_prompt,
    generate_fallback_bio,
    parse_rewrite_response,
)


class _FakeModels:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append((model, contents))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return SimpleNamespace(text=response)


def _client(*responses):
    return SimpleNamespace(models=_FakeModels(responses))


GOOD_RESPONSE = json.dumps(
    {"bio": "Jane Doe is a strategic CPA in Duluth, GA.", "specialties": ["Tax Planning", "Captive Insurance"]}
)


class ParseRewriteResponseTests(TestCase):
    def test_parses_fenced_json(self) -> None:
        result = parse_rewrite_response(f"```json\n{GOOD_RESPONSE}\n```")
        self.assertEqual("Jane Doe is a strategic CPA in Duluth, GA.", result.bio)
        self.assertEqual(["Tax Planning", "Captive Insurance"], result.specialties)

    def test_missing_specialties_default_to_empty(self) -> None:
        self.assertEqual([], parse_rewrite_response('{"bio": "Text"}').specialties)

    def test_unusable_responses_raise(self) -> None:
        for raw in (None, "", "not json", "[1, 2]", '{"specialties": []}', '{"bio": "  "}'):
            with self.subTest(raw=raw):
                with self.assertRaises(RewriteError):
                    parse_rewrite_response(raw)


class BioRewriterTests(TestCase):
    def test_rewrite_uses_model_and_prompt(self) -> None:
        client = _client(GOOD_RESPONSE)
        rewriter = BioRewriter(client, model="gemini-test")

        result = asyncio.run(rewriter.rewrite("Original bio", "Jane Doe", "CPA", "Duluth, GA"))

        self.assertEqual(["Tax Planning", "Captive Insurance"], result.specialties)
        model, prompt = client.models.calls[0]
        self.assertEqual("gemini-test", model)
        self.assertIn("Name: Jane Doe", prompt)
        self.assertIn("Location: Duluth, GA", prompt)
        self.assertIn("Original Bio: Original bio", prompt)

    def test_malformed_json_is_retried_like_a_network_error(self) -> None:
        client = _client("oops", RuntimeError("503"), GOOD_RESPONSE)
        rewriter = BioRewriter(client)

        with patch("advisor_hub.ingestion.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = asyncio.run(rewriter.rewrite("", "Jane Doe", "CPA", "Duluth, GA"))

        self.assertEqual("Jane Doe is a strategic CPA in Duluth, GA.", result.bio)
        self.assertEqual(3, len(client.models.calls))
        self.assertEqual(2, mock_sleep.await_count)

    def test_gives_up_after_three_attempts(self) -> None:
        client = _client(RuntimeError("a"), RuntimeError("b"), RuntimeError("c"))
        rewriter = BioRewriter(client)

        with patch("advisor_hub.ingestion.utils.asyncio.sleep", new_callable=AsyncMock):
            with self.assertRaises(RewriteError):
                asyncio.run(rewriter.rewrite("", "Jane Doe", "CPA", "Duluth, GA"))

        self.assertEqual(3, len(client.models.calls))

    def test_prompt_marks_missing_bio(self) -> None:
        self.assertIn("No bio provided", build_rewrite_prompt("", "Jane Doe", "CPA", "Duluth, GA"))


class FallbackBioTests(TestCase):
    def test_contains_name_and_designation_verbatim(self) -> None:
        result = generate_fallback_bio("Jane Doe", "CPA & Wealth Manager", "Duluth, GA", firm_name="Doe Tax")

        self.assertIn("Jane Doe", result.bio)
        self.assertIn("CPA & Wealth Manager at Doe Tax", result.bio)
        self.assertIn("Duluth, GA", result.bio)
        self.assertEqual(FALLBACK_SPECIALTIES, result.specialties)

    def test_is_deterministic(self) -> None:
        self.assertEqual(
            generate_fallback_bio("Jane Doe", "CPA", "Duluth, GA"),
            generate_fallback_bio("Jane Doe", "CPA", "Duluth, GA"),
        )
