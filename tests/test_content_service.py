from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest import TestCase
from unittest.mock import AsyncMock, MagicMock, call, patch

from advisor_hub.services.content_service import (
    ARTICLE_SETS,
    ArticleSpec,
    ArticleWriter,
    GeneratedArticle,
    estimate_read_time,
    publish_articles,
)
from advisor_hub.services.storage_service import DuplicateBlogPostError

SPEC = ArticleSpec(title="Captives 101: A Complete Guide", category="strategy", focus="Explain captives.")
OTHER = ArticleSpec(title="Cost Segregation Basics", category="tax", focus="Explain cost segregation.")


class _FakeModels:
    def __init__(self, texts) -> None:
        self._texts = list(texts)
        self.prompts = []

    def generate_content(self, model, contents):
        self.prompts.append(contents)
        return SimpleNamespace(text=self._texts.pop(0))


class _Storage:
    def __init__(self, existing=()) -> None:
        self.existing = set(existing)
        self.created = []

    def blog_slug_exists(self, slug: str) -> bool:
        return slug in self.existing

    def create_blog_post(self, data: dict) -> dict:
        self.created.append(data)
        return data


class ReadTimeTests(TestCase):
    def test_rounds_up_with_one_minute_floor(self) -> None:
        self.assertEqual("1 min read", estimate_read_time(""))
        self.assertEqual("1 min read", estimate_read_time("word " * 200))
        self.assertEqual("2 min read", estimate_read_time("word " * 201))


class ArticleWriterTests(TestCase):
    def test_body_then_excerpt(self) -> None:
        body = "## Why captives\n" + "premium " * 450
        models = _FakeModels([body, '"Captives turn premiums into wealth."'])
        writer = ArticleWriter(SimpleNamespace(models=models))

        article = asyncio.run(writer.generate_article(SPEC))

        self.assertEqual("Captives turn premiums into wealth.", article.excerpt)
        self.assertEqual("3 min read", article.read_time)
        self.assertIn("Title: Captives 101: A Complete Guide", models.prompts[0])
        self.assertIn("Focus: Explain captives.", models.prompts[0])
        self.assertIn("## Why captives", models.prompts[1])

    def test_empty_response_is_retried(self) -> None:
        models = _FakeModels(["", "Body text", "Excerpt"])
        writer = ArticleWriter(SimpleNamespace(models=models))

        with patch("advisor_hub.ingestion.utils.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            article = asyncio.run(writer.generate_article(SPEC))

        self.assertEqual("Body text", article.content)
        self.assertEqual([call(2.0)], mock_sleep.await_args_list)

    def test_article_sets(self) -> None:
        self.assertEqual({"alpha", "pillar"}, set(ARTICLE_SETS))
        self.assertTrue(all(len(specs) == 3 for specs in ARTICLE_SETS.values()))


class PublishArticlesTests(TestCase):
    def _writer(self, **kwargs) -> MagicMock:
        writer = MagicMock()
        writer.generate_article = AsyncMock(**kwargs)
        return writer

    def test_creates_posts_and_sleeps_after_each(self) -> None:
        storage = _Storage()
        sleep = AsyncMock()
        writer = self._writer(return_value=GeneratedArticle(content="Body", excerpt="Short", read_time="1 min read"))

        counts = asyncio.run(publish_articles([SPEC, OTHER], writer, storage, sleep=sleep, delay=1.5))

        self.assertEqual({"created": 2, "skipped": 0, "errored": 0}, counts)
        self.assertEqual(["captives-101-a-complete-guide", "cost-segregation-basics"], [p["slug"] for p in storage.created])
        self.assertTrue(storage.created[0]["is_published"])
        self.assertEqual("strategy", storage.created[0]["category"])
        self.assertEqual([call(1.5), call(1.5)], sleep.await_args_list)

    def test_existing_slug_skips_model_calls(self) -> None:
        storage = _Storage(existing={"captives-101-a-complete-guide"})
        writer = self._writer()
        sleep = AsyncMock()

        counts = asyncio.run(publish_articles([SPEC], writer, storage, sleep=sleep))

        self.assertEqual({"created": 0, "skipped": 1, "errored": 0}, counts)
        writer.generate_article.assert_not_called()
        sleep.assert_not_called()

    def test_insert_collision_counts_as_skipped(self) -> None:
        storage = _Storage()
        storage.create_blog_post = MagicMock(side_effect=DuplicateBlogPostError("captives-101-a-complete-guide"))
        writer = self._writer(return_value=GeneratedArticle(content="Body", excerpt="Short", read_time="1 min read"))

        counts = asyncio.run(publish_articles([SPEC], writer, storage, sleep=AsyncMock()))

        self.assertEqual({"created": 0, "skipped": 1, "errored": 0}, counts)

    def test_failure_is_counted_and_run_continues(self) -> None:
        storage = _Storage()
        sleep = AsyncMock()
        writer = self._writer(
            side_effect=[
                RuntimeError("quota"),
                GeneratedArticle(content="Body", excerpt="Short", read_time="1 min read"),
            ]
        )

        counts = asyncio.run(publish_articles([SPEC, OTHER], writer, storage, sleep=sleep))

        self.assertEqual({"created": 1, "skipped": 0, "errored": 1}, counts)
        self.assertEqual(["cost-segregation-basics"], [p["slug"] for p in storage.created])
        self.assertEqual(1, sleep.await_count)
