from __future__ import annotations

import io
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase
from unittest.mock import AsyncMock, patch

import pandas as pd
from rich.console import Console

from advisor_hub import create_app
from advisor_hub.cli import build_parser, main
from advisor_hub.config import Settings
from advisor_hub.ingestion.models import CandidateOutcome, IngestionSummary, OutcomeStatus
from advisor_hub.models import AdminUser, Advisor
from advisor_hub.seed_data import SAMPLE_ADVISORS


def _summary() -> IngestionSummary:
    summary = IngestionSummary(found=2)
    summary.record(
        CandidateOutcome(
            name="Jane Smith",
            slug="jane-smith-new-york-tax-planning",
            status=OutcomeStatus.ADDED,
            priority_score=50,
            source_url="https://samslist.co/advisors",
        )
    )
    summary.record(
        CandidateOutcome(
            name="Bob Jones",
            slug="bob-jones-new-york-retirement-planning",
            status=OutcomeStatus.DUPLICATE,
            priority_score=0,
            detail="Already in directory",
            source_url="https://samslist.co/advisors",
        )
    )
    return summary


class CliTestCase(TestCase):
    def setUp(self) -> None:
        tmpdir = TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.tmp = Path(tmpdir.name)
        self.database_url = f"sqlite:///{self.tmp / 'hub.db'}"

        for target in ("advisor_hub.cli.setup_logging", "advisor_hub.cli.load_dotenv"):
            patcher = patch(target)
            patcher.start()
            self.addCleanup(patcher.stop)

    def run_cli(self, argv, **settings) -> int:
        fields = {"database_url": self.database_url}
        fields.update(settings)
        with patch("advisor_hub.cli.get_settings", return_value=Settings(_env_file=None, **fields)):
            return main(argv)


class ParserTests(TestCase):
    def test_scrape_defaults(self) -> None:
        args = build_parser().parse_args(["scrape"])
        self.assertEqual("https://samslist.co/advisors", args.url)
        self.assertIsNone(args.output)

    def test_unknown_article_set_is_rejected(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit):
                build_parser().parse_args(["generate-blog", "--set", "gamma"])


class ScrapeCommandTests(CliTestCase):
    def test_missing_credentials_exit_non_zero(self) -> None:
        with patch("advisor_hub.cli.run_scraper_pipeline", new_callable=AsyncMock) as mock_run:
            with self.assertLogs("advisor_hub", level="CRITICAL") as logs:
                code = self.run_cli(["scrape"], firecrawl_api_key="", gemini_api_key="")

        self.assertEqual(1, code)
        mock_run.assert_not_called()
        self.assertTrue(any("FIRECRAWL_API_KEY" in line for line in logs.output))

    def test_summary_is_printed_and_exported(self) -> None:
        output = self.tmp / "outcomes.csv"
        buffer = io.StringIO()

        with patch("advisor_hub.cli.run_scraper_pipeline", new=AsyncMock(return_value=_summary())) as mock_run, patch(
            "advisor_hub.cli.console", Console(file=buffer, width=160)
        ):
            code = self.run_cli(
                ["scrape", "https://samslist.co/advisors?sort=new", "--limit", "5", "--output", str(output)],
                firecrawl_api_key="fc",
                gemini_api_key="g",
            )

        self.assertEqual(0, code)
        kwargs = mock_run.await_args.kwargs
        self.assertEqual(("https://samslist.co/advisors?sort=new", 5), (kwargs["url"], kwargs["limit"]))
        self.assertIn("Scraper Summary", buffer.getvalue())
        self.assertIn("Jane Smith", buffer.getvalue())

        frame = pd.read_csv(output)
        self.assertEqual(["name", "slug", "status", "priority_score", "detail", "source_url"], list(frame.columns))
        self.assertEqual(["added", "duplicate"], list(frame["status"]))


class DatabaseCommandTests(CliTestCase):
    def _count(self, model) -> int:
        app = create_app(Settings(_env_file=None, database_url=self.database_url))
        with app.app_context():
            return model.query.count()

    def test_seed_is_idempotent(self) -> None:
        self.assertEqual(0, self.run_cli(["seed"]))
        self.assertEqual(0, self.run_cli(["seed"]))
        self.assertEqual(len(SAMPLE_ADVISORS), self._count(Advisor))

    def test_create_admin_warns_without_password(self) -> None:
        with self.assertLogs("advisor_hub", level="WARNING") as logs:
            code = self.run_cli(["create-admin", "Ops@Example.com"])

        self.assertEqual(0, code)
        self.assertEqual(1, self._count(AdminUser))
        self.assertTrue(any("ADMIN_PASSWORD" in line for line in logs.output))

    def test_init_db(self) -> None:
        self.assertEqual(0, self.run_cli(["init-db"]))
        self.assertTrue((self.tmp / "hub.db").exists())

    def test_generate_blog_requires_api_key(self) -> None:
        with patch("advisor_hub.cli.ArticleWriter") as mock_writer:
            code = self.run_cli(["generate-blog"], gemini_api_key="", google_api_key="")

        self.assertEqual(1, code)
        mock_writer.from_api_key.assert_not_called()
