from __future__ import annotations

from unittest import TestCase
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from advisor_hub import create_app
from advisor_hub.config import Settings
from advisor_hub.extensions import db
from advisor_hub.ingestion.errors import DuplicateAdvisorError
from advisor_hub.schemas import AdvisorSearch
from advisor_hub.seed_data import SAMPLE_ADVISORS, seed_advisors
from advisor_hub.services.storage_service import DuplicateBlogPostError


def _advisor(name: str, city: str, state: str, specialties, **extra) -> dict:
    record = {
        "name": name,
        "designation": "CPA",
        "city": city,
        "state": state,
        "zip_code": "30096",
        "specialties": specialties,
        "slug": f"{name}-{city}".lower().replace(" ", "-"),
    }
    record.update(extra)
    return record


class StorageServiceTests(TestCase):
    def setUp(self) -> None:
        self.app = create_app(Settings(_env_file=None, database_url="sqlite://"))
        ctx = self.app.app_context()
        ctx.push()
        self.addCleanup(ctx.pop)
        self.addCleanup(db.drop_all)
        self.addCleanup(db.session.remove)
        self.storage = self.app.storage_service

        self.jane = self.storage.create_advisor(
            _advisor("Jane Doe", "Duluth", "GA", ["Tax Planning", "Captive Insurance"], website_url="https://doe.example.com")
        )
        self.bob = self.storage.create_advisor(
            _advisor("Bob Jones", "Duluth", "GA", ["Tax Planning"], designation="Wealth Manager")
        )
        self.amy = self.storage.create_advisor(
            _advisor("Amy Lee", "Austin", "TX", ["Estate Planning"], is_verified_strategist=True)
        )

    def test_duplicate_slug_raises_and_session_stays_usable(self) -> None:
        with self.assertRaises(DuplicateAdvisorError):
            self.storage.create_advisor(_advisor("Jane Doe", "Duluth", "GA", []))
        self.assertEqual(3, len(self.storage.search_advisors()))

    def test_failed_commit_is_rolled_back_before_next_insert(self) -> None:
        locked = OperationalError("INSERT INTO advisors", {}, Exception("database is locked"))
        with patch.object(db.session, "commit", side_effect=locked):
            with self.assertRaises(OperationalError):
                self.storage.create_advisor(_advisor("Lost Record", "Macon", "GA", []))

        created = self.storage.create_advisor(_advisor("Kim Park", "Macon", "GA", ["Tax Planning"]))

        self.assertEqual("kim-park-macon", created.slug)
        self.assertFalse(self.storage.advisor_exists(slug="lost-record-macon"))
        self.assertEqual(4, len(self.storage.search_advisors()))

    def test_advisor_exists_by_slug_or_website(self) -> None:
        self.assertTrue(self.storage.advisor_exists(slug="jane-doe-duluth"))
        self.assertTrue(self.storage.advisor_exists(website_url="https://doe.example.com"))
        self.assertFalse(self.storage.advisor_exists(slug="nobody-nowhere"))
        self.assertFalse(self.storage.advisor_exists())

    def test_search_filters(self) -> None:
        def names(**filters):
            return [a.name for a in self.storage.search_advisors(AdvisorSearch(**filters))]

        self.assertEqual(["Jane Doe", "Bob Jones"], names(city="dul"))
        self.assertEqual(["Amy Lee"], names(state="tx"))
        self.assertEqual(["Bob Jones"], names(designation="Wealth Manager"))
        self.assertEqual(["Amy Lee"], names(is_verified_strategist=True))
        self.assertEqual(["Jane Doe"], names(specialty="captive"))
        self.assertEqual(["Bob Jones"], names(specialty="tax", offset=1))
        self.assertEqual(["Jane Doe"], names(limit=1))

    def test_update_advisor(self) -> None:
        updated = self.storage.update_advisor(self.bob.id, {"bio": "New bio"})
        self.assertEqual("New bio", updated.bio)
        self.assertIsNone(self.storage.update_advisor("missing-id", {"bio": "x"}))

    def test_directory_hubs(self) -> None:
        specialties = self.storage.get_unique_specialties()
        self.assertEqual({"specialty": "Tax Planning", "slug": "tax-planning", "count": 2}, specialties[0])

        cities = self.storage.get_unique_cities()
        self.assertEqual({"city": "Duluth", "state": "GA", "slug": "duluth-ga", "count": 2}, cities[0])

        self.assertEqual({"city": "Austin", "state": "TX"}, self.storage.get_city_from_slug("austin-tx"))
        self.assertIsNone(self.storage.get_specialty_from_slug("astrology"))
        self.assertEqual(
            ["Bob Jones", "Jane Doe"],
            [a.name for a in self.storage.get_advisors_by_specialty_and_city("tax-planning", "duluth-ga")],
        )

        golden = self.storage.get_all_specialty_city_combinations()
        self.assertEqual(("tax-planning", "duluth-ga", 2), (golden[0]["specialtySlug"], golden[0]["citySlug"], golden[0]["count"]))
        self.assertEqual(3, len(golden))

    def test_strategists_require_matching_specialty(self) -> None:
        self.assertEqual([self.jane.id], [a.id for a in self.storage.get_random_strategists(3)])

    def test_leads_and_stats(self) -> None:
        self.storage.create_lead(
            {
                "advisor_id": self.jane.id,
                "user_name": "Pat Owner",
                "user_email": "pat@example.com",
                "source_page": "/advisor/jane-doe-duluth",
            }
        )

        self.assertEqual(1, len(self.storage.get_leads_by_advisor(self.jane.id)))
        self.assertEqual(1, len(self.storage.get_leads_by_source_page("/advisor/jane-doe-duluth")))
        self.assertEqual({"totalAdvisors": 3, "leadsToday": 1, "totalLeads": 1}, self.storage.get_stats())

    def test_blog_posts(self) -> None:
        post = {
            "title": "Captives 101",
            "slug": "captives-101",
            "excerpt": "Short",
            "content": "Body",
            "read_time": "1 min read",
        }
        self.storage.create_blog_post(dict(post))
        self.storage.create_blog_post(dict(post, slug="draft", is_published=False))

        self.assertTrue(self.storage.blog_slug_exists("captives-101"))
        self.assertEqual(["captives-101"], [p.slug for p in self.storage.get_blog_posts()])
        self.assertEqual(["captives-101"], [slug for slug, _ in self.storage.get_all_blog_slugs()])
        with self.assertRaises(DuplicateBlogPostError):
            self.storage.create_blog_post(dict(post))

    def test_admin_users_are_case_insensitive_and_idempotent(self) -> None:
        admin = self.storage.create_admin_user("Ops@Example.com")
        self.assertEqual(admin.id, self.storage.create_admin_user("ops@example.com").id)
        self.assertIsNotNone(self.storage.get_admin_by_email("OPS@example.com"))

    def test_seed_advisors_only_adds_missing(self) -> None:
        self.assertEqual(len(SAMPLE_ADVISORS), seed_advisors(self.storage))
        self.assertEqual(0, seed_advisors(self.storage))
