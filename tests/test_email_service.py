from __future__ import annotations

import json
from unittest import TestCase

import httpx

from advisor_hub.models import Advisor, Lead
from advisor_hub.services.email_service import (
    RESEND_EMAILS_URL,
    EmailService,
    calculate_lead_score,
    is_hot_lead,
    score_label,
)


def _lead(**overrides) -> Lead:
    fields = {
        "user_name": "Pat Owner",
        "user_email": "pat@example.com",
        "message": None,
        "estimated_revenue": None,
        "interested_in_captives": False,
        "has_strategic_cpa": None,
        "source_page": "/advisor/jane-doe-duluth",
        "source_type": "contact_form",
    }
    fields.update(overrides)
    return Lead(**fields)


def _advisor() -> Advisor:
    return Advisor(name="Jane Doe", designation="CPA", city="Duluth", state="GA", zip_code="30096")


class LeadScoreTests(TestCase):
    def test_base_score(self) -> None:
        self.assertEqual(20, calculate_lead_score(_lead()))

    def test_components_add_up_and_clamp(self) -> None:
        lead = _lead(
            estimated_revenue="$5M+",
            has_strategic_cpa="looking-to-replace",
            interested_in_captives=True,
            message="We need help restructuring before year end.",
        )
        self.assertEqual(100, calculate_lead_score(lead))

    def test_individual_points(self) -> None:
        self.assertEqual(45, calculate_lead_score(_lead(estimated_revenue="$1M-5M")))
        self.assertEqual(35, calculate_lead_score(_lead(has_strategic_cpa="no")))
        self.assertEqual(20, calculate_lead_score(_lead(has_strategic_cpa="yes")))
        self.assertEqual(25, calculate_lead_score(_lead(message="x" * 21)))
        self.assertEqual(20, calculate_lead_score(_lead(message="x" * 20)))

    def test_labels(self) -> None:
        self.assertEqual("Hot Lead", score_label(80))
        self.assertEqual("Qualified Lead", score_label(50))
        self.assertEqual("New Lead", score_label(49))

    def test_hot_lead(self) -> None:
        self.assertTrue(is_hot_lead(_lead(has_strategic_cpa="looking-to-replace")))
        self.assertTrue(is_hot_lead(_lead(interested_in_captives=True)))
        self.assertFalse(is_hot_lead(_lead(estimated_revenue="$5M+")))


class EmailServiceTests(TestCase):
    def test_unconfigured_service_reports_reason(self) -> None:
        self.assertEqual(
            (False, "Email not configured"),
            EmailService().send_lead_notification(_lead(), _advisor()),
        )
        self.assertEqual(
            (False, "Notification email not configured"),
            EmailService(api_key="re_key").send_lead_notification(_lead(), _advisor()),
        )

    def test_subject(self) -> None:
        service = EmailService()
        self.assertEqual(
            "[HOT] New Lead: Pat Owner ($5M+)",
            service.build_subject(_lead(estimated_revenue="$5M+", interested_in_captives=True)),
        )
        self.assertEqual("New Lead: Pat Owner (Revenue N/A)", service.build_subject(_lead()))

    def test_html_escapes_user_input(self) -> None:
        body = EmailService().build_html(_lead(message="<script>alert(1)</script>"), _advisor())
        self.assertNotIn("<script>", body)
        self.assertIn("&lt;script&gt;", body)
        self.assertIn("Jane Doe", body)
        self.assertIn("Score: 25/100", body)

    def test_sends_through_resend(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "email_123"})

        service = EmailService(
            api_key="re_key",
            recipient="alerts@example.com",
            transport=httpx.MockTransport(handler),
        )
        sent = service.send_lead_notification(_lead(has_strategic_cpa="looking-to-replace"), _advisor())

        self.assertEqual((True, None), sent)
        self.assertEqual(RESEND_EMAILS_URL, seen["url"])
        self.assertEqual("Bearer re_key", seen["auth"])
        self.assertEqual("alerts@example.com", seen["body"]["to"])
        self.assertTrue(seen["body"]["subject"].startswith("[HOT] "))

    def test_http_error_is_reported_not_raised(self) -> None:
        service = EmailService(
            api_key="re_key",
            recipient="alerts@example.com",
            transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"})),
        )

        sent, reason = service.send_lead_notification(_lead(), _advisor())

        self.assertFalse(sent)
        self.assertIn("422", reason)
