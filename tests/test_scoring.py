from __future__ import annotations

from unittest import TestCase

from advisor_hub.ingestion.models import ScrapedAdvisor
from advisor_hub.ingestion.scoring import calculate_priority_score, sort_by_priority


class PriorityScoreTests(TestCase):
    def test_bare_advisor_scores_zero(self) -> None:
        advisor = ScrapedAdvisor(name="Bob Jones", designation="Wealth Manager")
        self.assertEqual(0, calculate_priority_score(advisor))

    def test_keyword_rich_cpa_is_clamped_to_100(self) -> None:
        advisor = ScrapedAdvisor(
            name="Jane Doe",
            designation="CPA",
            bio=(
                "Strategic, proactive tax optimization for business owners and entrepreneurs: "
                "captive insurance, reinsurance, 831(b) plans, succession and estate planning, "
                "wealth preservation for high net worth and UHNW families. Accounting, investment, "
                "retirement and financial planning for executives and corporate clients."
            ),
            specialties=["Tax Planning"],
        )
        self.assertEqual(100, calculate_priority_score(advisor))

    def test_components_add_up(self) -> None:
        advisor = ScrapedAdvisor(
            name="Jane Smith",
            designation="CPA",
            specialties=["Tax Planning", "Captive Insurance"],
        )
        # tax + captive (20), cpa keyword (5), cpa bonus (15), specialties (10)
        self.assertEqual(50, calculate_priority_score(advisor))

    def test_score_does_not_mutate_input(self) -> None:
        advisor = ScrapedAdvisor(name="Jane Smith", specialties=["Tax Planning"])
        calculate_priority_score(advisor)
        self.assertIsNone(advisor.priority_score)


class SortByPriorityTests(TestCase):
    def test_highest_first_and_ties_keep_input_order(self) -> None:
        advisors = [
            ScrapedAdvisor(name="First Plain"),
            ScrapedAdvisor(name="Tax Person", designation="CPA", specialties=["Tax Planning"]),
            ScrapedAdvisor(name="Second Plain"),
        ]

        ordered = sort_by_priority(advisors)

        self.assertEqual(["Tax Person", "First Plain", "Second Plain"], [a.name for a in ordered])
        self.assertEqual([40, 0, 0], [a.priority_score for a in ordered])
        self.assertTrue(all(0 <= a.priority_score <= 100 for a in ordered))
