# reports/tests/test_overview.py

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from ledger.services.exceptions import InvalidFilter
from ledger.tests.helpers import make_invoice, make_member
from reports.services.filters import year_from_params
from reports.services.overview_service import UNPAID_TOP_LIMIT, year_overview
from reports.tests.helpers import seed_ledger


class YearOverviewTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.ledger = seed_ledger()

    def test_totals_and_counts(self):
        o = year_overview(year=2024)

        self.assertEqual(o.invoice_total, Decimal("28000.00"))
        self.assertEqual(o.paid_total, Decimal("13000.00"))
        self.assertEqual(o.remaining_total, Decimal("15000.00"))
        self.assertEqual(o.recovery_rate, Decimal("46.4"))
        self.assertEqual(o.invoice_count, 6)
        self.assertEqual(o.payment_count, 5)

    def test_monthly_sales_cover_every_month(self):
        o = year_overview(year=2024)

        self.assertEqual([m.month for m in o.monthly_sales], list(range(1, 13)))
        totals = {m.month: m.invoice_total for m in o.monthly_sales}
        self.assertEqual(totals[1], Decimal("10000.00"))
        self.assertEqual(totals[2], Decimal("13000.00"))
        self.assertEqual(totals[3], Decimal("5000.00"))
        self.assertEqual(totals[4], Decimal("0.00"))
        self.assertEqual(sum(totals.values()), o.invoice_total)

    def test_unpaid_top_orders_by_remaining(self):
        o = year_overview(year=2024)

        self.assertEqual(
            [u.invoice_number for u in o.unpaid_top], ["INV-003", "INV-001", "INV-004"]
        )
        self.assertTrue(all(u.is_overdue for u in o.unpaid_top))
        self.assertEqual(o.unpaid_top[1].remaining_total, Decimal("6000.00"))

    def test_other_year_is_separate(self):
        o = year_overview(year=2023)

        self.assertEqual(o.invoice_total, Decimal("1000.00"))
        self.assertEqual(o.payment_count, 0)
        self.assertEqual([u.invoice_number for u in o.unpaid_top], ["INV-000"])

    def test_to_dict(self):
        data = year_overview(year=2024).to_dict()

        self.assertEqual(data["recovery_rate"], "46.4")
        self.assertEqual(len(data["monthly_sales"]), 12)
        self.assertEqual(data["monthly_sales"][1], {"month": 2, "invoice_total": "13000.00"})
        self.assertEqual(data["unpaid_top"][0]["remaining_total"], "8000.00")


class UnpaidTopTests(TestCase):
    """
    Business rule:
    Overdue invoices come first even when a current one owes more,
    and the list stops at UNPAID_TOP_LIMIT rows.
    """

    def test_overdue_before_larger_current_invoice(self):
        member = make_member("Kilo Traders")
        current = make_invoice(
            member, total="9000", issue_date=date(2024, 5, 20), due_date=date(2024, 6, 30)
        )
        overdue = make_invoice(
            member, total="100", issue_date=date(2024, 4, 1), due_date=date(2024, 5, 1)
        )

        with patch(
            "reports.services.overview_service.timezone.localdate",
            return_value=date(2024, 6, 1),
        ):
            o = year_overview(year=2024)

        self.assertEqual([u.invoice_id for u in o.unpaid_top], [overdue.pk, current.pk])
        self.assertEqual([u.is_overdue for u in o.unpaid_top], [True, False])

    def test_list_is_capped(self):
        member = make_member("Lima Wholesale")
        for i in range(UNPAID_TOP_LIMIT + 2):
            make_invoice(member, total=str(100 + i), issue_date=date(2024, 5, 1))

        o = year_overview(year=2024)

        self.assertEqual(len(o.unpaid_top), UNPAID_TOP_LIMIT)
        self.assertEqual(o.unpaid_top[0].remaining_total, Decimal("106.00"))
        self.assertEqual(o.invoice_count, UNPAID_TOP_LIMIT + 2)


class YearParamTests(TestCase):
    def test_year_required_and_checked(self):
        self.assertEqual(year_from_params({"year": "2024"}), 2024)
        for params in ({}, {"year": ""}, {"year": "abc"}):
            with self.subTest(params=params):
                with self.assertRaises(InvalidFilter):
                    year_from_params(params)
