# reports/tests/test_sales_report.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from ledger.models import Invoice
from ledger.services.allocation_service import add_allocation
from ledger.services.exceptions import InvalidFilter
from ledger.tests.helpers import make_invoice, make_member, make_payment
from reports.services.filters import PageWindow, SalesFilter
from reports.services.sales_report_service import (
    search_by_member,
    search_invoices,
    worst_customers,
)
from reports.tests.helpers import seed_ledger


def _numbers(page):
    return [r.invoice_number for r in page.rows]


class InvoiceListingTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.ledger = seed_ledger()

    def _search(self, window=None, **filters):
        return search_invoices(
            filters=SalesFilter(year=2024, **filters), window=window or PageWindow()
        )

    def test_whole_year(self):
        page = self._search()

        self.assertEqual(page.total_count, 6)
        self.assertEqual(
            _numbers(page), ["INV-006", "INV-005", "INV-004", "INV-003", "INV-002", "INV-001"]
        )
        self.assertEqual(page.summary.invoice_total, Decimal("28000.00"))
        self.assertEqual(page.summary.paid_total, Decimal("13000.00"))
        self.assertEqual(page.summary.remaining_total, Decimal("15000.00"))
        self.assertEqual(page.summary.recovery_rate, Decimal("46.4"))

    def test_row_values(self):
        rows = {r.invoice_number: r for r in self._search().rows}

        first = rows["INV-001"]
        self.assertEqual(first.member_name, "Acme Trading")
        self.assertEqual(first.status, Invoice.STATUS_PARTIAL)
        self.assertEqual(first.paid_amount, Decimal("4000.00"))
        self.assertEqual(first.remaining_amount, Decimal("6000.00"))
        self.assertEqual(first.recovery_rate, Decimal("40.0"))
        self.assertEqual(first.last_paid_at, date(2024, 1, 20))
        self.assertTrue(first.is_overdue)

        self.assertEqual(rows["INV-006"].status, Invoice.STATUS_UNPAID)
        self.assertIsNone(rows["INV-003"].last_paid_at)
        self.assertFalse(rows["INV-002"].is_overdue)

    def test_status_filters(self):
        self.assertEqual(sorted(_numbers(self._search(status="paid"))), ["INV-002", "INV-005"])
        self.assertEqual(sorted(_numbers(self._search(status="unpaid"))), ["INV-003", "INV-006"])
        self.assertEqual(
            sorted(_numbers(self._search(status="partial"))), ["INV-001", "INV-004"]
        )

    def test_month_filter_and_summary(self):
        page = self._search(month=3)
        self.assertEqual(sorted(_numbers(page)), ["INV-004", "INV-005"])
        self.assertEqual(page.summary.invoice_total, Decimal("5000.00"))
        self.assertEqual(page.summary.recovery_rate, Decimal("80.0"))

    def test_keyword_matches_member_or_number(self):
        self.assertEqual(sorted(_numbers(self._search(keyword="BETA"))), ["INV-003", "INV-004"])
        self.assertEqual(_numbers(self._search(keyword="inv-005")), ["INV-005"])
        self.assertEqual(self._search(keyword="nothing-like-this").total_count, 0)

    def test_member_filter_reports_member_name(self):
        page = self._search(member_id=self.ledger.acme.pk)
        self.assertEqual(page.member_name, "Acme Trading")
        self.assertEqual(sorted(_numbers(page)), ["INV-001", "INV-002"])

    def test_paging_keeps_full_set_summary(self):
        page = self._search(window=PageWindow(page=2, page_size=4))

        self.assertEqual(_numbers(page), ["INV-002", "INV-001"])
        self.assertEqual(page.total_count, 6)
        self.assertEqual(page.total_pages, 2)
        self.assertEqual(page.summary.invoice_total, Decimal("28000.00"))

        beyond = self._search(window=PageWindow(page=9, page_size=4))
        self.assertEqual(beyond.rows, ())
        self.assertEqual(beyond.total_count, 6)

    def test_uses_live_allocations_not_cached_columns(self):
        Invoice.objects.filter(invoice_number="INV-002").update(
            paid_amount=Decimal("0"), status=Invoice.STATUS_UNPAID
        )

        page = self._search(status="paid")

        self.assertIn("INV-002", _numbers(page))
        self.assertEqual(page.summary.paid_total, Decimal("8000.00"))

    def test_to_dict_renders_money_as_strings(self):
        data = self._search(window=PageWindow(page=1, page_size=1)).to_dict()
        self.assertEqual(data["summary"]["invoice_total"], "28000.00")
        self.assertEqual(data["summary"]["recovery_rate"], "46.4")
        self.assertEqual(data["results"][0]["total_amount"], "0.00")
        self.assertNotIn("member_name", data)


class MemberRollupTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.ledger = seed_ledger()

    def test_rollup_order_and_totals(self):
        page = search_by_member(filters=SalesFilter(year=2024), window=PageWindow())

        self.assertEqual(
            [r.member_name for r in page.rows], ["Acme Trading", "Beta Foods", "Cobalt Ltd"]
        )
        acme, beta, cobalt = page.rows
        self.assertEqual(acme.invoice_count, 2)
        self.assertEqual(acme.paid_total, Decimal("9000.00"))
        self.assertEqual(acme.recovery_rate, Decimal("60.0"))
        self.assertEqual(beta.remaining_total, Decimal("9000.00"))
        self.assertEqual(beta.recovery_rate, Decimal("10.0"))
        self.assertEqual(cobalt.invoice_count, 2)
        self.assertEqual(cobalt.recovery_rate, Decimal("100.0"))

        self.assertEqual(page.total_count, 3)
        self.assertEqual(page.summary.invoice_total, Decimal("28000.00"))
        self.assertEqual(page.summary.paid_total, Decimal("13000.00"))

    def test_rollup_respects_filters_and_paging(self):
        page = search_by_member(
            filters=SalesFilter(year=2024, status="unpaid"),
            window=PageWindow(page=1, page_size=1),
        )
        self.assertEqual([r.member_name for r in page.rows], ["Beta Foods"])
        self.assertEqual(page.total_count, 2)
        self.assertEqual(page.total_pages, 2)
        self.assertEqual(page.summary.invoice_total, Decimal("8000.00"))


class WorstCustomerTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.ledger = seed_ledger()

    def test_ranked_by_outstanding(self):
        rows = worst_customers(filters=SalesFilter(year=2024))
        self.assertEqual([r.member_name for r in rows], ["Beta Foods", "Acme Trading"])

    def test_limit(self):
        rows = worst_customers(filters=SalesFilter(year=2024), limit=1)
        self.assertEqual([r.member_name for r in rows], ["Beta Foods"])
        with self.assertRaises(InvalidFilter):
            worst_customers(filters=SalesFilter(year=2024), limit=0)

    def test_ties_broken_by_recovery_rate_then_member(self):
        x = make_member("Xray Co")
        y = make_member("Yankee Co")
        z = make_member("Zulu Co")
        make_invoice(x, total="1000", issue_date=date(2025, 1, 5))
        y_invoice = make_invoice(y, total="2000", issue_date=date(2025, 1, 5))
        make_invoice(z, total="500", issue_date=date(2025, 1, 5))
        payment = make_payment(y, amount="1000", payment_date=date(2025, 1, 6))
        add_allocation(payment_id=payment.pk, invoice_id=y_invoice.pk, amount="1000")

        rows = worst_customers(filters=SalesFilter(year=2025), limit=10)

        self.assertEqual([r.member_id for r in rows], [x.pk, y.pk, z.pk])
        self.assertEqual(rows[0].recovery_rate, Decimal("0.0"))
        self.assertEqual(rows[1].recovery_rate, Decimal("50.0"))

    def test_status_filter_does_not_narrow_exposure(self):
        for status in ("paid", "partial", "unpaid"):
            with self.subTest(status=status):
                rows = worst_customers(filters=SalesFilter(year=2024, status=status))
                self.assertEqual([r.member_name for r in rows], ["Beta Foods", "Acme Trading"])
                self.assertEqual(rows[0].remaining_total, Decimal("9000.00"))

    def test_empty_year(self):
        self.assertEqual(worst_customers(filters=SalesFilter(year=2030)), ())
