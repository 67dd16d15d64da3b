# reports/tests/test_status_filters.py

from datetime import date

from django.test import TestCase

from ledger.models import Invoice, Payment
from ledger.services.allocation_service import add_allocation
from ledger.tests.helpers import make_invoice, make_member, make_payment
from reports.services.filters import PageWindow, PaymentFilter, SalesFilter
from reports.services.payment_report_service import search_payments
from reports.services.sales_report_service import search_invoices

WINDOW = PageWindow(page=1, page_size=100)


class FractionalStatusFilterTests(TestCase):
    """
    Business rule:
    A status filter returns exactly the rows whose derived status matches,
    including when cent amounts do not add up exactly in binary floats.
    """

    @classmethod
    def setUpTestData(cls):
        member = make_member("Mike Imports")
        cls.settled = make_invoice(member, total="0.80", issue_date=date(2024, 5, 1))
        cls.partly = make_invoice(member, total="0.30", issue_date=date(2024, 5, 2))
        cls.untouched = make_invoice(member, total="0.60", issue_date=date(2024, 5, 3))

        cls.p1 = make_payment(member, amount="0.70", payment_date=date(2024, 5, 5))
        cls.p2 = make_payment(member, amount="0.30", payment_date=date(2024, 5, 6))
        cls.p3 = make_payment(member, amount="0.90", payment_date=date(2024, 5, 7))

        add_allocation(payment_id=cls.p1.pk, invoice_id=cls.settled.pk, amount="0.70")
        add_allocation(payment_id=cls.p2.pk, invoice_id=cls.settled.pk, amount="0.10")
        add_allocation(payment_id=cls.p2.pk, invoice_id=cls.partly.pk, amount="0.20")
        add_allocation(payment_id=cls.p3.pk, invoice_id=cls.partly.pk, amount="0.05")

    def _invoices(self, status):
        page = search_invoices(filters=SalesFilter(year=2024, status=status), window=WINDOW)
        return {r.invoice_id: r.status for r in page.rows}

    def _payments(self, status):
        page = search_payments(filters=PaymentFilter(year=2024, status=status), window=WINDOW)
        return {r.payment_id: r.status for r in page.rows}

    def test_settled_by_fractional_allocations_is_paid(self):
        self.settled.refresh_from_db()
        self.assertEqual(self.settled.status, Invoice.STATUS_PAID)

        self.assertEqual(self._invoices("paid"), {self.settled.pk: Invoice.STATUS_PAID})
        self.assertNotIn(self.settled.pk, self._invoices("partial"))

    def test_invoice_filters_match_derived_status(self):
        everything = self._invoices("all")
        expected = {
            "unpaid": Invoice.STATUS_UNPAID,
            "partial": Invoice.STATUS_PARTIAL,
            "paid": Invoice.STATUS_PAID,
        }
        for value, derived in expected.items():
            with self.subTest(status=value):
                wanted = {pk for pk, status in everything.items() if status == derived}
                self.assertEqual(set(self._invoices(value)), wanted)

    def test_fully_used_fractional_payment_is_allocated(self):
        self.assertIn(self.p2.pk, self._payments("allocated"))
        self.assertNotIn(self.p2.pk, self._payments("partial"))

        everything = self._payments("all")
        expected = {
            "unallocated": Payment.STATUS_UNALLOCATED,
            "partial": Payment.STATUS_PARTIAL,
            "allocated": Payment.STATUS_ALLOCATED,
        }
        for value, derived in expected.items():
            with self.subTest(status=value):
                wanted = {pk for pk, status in everything.items() if status == derived}
                self.assertEqual(set(self._payments(value)), wanted)
