# reports/tests/test_filters.py

from django.test import SimpleTestCase, override_settings

from ledger.services.exceptions import InvalidFilter
from reports.services.filters import PageWindow, PaymentFilter, SalesFilter


class SalesFilterTests(SimpleTestCase):
    def test_from_params_defaults(self):
        f = SalesFilter.from_params({"year": "2024"})
        self.assertEqual(f.year, 2024)
        self.assertIsNone(f.month)
        self.assertEqual(f.status, "all")
        self.assertIsNone(f.keyword)
        self.assertIsNone(f.member_id)

    def test_month_all_and_blank_mean_whole_year(self):
        self.assertIsNone(SalesFilter.from_params({"year": "2024", "month": "ALL"}).month)
        self.assertIsNone(SalesFilter.from_params({"year": "2024", "month": " "}).month)
        self.assertEqual(SalesFilter.from_params({"year": "2024", "month": "3"}).month, 3)

    def test_status_and_keyword_normalised(self):
        f = SalesFilter.from_params({"year": "2024", "status": " Paid ", "keyword": "  acme "})
        self.assertEqual(f.status, "paid")
        self.assertEqual(f.keyword, "acme")

    def test_rejections(self):
        bad = [
            {},
            {"year": ""},
            {"year": "twenty"},
            {"year": "1899"},
            {"year": "2024", "month": "13"},
            {"year": "2024", "month": "0"},
            {"year": "2024", "status": "allocated"},
            {"year": "2024", "keyword": "x" * 101},
            {"year": "2024", "member_id": "0"},
            {"year": "2024", "member_id": "abc"},
        ]
        for params in bad:
            with self.subTest(params=params):
                with self.assertRaises(InvalidFilter):
                    SalesFilter.from_params(params)

    def test_direct_construction_validates(self):
        with self.assertRaises(InvalidFilter):
            SalesFilter(year=True)
        with self.assertRaises(InvalidFilter):
            SalesFilter(year=2024, status="overdue")


class PaymentFilterTests(SimpleTestCase):
    def test_payment_statuses(self):
        for value in ("unallocated", "partial", "allocated", "all"):
            self.assertEqual(PaymentFilter(year=2024, status=value).status, value)
        with self.assertRaises(InvalidFilter):
            PaymentFilter(year=2024, status="paid")


class PageWindowTests(SimpleTestCase):
    def test_offsets(self):
        w = PageWindow(page=3, page_size=10)
        self.assertEqual(w.offset, 20)
        self.assertEqual(w.slice(list(range(25))), [20, 21, 22, 23, 24])
        self.assertEqual(w.total_pages(0), 0)
        self.assertEqual(w.total_pages(21), 3)

    @override_settings(REPORT_DEFAULT_PAGE_SIZE=25, REPORT_MAX_PAGE_SIZE=50)
    def test_from_params_uses_settings(self):
        self.assertEqual(PageWindow.from_params({}).page_size, 25)
        self.assertEqual(PageWindow.from_params({"page": "2", "page_size": "50"}).page, 2)
        with self.assertRaises(InvalidFilter):
            PageWindow.from_params({"page_size": "51"})

    def test_rejections(self):
        for kwargs in ({"page": 0}, {"page_size": 0}, {"page": "1"}, {"page_size": True}):
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(InvalidFilter):
                    PageWindow(**kwargs)
