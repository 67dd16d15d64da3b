# reports/tests/test_api.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from reports.tests.helpers import seed_ledger

User = get_user_model()


class ReportApiTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.ledger = seed_ledger()
        cls.staff = User.objects.create_user(
            username="auditor", password="pass12345", is_staff=True
        )

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.staff)

    def test_sales_report(self):
        res = self.client.get(
            reverse("reports-sales"), {"year": 2024, "month": "all", "page_size": 2}
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["total_count"], 6)
        self.assertEqual(res.data["total_pages"], 3)
        self.assertEqual(len(res.data["results"]), 2)
        self.assertEqual(res.data["summary"]["paid_total"], "13000.00")
        self.assertEqual(res.data["summary"]["recovery_rate"], "46.4")

    def test_sales_report_member_name(self):
        res = self.client.get(
            reverse("reports-sales"), {"year": 2024, "member_id": self.ledger.beta.pk}
        )
        self.assertEqual(res.data["member_name"], "Beta Foods")
        self.assertEqual(res.data["summary"]["remaining_total"], "9000.00")

    def test_by_member_report(self):
        res = self.client.get(reverse("reports-sales-by-member"), {"year": 2024})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["results"][0]["member_name"], "Acme Trading")
        self.assertEqual(res.data["results"][0]["recovery_rate"], "60.0")

    def test_worst_customers(self):
        res = self.client.get(reverse("reports-worst-customers"), {"year": 2024, "limit": 1})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["remaining_total"], "9000.00")

        res = self.client.get(reverse("reports-worst-customers"), {"year": 2024, "status": "paid"})
        self.assertEqual(res.data["count"], 2)

        res = self.client.get(reverse("reports-worst-customers"), {"year": 2024, "limit": "x"})
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_filter")

    def test_payment_report(self):
        res = self.client.get(reverse("reports-payments"), {"year": 2024, "status": "unallocated"})
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["total_count"], 1)
        self.assertEqual(res.data["results"][0]["unallocated_amount"], "700.00")

    def test_overview(self):
        res = self.client.get(reverse("reports-overview"), {"year": 2024})

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["invoice_total"], "28000.00")
        self.assertEqual(res.data["payment_count"], 5)
        self.assertEqual(len(res.data["monthly_sales"]), 12)
        self.assertEqual(res.data["unpaid_top"][0]["invoice_number"], "INV-003")

        res = self.client.get(reverse("reports-overview"))
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["code"], "invalid_filter")

    def test_bad_filters_are_rejected(self):
        for params in ({}, {"year": 2024, "month": 13}, {"year": 2024, "page_size": 1000}):
            with self.subTest(params=params):
                res = self.client.get(reverse("reports-sales"), params)
                self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertEqual(res.data["code"], "invalid_filter")

    def test_staff_only(self):
        client = APIClient()
        client.force_authenticate(
            user=User.objects.create_user(username="viewer", password="pass12345")
        )
        res = client.get(reverse("reports-sales"), {"year": 2024})
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
