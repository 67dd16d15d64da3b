# ledger/tests/test_collections.py

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from ledger.models import Invoice, ReminderLog
from ledger.services.allocation_service import add_allocation
from ledger.services.collection_service import (
    get_collection_snapshot,
    list_reminders,
    record_reminder,
)
from ledger.services.entity_service import delete_invoice
from ledger.services.exceptions import InvalidEntity, NotFound
from ledger.tests.helpers import make_invoice, make_member, make_payment


def _at(day: int) -> datetime:
    return timezone.make_aware(datetime(2024, 3, day, 9, 30))


class CollectionSnapshotTests(TestCase):
    def setUp(self):
        self.member = make_member("Mike Imports")
        self.member.email = "ap@mike.example"
        self.member.save()
        self.invoice = make_invoice(
            self.member, total="1000", issue_date=date(2024, 1, 10), due_date=date(2024, 2, 10)
        )

    def test_snapshot_sums_allocations(self):
        payment = make_payment(self.member, amount="400")
        add_allocation(payment_id=payment.pk, invoice_id=self.invoice.pk, amount="250")

        snap = get_collection_snapshot(invoice_id=self.invoice.pk)

        self.assertEqual(snap.paid_amount, Decimal("250.00"))
        self.assertEqual(snap.remaining_amount, Decimal("750.00"))
        self.assertEqual(snap.status, Invoice.STATUS_PARTIAL)
        self.assertTrue(snap.is_overdue)
        self.assertEqual(snap.member_email, "ap@mike.example")
        self.assertEqual(snap.reminder_count, 0)
        self.assertIsNone(snap.last_reminded_at)

    def test_snapshot_reports_latest_reminder(self):
        record_reminder(invoice_id=self.invoice.pk, channel="email", reminded_at=_at(1))
        record_reminder(
            invoice_id=self.invoice.pk,
            channel="phone",
            reminded_at=_at(5),
            next_action_date="2024-03-12",
        )

        snap = get_collection_snapshot(invoice_id=self.invoice.pk)
        data = snap.to_dict()

        self.assertEqual(snap.last_reminded_at, _at(5))
        self.assertEqual(data["reminder_count"], 2)
        self.assertEqual(data["next_action_date"], "2024-03-12")
        self.assertEqual(data["remaining_amount"], "1000.00")

    def test_settled_invoice_is_not_overdue(self):
        payment = make_payment(self.member, amount="1000")
        add_allocation(payment_id=payment.pk, invoice_id=self.invoice.pk, amount="1000")

        snap = get_collection_snapshot(invoice_id=self.invoice.pk)

        self.assertEqual(snap.status, Invoice.STATUS_PAID)
        self.assertFalse(snap.is_overdue)

    def test_missing_invoice(self):
        with self.assertRaises(NotFound):
            get_collection_snapshot(invoice_id=999999)


class ReminderLogTests(TestCase):
    """
    Business rule:
    Reminders are history only; the invoice status keeps following allocations.
    """

    def setUp(self):
        self.member = make_member("November Goods")
        self.invoice = make_invoice(self.member, total="500")

    def test_record_keeps_fields_and_status(self):
        r = record_reminder(
            invoice_id=self.invoice.pk,
            channel="Letter",
            tone="strong",
            title="Final notice",
            memo="Called twice, no answer",
            subject="Invoice overdue",
            body_text="Please settle the balance.",
        )

        self.assertEqual(r.channel, ReminderLog.CHANNEL_LETTER)
        self.assertEqual(r.tone, ReminderLog.TONE_STRONG)
        self.assertEqual(r.title, "Final notice")
        self.assertIsNone(r.next_action_date)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_UNPAID)

    def test_listed_newest_first(self):
        first = record_reminder(invoice_id=self.invoice.pk, channel="email", reminded_at=_at(1))
        third = record_reminder(invoice_id=self.invoice.pk, channel="email", reminded_at=_at(9))
        second = record_reminder(invoice_id=self.invoice.pk, channel="phone", reminded_at=_at(4))

        ids = [r.reminder_id for r in list_reminders(invoice_id=self.invoice.pk)]

        self.assertEqual(ids, [third.reminder_id, second.reminder_id, first.reminder_id])

    def test_bad_values_rejected(self):
        cases = (
            {"channel": "fax"},
            {"channel": ""},
            {"channel": "email", "tone": "angry"},
            {"channel": "email", "next_action_date": "soon"},
            {"channel": "email", "reminded_at": "yesterday"},
        )
        for kwargs in cases:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(InvalidEntity):
                    record_reminder(invoice_id=self.invoice.pk, **kwargs)
        self.assertFalse(ReminderLog.objects.exists())

    def test_unknown_invoice(self):
        with self.assertRaises(NotFound):
            record_reminder(invoice_id=424242, channel="email")
        with self.assertRaises(NotFound):
            list_reminders(invoice_id=424242)

    def test_success_is_logged(self):
        with self.assertLogs("ledger", "INFO") as logs:
            r = record_reminder(invoice_id=self.invoice.pk, channel="phone", tone="soft")

        record = next(rec for rec in logs.records if rec.getMessage() == "Reminder recorded")
        self.assertEqual(record.reminder_id, r.reminder_id)
        self.assertEqual(record.channel, "phone")

    def test_deleting_invoice_removes_its_reminders(self):
        record_reminder(
            invoice_id=self.invoice.pk,
            channel="email",
            reminded_at=timezone.now() - timedelta(days=1),
        )

        delete_invoice(invoice_id=self.invoice.pk)

        self.assertFalse(ReminderLog.objects.exists())
