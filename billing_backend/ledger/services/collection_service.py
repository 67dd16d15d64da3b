# ledger/services/collection_service.py
"""
======================================================
PATH: ledger/services/collection_service.py
======================================================
COLLECTIONS (DUNNING) FOR ONE INVOICE

- get_collection_snapshot(invoice_id)
- list_reminders(invoice_id)
- record_reminder(invoice_id, channel, ...)

RULES:
- Paid / remaining / status in the snapshot are summed from allocation rows,
  never read from the cached invoice columns.
- A reminder is history only. Recording one never changes invoice status
  (status stays derived from allocations).
- Reminders are listed newest first (reminded_at desc, then id desc).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from django.db.models import Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ledger.models import Allocation, Invoice, ReminderLog
from ledger.services.amounts import ZERO, money_str
from ledger.services.entity_service import _as_date
from ledger.services.exceptions import InvalidEntity, NotFound
from ledger.services.locking import as_id, ledger_transaction
from ledger.services.status_deriver import derive_invoice_status

logger = logging.getLogger("ledger")

REMINDER_CHANNELS = {value for value, _ in ReminderLog.CHANNEL_CHOICES}
REMINDER_TONES = {value for value, _ in ReminderLog.TONE_CHOICES}


@dataclass(frozen=True)
class Reminder:
    reminder_id: int
    invoice_id: int
    reminded_at: datetime
    channel: str
    tone: str
    title: str
    memo: str
    next_action_date: Optional[date]
    subject: str
    body_text: str
    created_at: datetime

    @classmethod
    def from_model(cls, r: ReminderLog) -> "Reminder":
        return cls(
            reminder_id=r.pk,
            invoice_id=r.invoice_id,
            reminded_at=r.reminded_at,
            channel=r.channel,
            tone=r.tone,
            title=r.title,
            memo=r.memo,
            next_action_date=r.next_action_date,
            subject=r.subject,
            body_text=r.body_text,
            created_at=r.created_at,
        )

    def to_dict(self) -> dict:
        return {
            "reminder_id": self.reminder_id,
            "invoice_id": self.invoice_id,
            "reminded_at": self.reminded_at.isoformat(),
            "channel": self.channel,
            "tone": self.tone,
            "title": self.title,
            "memo": self.memo,
            "next_action_date": (
                self.next_action_date.isoformat() if self.next_action_date else None
            ),
            "subject": self.subject,
            "body_text": self.body_text,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class CollectionSnapshot:
    invoice_id: int
    invoice_number: str
    member_id: int
    member_name: str
    member_email: str
    issue_date: date
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str
    is_overdue: bool
    reminder_count: int
    last_reminded_at: Optional[datetime]
    next_action_date: Optional[date]

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "member_email": self.member_email,
            "issue_date": self.issue_date.isoformat(),
            "due_date": self.due_date.isoformat(),
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "remaining_amount": money_str(self.remaining_amount),
            "status": self.status,
            "is_overdue": self.is_overdue,
            "reminder_count": self.reminder_count,
            "last_reminded_at": (
                self.last_reminded_at.isoformat() if self.last_reminded_at else None
            ),
            "next_action_date": (
                self.next_action_date.isoformat() if self.next_action_date else None
            ),
        }


def _invoice(invoice_id) -> Invoice:
    invoice = (
        Invoice.objects.select_related("member")
        .filter(pk=as_id(invoice_id, "invoice"))
        .first()
    )
    if invoice is None:
        raise NotFound("invoice", invoice_id)
    return invoice


def _reminded_at(value) -> datetime:
    if value is None or value == "":
        return timezone.now()
    try:
        parsed = value if isinstance(value, datetime) else parse_datetime(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidEntity("reminded_at must be an ISO 8601 datetime")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


# =========================================================
# READ
# =========================================================
def get_collection_snapshot(*, invoice_id) -> CollectionSnapshot:
    pk = as_id(invoice_id, "invoice")

    with ledger_transaction(operation="get_collection_snapshot", invoice_id=pk):
        invoice = _invoice(pk)
        paid = (
            Allocation.objects.filter(invoice_id=pk).aggregate(s=Sum("amount"))["s"]
            or ZERO
        )
        reminders = list(ReminderLog.objects.filter(invoice_id=pk))

    remaining = invoice.total_amount - paid
    latest = reminders[0] if reminders else None

    return CollectionSnapshot(
        invoice_id=invoice.pk,
        invoice_number=invoice.invoice_number,
        member_id=invoice.member_id,
        member_name=invoice.member.name,
        member_email=invoice.member.email,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        total_amount=invoice.total_amount,
        paid_amount=paid,
        remaining_amount=remaining,
        status=derive_invoice_status(invoice.total_amount, paid),
        is_overdue=invoice.due_date < timezone.localdate() and remaining > ZERO,
        reminder_count=len(reminders),
        last_reminded_at=latest.reminded_at if latest else None,
        next_action_date=latest.next_action_date if latest else None,
    )


def list_reminders(*, invoice_id) -> Tuple[Reminder, ...]:
    pk = as_id(invoice_id, "invoice")

    with ledger_transaction(operation="list_reminders", invoice_id=pk):
        _invoice(pk)
        rows = ReminderLog.objects.filter(invoice_id=pk).order_by("-reminded_at", "-id")
        return tuple(Reminder.from_model(r) for r in rows)


# =========================================================
# WRITE
# =========================================================
def record_reminder(
    *,
    invoice_id,
    channel: str,
    tone: str = "",
    title: str = "",
    memo: str = "",
    next_action_date=None,
    subject: str = "",
    body_text: str = "",
    reminded_at=None,
) -> Reminder:
    channel = (channel or "").strip().lower()
    if channel not in REMINDER_CHANNELS:
        raise InvalidEntity(f"channel must be one of: {', '.join(sorted(REMINDER_CHANNELS))}")

    tone = (tone or "").strip().lower()
    if tone and tone not in REMINDER_TONES:
        raise InvalidEntity(f"tone must be one of: {', '.join(sorted(REMINDER_TONES))}")

    next_action = (
        _as_date(next_action_date, field="next_action_date") if next_action_date else None
    )
    at = _reminded_at(reminded_at)

    pk = as_id(invoice_id, "invoice")
    with ledger_transaction(operation="record_reminder", invoice_id=pk):
        invoice = _invoice(pk)
        reminder = ReminderLog.objects.create(
            invoice=invoice,
            reminded_at=at,
            channel=channel,
            tone=tone,
            title=(title or "").strip(),
            memo=memo or "",
            next_action_date=next_action,
            subject=(subject or "").strip(),
            body_text=body_text or "",
        )

    logger.info(
        "Reminder recorded",
        extra={
            "invoice_id": pk,
            "reminder_id": reminder.pk,
            "channel": channel,
            "tone": tone,
        },
    )
    return Reminder.from_model(reminder)
