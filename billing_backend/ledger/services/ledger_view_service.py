# ledger/services/ledger_view_service.py
"""
======================================================
PATH: ledger/services/ledger_view_service.py
======================================================
LEDGER VIEWS (READ-ONLY)

- get_payment_ledger_view(payment_id)
- get_invoice_ledger_view(invoice_id)

Totals, status and recovery rate are computed from the allocation rows
returned by the same query, not from the denormalized columns, so a view
is always internally consistent with its own allocation list.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Tuple

from django.utils import timezone

from ledger.models import Allocation, Invoice, Payment
from ledger.services.amounts import ZERO, money_str
from ledger.services.exceptions import NotFound
from ledger.services.locking import as_id, ledger_transaction
from ledger.services.status_deriver import KIND_INVOICE, KIND_PAYMENT, derive


@dataclass(frozen=True)
class AllocationLine:
    allocation_id: int
    payment_id: int
    invoice_id: int
    invoice_number: str
    payment_date: date
    amount: Decimal
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "allocation_id": self.allocation_id,
            "payment_id": self.payment_id,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "payment_date": self.payment_date,
            "amount": money_str(self.amount),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class PaymentLedgerView:
    payment_id: int
    member_id: int
    payer_name: str
    method: str
    payment_date: date
    amount: Decimal
    allocated_amount: Decimal
    unallocated_amount: Decimal
    status: str
    allocations: Tuple[AllocationLine, ...]

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "member_id": self.member_id,
            "payer_name": self.payer_name,
            "method": self.method,
            "payment_date": self.payment_date,
            "amount": money_str(self.amount),
            "allocated_amount": money_str(self.allocated_amount),
            "unallocated_amount": money_str(self.unallocated_amount),
            "status": self.status,
            "allocations": [a.to_dict() for a in self.allocations],
        }


@dataclass(frozen=True)
class InvoiceLedgerView:
    invoice_id: int
    invoice_number: str
    member_id: int
    issue_date: date
    due_date: date
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str
    recovery_rate: Decimal
    last_paid_at: Optional[date]
    is_overdue: bool
    allocations: Tuple[AllocationLine, ...]

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "member_id": self.member_id,
            "issue_date": self.issue_date,
            "due_date": self.due_date,
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "remaining_amount": money_str(self.remaining_amount),
            "status": self.status,
            "recovery_rate": str(self.recovery_rate),
            "last_paid_at": self.last_paid_at,
            "is_overdue": self.is_overdue,
            "allocations": [a.to_dict() for a in self.allocations],
        }


def _lines(qs) -> Tuple[AllocationLine, ...]:
    rows = qs.select_related("invoice", "payment").order_by("id")
    return tuple(
        AllocationLine(
            allocation_id=a.pk,
            payment_id=a.payment_id,
            invoice_id=a.invoice_id,
            invoice_number=a.invoice.invoice_number,
            payment_date=a.payment.payment_date,
            amount=a.amount,
            created_at=a.created_at,
        )
        for a in rows
    )


def get_payment_ledger_view(*, payment_id) -> PaymentLedgerView:
    pk = as_id(payment_id, "payment")

    with ledger_transaction(operation="get_payment_ledger_view", payment_id=pk):
        payment = Payment.objects.filter(pk=pk).first()
        if payment is None:
            raise NotFound("payment", payment_id)
        allocations = _lines(Allocation.objects.filter(payment_id=pk))

    allocated = sum((a.amount for a in allocations), ZERO)
    derived = derive(payment.amount, allocated, KIND_PAYMENT)

    return PaymentLedgerView(
        payment_id=payment.pk,
        member_id=payment.member_id,
        payer_name=payment.payer_name,
        method=payment.method,
        payment_date=payment.payment_date,
        amount=payment.amount,
        allocated_amount=allocated,
        unallocated_amount=payment.amount - allocated,
        status=derived.status,
        allocations=allocations,
    )


def get_invoice_ledger_view(*, invoice_id) -> InvoiceLedgerView:
    pk = as_id(invoice_id, "invoice")

    with ledger_transaction(operation="get_invoice_ledger_view", invoice_id=pk):
        invoice = Invoice.objects.filter(pk=pk).first()
        if invoice is None:
            raise NotFound("invoice", invoice_id)
        allocations = _lines(Allocation.objects.filter(invoice_id=pk))

    paid = sum((a.amount for a in allocations), ZERO)
    remaining = invoice.total_amount - paid
    derived = derive(invoice.total_amount, paid, KIND_INVOICE)
    last_paid_at = max((a.payment_date for a in allocations), default=None)

    return InvoiceLedgerView(
        invoice_id=invoice.pk,
        invoice_number=invoice.invoice_number,
        member_id=invoice.member_id,
        issue_date=invoice.issue_date,
        due_date=invoice.due_date,
        total_amount=invoice.total_amount,
        paid_amount=paid,
        remaining_amount=remaining,
        status=derived.status,
        recovery_rate=derived.recovery_rate,
        last_paid_at=last_paid_at,
        is_overdue=invoice.due_date < timezone.localdate() and remaining > ZERO,
        allocations=allocations,
    )
