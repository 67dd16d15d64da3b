# ledger/tests/helpers.py

"""
Shared builders for ledger / reports tests. Entities are created through the
entity service so tests exercise the same path as the API.
"""

from __future__ import annotations

import itertools
from datetime import date, timedelta
from decimal import Decimal

from ledger.models import Allocation, Invoice, Payment
from ledger.services.entity_service import create_invoice, create_payment
from ledger.services.status_deriver import (
    derive_invoice_status,
    derive_payment_status,
)
from members.models import Member

_numbers = itertools.count(1)


def make_member(name: str = "Acme Trading") -> Member:
    return Member.objects.create(name=name)


def make_invoice(
    member: Member,
    *,
    total,
    issue_date: date = date(2024, 1, 10),
    due_date: date | None = None,
    number: str | None = None,
) -> Invoice:
    return create_invoice(
        member_id=member.pk,
        invoice_number=number or f"INV-T{next(_numbers):05d}",
        issue_date=issue_date,
        due_date=due_date or issue_date + timedelta(days=30),
        total_amount=Decimal(str(total)),
    )


def make_payment(
    member: Member,
    *,
    amount,
    payment_date: date = date(2024, 1, 20),
    payer_name: str = "",
) -> Payment:
    return create_payment(
        member_id=member.pk,
        payment_date=payment_date,
        amount=Decimal(str(amount)),
        payer_name=payer_name,
    )


def ledger_violations() -> list[str]:
    """
    Every broken ledger invariant, as readable strings (empty when healthy):
    caps, cached paid/allocated columns and cached statuses.
    """
    problems = []

    for inv in Invoice.objects.all():
        paid = sum(
            (a.amount for a in Allocation.objects.filter(invoice=inv)), Decimal("0.00")
        )
        if paid > inv.total_amount:
            problems.append(f"invoice {inv.pk} over-allocated: {paid} > {inv.total_amount}")
        if paid != inv.paid_amount:
            problems.append(f"invoice {inv.pk} paid cache {inv.paid_amount} != {paid}")
        if inv.status != derive_invoice_status(inv.total_amount, paid):
            problems.append(f"invoice {inv.pk} status {inv.status} is stale")

    for pay in Payment.objects.all():
        allocated = sum(
            (a.amount for a in Allocation.objects.filter(payment=pay)), Decimal("0.00")
        )
        if allocated > pay.amount:
            problems.append(f"payment {pay.pk} over-allocated: {allocated} > {pay.amount}")
        if allocated != pay.allocated_amount:
            problems.append(
                f"payment {pay.pk} allocated cache {pay.allocated_amount} != {allocated}"
            )
        if pay.status != derive_payment_status(pay.amount, allocated):
            problems.append(f"payment {pay.pk} status {pay.status} is stale")

    for a in Allocation.objects.all():
        if a.amount <= 0:
            problems.append(f"allocation {a.pk} non-positive amount {a.amount}")

    return problems
