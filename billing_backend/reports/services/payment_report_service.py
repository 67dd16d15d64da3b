# reports/services/payment_report_service.py
"""
======================================================
PATH: reports/services/payment_report_service.py
======================================================
PAYMENT LISTING (READ-ONLY)

search_payments(filters, window)

- status derived from live allocation sums: unallocated | partial | allocated
- keyword: payer name, payment id (digits), or any allocated invoice number
- summary {total_amount, allocated_total, unallocated_total} over the full
  filtered set; rows ordered payment_date desc, id desc
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Tuple

from django.db.models import DecimalField, OuterRef, Q, Subquery, Sum
from django.db.models.functions import Coalesce

from ledger.models import Allocation, Payment
from ledger.services.amounts import ZERO, money_str
from ledger.services.locking import ledger_transaction
from ledger.services.status_deriver import KIND_PAYMENT, derive
from reports.services.filters import STATUS_ALL, PageWindow, PaymentFilter
from reports.services.sales_report_service import ReportPage
from reports.services.status_filters import cents, payment_status_q

logger = logging.getLogger("reports")

MONEY = DecimalField(max_digits=14, decimal_places=2)


@dataclass(frozen=True)
class PaymentSummary:
    total_amount: Decimal
    allocated_total: Decimal
    unallocated_total: Decimal

    def to_dict(self) -> dict:
        return {
            "total_amount": money_str(self.total_amount),
            "allocated_total": money_str(self.allocated_total),
            "unallocated_total": money_str(self.unallocated_total),
        }


@dataclass(frozen=True)
class PaymentRow:
    payment_id: int
    member_id: int
    member_name: str
    payer_name: str
    method: str
    payment_date: date
    amount: Decimal
    allocated_amount: Decimal
    unallocated_amount: Decimal
    status: str
    invoice_numbers: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "payer_name": self.payer_name,
            "method": self.method,
            "payment_date": self.payment_date,
            "amount": money_str(self.amount),
            "allocated_amount": money_str(self.allocated_amount),
            "unallocated_amount": money_str(self.unallocated_amount),
            "status": self.status,
            "invoice_numbers": list(self.invoice_numbers),
        }


def _live_allocated():
    allocated = (
        Allocation.objects.filter(payment_id=OuterRef("pk"))
        .order_by()
        .values("payment_id")
        .annotate(total=Sum("amount"))
        .values("total")[:1]
    )
    return Coalesce(Subquery(allocated, output_field=MONEY), ZERO, output_field=MONEY)


def filtered_payments(f: PaymentFilter):
    qs = Payment.objects.filter(payment_date__year=f.year)

    if f.month is not None:
        qs = qs.filter(payment_date__month=f.month)
    if f.member_id is not None:
        qs = qs.filter(member_id=f.member_id)
    if f.keyword:
        kw = f.keyword
        match = Q(payer_name__icontains=kw) | Q(
            pk__in=Allocation.objects.filter(invoice__invoice_number__icontains=kw).values(
                "payment_id"
            )
        )
        if kw.isdigit() and len(kw) <= 18:
            match |= Q(pk=int(kw))
        qs = qs.filter(match)

    qs = qs.annotate(live_allocated=_live_allocated())

    if f.status != STATUS_ALL:
        qs = qs.annotate(
            allocated_cents=cents("live_allocated"), amount_cents=cents("amount")
        ).filter(payment_status_q(f.status))

    return qs.order_by()


def _invoice_numbers(payment_ids: List[int]) -> Dict[int, Tuple[str, ...]]:
    numbers = defaultdict(list)
    for payment_id, number in (
        Allocation.objects.filter(payment_id__in=payment_ids)
        .order_by("id")
        .values_list("payment_id", "invoice__invoice_number")
    ):
        numbers[payment_id].append(number)
    return {k: tuple(v) for k, v in numbers.items()}


def search_payments(*, filters: PaymentFilter, window: PageWindow) -> ReportPage:
    with ledger_transaction(operation="search_payments", year=filters.year):
        qs = filtered_payments(filters)

        total_count = qs.count()

        ids = qs.values("pk")
        total_amount = Payment.objects.filter(pk__in=ids).aggregate(
            total=Coalesce(Sum("amount"), ZERO, output_field=MONEY)
        )["total"]
        allocated_total = Allocation.objects.filter(payment_id__in=ids).aggregate(
            total=Coalesce(Sum("amount"), ZERO, output_field=MONEY)
        )["total"]

        page = list(
            qs.select_related("member").order_by("-payment_date", "-id")[
                window.offset : window.offset + window.page_size
            ]
        )
        numbers = _invoice_numbers([p.pk for p in page])

    rows = []
    for p in page:
        allocated = p.live_allocated
        rows.append(
            PaymentRow(
                payment_id=p.pk,
                member_id=p.member_id,
                member_name=p.member.name,
                payer_name=p.payer_name,
                method=p.method,
                payment_date=p.payment_date,
                amount=p.amount,
                allocated_amount=allocated,
                unallocated_amount=p.amount - allocated,
                status=derive(p.amount, allocated, KIND_PAYMENT).status,
                invoice_numbers=numbers.get(p.pk, ()),
            )
        )

    logger.debug(
        "Payment report",
        extra={"year": filters.year, "month": filters.month, "total_count": total_count},
    )

    return ReportPage(
        rows=tuple(rows),
        summary=PaymentSummary(
            total_amount=total_amount,
            allocated_total=allocated_total,
            unallocated_total=total_amount - allocated_total,
        ),
        total_count=total_count,
        page=window.page,
        page_size=window.page_size,
        total_pages=window.total_pages(total_count),
    )
