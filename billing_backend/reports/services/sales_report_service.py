# reports/services/sales_report_service.py
"""
======================================================
PATH: reports/services/sales_report_service.py
======================================================
SALES / COLLECTIONS REPORTS (READ-ONLY)

- search_invoices(filters, window)   per-invoice listing
- search_by_member(filters, window)  one row per member
- worst_customers(filters, limit)    top-N outstanding exposure

RULES:
- paid amounts come from live allocation sums (subquery), never from the
  denormalized invoice columns; status filters compare the same sums in
  whole cents (reports.services.status_filters).
- summary + total_count cover the FULL filtered set. page / page_size only
  decide which rows are returned.
- Invoice rows: issue_date desc, id desc.
- Member rows: invoice_total desc, member_id asc.
- Worst customers: remaining_total desc, recovery_rate asc, member_id asc;
  members with nothing outstanding are not ranked. The status filter is
  ignored (year, month, keyword and member_id still apply).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from django.conf import settings
from django.db.models import (
    Count,
    DateField,
    DecimalField,
    Max,
    OuterRef,
    Q,
    Subquery,
    Sum,
)
from django.db.models.functions import Coalesce
from django.utils import timezone

from ledger.models import Allocation, Invoice
from ledger.services.amounts import ZERO, money_str
from ledger.services.exceptions import InvalidFilter
from ledger.services.locking import ledger_transaction
from ledger.services.status_deriver import KIND_INVOICE, derive, recovery_rate
from members.models import Member
from reports.services.filters import STATUS_ALL, PageWindow, SalesFilter
from reports.services.status_filters import cents, invoice_status_q

logger = logging.getLogger("reports")

MONEY = DecimalField(max_digits=14, decimal_places=2)


# =========================================================
# RESULT TYPES
# =========================================================
@dataclass(frozen=True)
class SalesSummary:
    invoice_total: Decimal
    paid_total: Decimal
    remaining_total: Decimal
    recovery_rate: Decimal

    def to_dict(self) -> dict:
        return {
            "invoice_total": money_str(self.invoice_total),
            "paid_total": money_str(self.paid_total),
            "remaining_total": money_str(self.remaining_total),
            "recovery_rate": str(self.recovery_rate),
        }


def _summary(invoice_total: Decimal, paid_total: Decimal) -> SalesSummary:
    return SalesSummary(
        invoice_total=invoice_total,
        paid_total=paid_total,
        remaining_total=invoice_total - paid_total,
        recovery_rate=recovery_rate(paid_total, invoice_total),
    )


@dataclass(frozen=True)
class InvoiceRow:
    invoice_id: int
    invoice_number: str
    member_id: int
    member_name: str
    issue_date: date
    due_date: date
    status: str
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    recovery_rate: Decimal
    last_paid_at: Optional[date]
    is_overdue: bool

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "member_id": self.member_id,
            "member_name": self.member_name,
            "issue_date": self.issue_date,
            "due_date": self.due_date,
            "status": self.status,
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "remaining_amount": money_str(self.remaining_amount),
            "recovery_rate": str(self.recovery_rate),
            "last_paid_at": self.last_paid_at,
            "is_overdue": self.is_overdue,
        }


@dataclass(frozen=True)
class MemberRow:
    member_id: int
    member_name: str
    invoice_count: int
    invoice_total: Decimal
    paid_total: Decimal
    remaining_total: Decimal
    recovery_rate: Decimal

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "invoice_count": self.invoice_count,
            "invoice_total": money_str(self.invoice_total),
            "paid_total": money_str(self.paid_total),
            "remaining_total": money_str(self.remaining_total),
            "recovery_rate": str(self.recovery_rate),
        }


@dataclass(frozen=True)
class ReportPage:
    rows: Tuple
    summary: object
    total_count: int
    page: int
    page_size: int
    total_pages: int
    member_name: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "results": [r.to_dict() for r in self.rows],
            "summary": self.summary.to_dict(),
            "total_count": self.total_count,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }
        if self.member_name is not None:
            out["member_name"] = self.member_name
        return out


# =========================================================
# QUERY BUILDING
# =========================================================
def _live_paid():
    paid = (
        Allocation.objects.filter(invoice_id=OuterRef("pk"))
        .order_by()
        .values("invoice_id")
        .annotate(total=Sum("amount"))
        .values("total")[:1]
    )
    return Coalesce(Subquery(paid, output_field=MONEY), ZERO, output_field=MONEY)


def _live_last_paid_at():
    last = (
        Allocation.objects.filter(invoice_id=OuterRef("pk"))
        .order_by()
        .values("invoice_id")
        .annotate(last=Max("payment__payment_date"))
        .values("last")[:1]
    )
    return Subquery(last, output_field=DateField())


def filtered_invoices(f: SalesFilter):
    """
    Invoices matching the filter, annotated with live_paid / live_last_paid_at.
    Unordered; callers order or aggregate.
    """
    qs = Invoice.objects.filter(issue_date__year=f.year)

    if f.month is not None:
        qs = qs.filter(issue_date__month=f.month)
    if f.member_id is not None:
        qs = qs.filter(member_id=f.member_id)
    if f.keyword:
        qs = qs.filter(
            Q(invoice_number__icontains=f.keyword) | Q(member__name__icontains=f.keyword)
        )

    qs = qs.annotate(live_paid=_live_paid(), live_last_paid_at=_live_last_paid_at())

    if f.status != STATUS_ALL:
        qs = qs.annotate(
            paid_cents=cents("live_paid"), total_cents=cents("total_amount")
        ).filter(invoice_status_q(f.status))

    return qs.order_by()


def _summary_for(qs) -> SalesSummary:
    ids = qs.values("pk")
    invoice_total = Invoice.objects.filter(pk__in=ids).aggregate(
        total=Coalesce(Sum("total_amount"), ZERO, output_field=MONEY)
    )["total"]
    paid_total = Allocation.objects.filter(invoice_id__in=ids).aggregate(
        total=Coalesce(Sum("amount"), ZERO, output_field=MONEY)
    )["total"]
    return _summary(invoice_total, paid_total)


def _member_name(member_id: Optional[int]) -> Optional[str]:
    if member_id is None:
        return None
    return Member.objects.filter(pk=member_id).values_list("name", flat=True).first() or ""


# =========================================================
# PER-INVOICE LISTING
# =========================================================
def search_invoices(*, filters: SalesFilter, window: PageWindow) -> ReportPage:
    with ledger_transaction(operation="search_invoices", year=filters.year):
        qs = filtered_invoices(filters)

        total_count = qs.count()
        summary = _summary_for(qs)

        page_qs = (
            qs.select_related("member")
            .order_by("-issue_date", "-id")[window.offset : window.offset + window.page_size]
        )

        today = timezone.localdate()
        rows: List[InvoiceRow] = []
        for inv in page_qs:
            paid = inv.live_paid
            remaining = inv.total_amount - paid
            derived = derive(inv.total_amount, paid, KIND_INVOICE)
            rows.append(
                InvoiceRow(
                    invoice_id=inv.pk,
                    invoice_number=inv.invoice_number,
                    member_id=inv.member_id,
                    member_name=inv.member.name,
                    issue_date=inv.issue_date,
                    due_date=inv.due_date,
                    status=derived.status,
                    total_amount=inv.total_amount,
                    paid_amount=paid,
                    remaining_amount=remaining,
                    recovery_rate=derived.recovery_rate,
                    last_paid_at=inv.live_last_paid_at,
                    is_overdue=inv.due_date < today and remaining > ZERO,
                )
            )

        member_name = _member_name(filters.member_id)

    logger.debug(
        "Sales report",
        extra={"year": filters.year, "month": filters.month, "total_count": total_count},
    )

    return ReportPage(
        rows=tuple(rows),
        summary=summary,
        total_count=total_count,
        page=window.page,
        page_size=window.page_size,
        total_pages=window.total_pages(total_count),
        member_name=member_name,
    )


# =========================================================
# MEMBER ROLLUP
# =========================================================
def _member_rows(f: SalesFilter) -> List[MemberRow]:
    ids = filtered_invoices(f).values("pk")

    groups = (
        Invoice.objects.filter(pk__in=ids)
        .values("member_id", "member__name")
        .annotate(
            invoice_total=Coalesce(Sum("total_amount"), ZERO, output_field=MONEY),
            invoice_count=Count("pk"),
        )
        .order_by()
    )
    paid_by_member: Dict[int, Decimal] = {
        row["invoice__member_id"]: row["paid"]
        for row in Allocation.objects.filter(invoice_id__in=ids)
        .values("invoice__member_id")
        .annotate(paid=Coalesce(Sum("amount"), ZERO, output_field=MONEY))
        .order_by()
    }

    rows = []
    for g in groups:
        invoice_total = g["invoice_total"]
        paid_total = paid_by_member.get(g["member_id"], ZERO)
        rows.append(
            MemberRow(
                member_id=g["member_id"],
                member_name=g["member__name"],
                invoice_count=g["invoice_count"],
                invoice_total=invoice_total,
                paid_total=paid_total,
                remaining_total=invoice_total - paid_total,
                recovery_rate=recovery_rate(paid_total, invoice_total),
            )
        )
    return rows


def search_by_member(*, filters: SalesFilter, window: PageWindow) -> ReportPage:
    with ledger_transaction(operation="search_by_member", year=filters.year):
        rows = _member_rows(filters)
        member_name = _member_name(filters.member_id)

    rows.sort(key=lambda r: (-r.invoice_total, r.member_id))

    invoice_total = sum((r.invoice_total for r in rows), ZERO)
    paid_total = sum((r.paid_total for r in rows), ZERO)

    return ReportPage(
        rows=tuple(window.slice(rows)),
        summary=_summary(invoice_total, paid_total),
        total_count=len(rows),
        page=window.page,
        page_size=window.page_size,
        total_pages=window.total_pages(len(rows)),
        member_name=member_name,
    )


# =========================================================
# WORST CUSTOMERS
# =========================================================
def default_worst_limit() -> int:
    return int(getattr(settings, "WORST_CUSTOMERS_DEFAULT_LIMIT", 5))


def worst_customers(
    *, filters: SalesFilter, limit: Optional[int] = None
) -> Tuple[MemberRow, ...]:
    if limit is None:
        limit = default_worst_limit()
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidFilter("limit must be an integer >= 1")

    # ranking always covers unpaid and partial invoices alike
    exposure = replace(filters, status=STATUS_ALL)

    with ledger_transaction(operation="worst_customers", year=filters.year):
        rows = _member_rows(exposure)

    outstanding = [r for r in rows if r.remaining_total > ZERO]
    outstanding.sort(key=lambda r: (-r.remaining_total, r.recovery_rate, r.member_id))

    logger.debug(
        "Worst customers",
        extra={"year": filters.year, "ranked": len(outstanding), "limit": limit},
    )

    return tuple(outstanding[:limit])
