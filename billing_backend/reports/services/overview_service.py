# reports/services/overview_service.py
"""
======================================================
PATH: reports/services/overview_service.py
======================================================
YEARLY COLLECTIONS OVERVIEW (READ-ONLY)

year_overview(year) -> YearOverview

- invoices issued in `year`; paid = live allocation sums (any payment date)
- totals + recovery rate over all of them
- invoice_count, payment_count (payments dated in `year`)
- monthly_sales: 12 entries (month 1..12), invoice totals by issue month,
  months without invoices are 0.00
- unpaid_top: invoices with something outstanding, overdue first, then
  largest remaining, then earliest due date (id breaks ties); at most
  UNPAID_TOP_LIMIT rows
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Tuple

from django.utils import timezone

from ledger.models import Payment
from ledger.services.amounts import ZERO, money_str
from ledger.services.locking import ledger_transaction
from ledger.services.status_deriver import recovery_rate
from reports.services.filters import SalesFilter
from reports.services.sales_report_service import filtered_invoices

logger = logging.getLogger("reports")

UNPAID_TOP_LIMIT = 5


@dataclass(frozen=True)
class MonthlySales:
    month: int
    invoice_total: Decimal

    def to_dict(self) -> dict:
        return {"month": self.month, "invoice_total": money_str(self.invoice_total)}


@dataclass(frozen=True)
class UnpaidInvoice:
    invoice_id: int
    invoice_number: str
    member_name: str
    due_date: date
    invoice_total: Decimal
    paid_total: Decimal
    remaining_total: Decimal
    is_overdue: bool

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice_number,
            "member_name": self.member_name,
            "due_date": self.due_date.isoformat(),
            "invoice_total": money_str(self.invoice_total),
            "paid_total": money_str(self.paid_total),
            "remaining_total": money_str(self.remaining_total),
            "is_overdue": self.is_overdue,
        }


@dataclass(frozen=True)
class YearOverview:
    year: int
    invoice_total: Decimal
    paid_total: Decimal
    remaining_total: Decimal
    recovery_rate: Decimal
    invoice_count: int
    payment_count: int
    monthly_sales: Tuple[MonthlySales, ...]
    unpaid_top: Tuple[UnpaidInvoice, ...]

    def to_dict(self) -> dict:
        return {
            "year": self.year,
            "invoice_total": money_str(self.invoice_total),
            "paid_total": money_str(self.paid_total),
            "remaining_total": money_str(self.remaining_total),
            "recovery_rate": str(self.recovery_rate),
            "invoice_count": self.invoice_count,
            "payment_count": self.payment_count,
            "monthly_sales": [m.to_dict() for m in self.monthly_sales],
            "unpaid_top": [u.to_dict() for u in self.unpaid_top],
        }


def year_overview(*, year: int) -> YearOverview:
    filters = SalesFilter(year=year)

    with ledger_transaction(operation="year_overview", year=year):
        invoices = list(
            filtered_invoices(filters).values(
                "pk",
                "invoice_number",
                "member__name",
                "issue_date",
                "due_date",
                "total_amount",
                "live_paid",
            )
        )
        payment_count = Payment.objects.filter(payment_date__year=year).count()

    today = timezone.localdate()
    by_month = {m: ZERO for m in range(1, 13)}
    invoice_total = ZERO
    paid_total = ZERO
    outstanding = []

    for row in invoices:
        total = row["total_amount"]
        paid = row["live_paid"]
        remaining = max(ZERO, total - paid)

        invoice_total += total
        paid_total += paid
        by_month[row["issue_date"].month] += total

        if remaining > ZERO:
            outstanding.append(
                UnpaidInvoice(
                    invoice_id=row["pk"],
                    invoice_number=row["invoice_number"],
                    member_name=row["member__name"],
                    due_date=row["due_date"],
                    invoice_total=total,
                    paid_total=paid,
                    remaining_total=remaining,
                    is_overdue=row["due_date"] < today,
                )
            )

    outstanding.sort(
        key=lambda u: (not u.is_overdue, -u.remaining_total, u.due_date, u.invoice_id)
    )

    logger.debug(
        "Year overview",
        extra={"year": year, "total_count": len(invoices), "payment_count": payment_count},
    )

    return YearOverview(
        year=year,
        invoice_total=invoice_total,
        paid_total=paid_total,
        remaining_total=invoice_total - paid_total,
        recovery_rate=recovery_rate(paid_total, invoice_total),
        invoice_count=len(invoices),
        payment_count=payment_count,
        monthly_sales=tuple(MonthlySales(month=m, invoice_total=v) for m, v in by_month.items()),
        unpaid_top=tuple(outstanding[:UNPAID_TOP_LIMIT]),
    )
