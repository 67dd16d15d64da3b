# reports/services/status_filters.py
"""
======================================================
PATH: reports/services/status_filters.py
======================================================
DERIVED-STATUS FILTERS (SQL)

Report status filters must select exactly the rows the status deriver would
label with that status. SQLite keeps decimals as REAL, so a SUM of 0.70 and
0.10 comes back as 0.7999999999999999. Both sides are therefore compared as
whole cents (ROUND(x * 100) cast to an integer), which is exact on SQLite and
PostgreSQL alike.

Mirrors ledger.services.status_deriver:
- invoice  UNPAID  paid <= 0 or total <= 0
           PAID    paid >= total (total > 0, paid > 0)
           PARTIAL otherwise
- payment  same shape with allocated / amount
"""

from __future__ import annotations

from django.db.models import BigIntegerField, F, Q, Value
from django.db.models.functions import Cast, Round


def cents(field_name: str):
    return Cast(Round(F(field_name) * Value(100)), output_field=BigIntegerField())


def _derived_q(status: str, *, low: str, mid: str, high: str, paid: str, total: str) -> Q:
    nothing = Q(**{f"{paid}__lte": 0}) | Q(**{f"{total}__lte": 0})
    settled = (
        Q(**{f"{total}__gt": 0})
        & Q(**{f"{paid}__gt": 0})
        & Q(**{f"{paid}__gte": F(total)})
    )

    if status == low:
        return nothing
    if status == high:
        return settled
    if status == mid:
        return ~nothing & ~settled
    raise ValueError(f"Unknown status filter: {status!r}")


def invoice_status_q(status: str) -> Q:
    """Expects paid_cents / total_cents annotations."""
    return _derived_q(
        status,
        low="unpaid",
        mid="partial",
        high="paid",
        paid="paid_cents",
        total="total_cents",
    )


def payment_status_q(status: str) -> Q:
    """Expects allocated_cents / amount_cents annotations."""
    return _derived_q(
        status,
        low="unallocated",
        mid="partial",
        high="allocated",
        paid="allocated_cents",
        total="amount_cents",
    )
