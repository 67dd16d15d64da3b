# ledger/services/status_deriver.py
"""
======================================================
PATH: ledger/services/status_deriver.py
======================================================
STATUS DERIVER (PURE)

Single source of truth for:
- invoice status   (UNPAID / PARTIAL / PAID)
- payment status   (UNALLOCATED / PARTIAL / ALLOCATED)
- recovery rate    (paid / total * 100, one decimal, ROUND_HALF_UP)

RULES:
- Inputs are Decimal (ints / numeric strings accepted); None is a TypeError.
  Comparisons are exact. Only the rate is rounded.
- total == 0 -> "no activity" status and rate 0.0 (never divides by zero).
- No DB access. Stored status columns are a cache of these functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
ONEPLACE = Decimal("0.1")
RATE_ZERO = Decimal("0.0")

INVOICE_UNPAID = "UNPAID"
INVOICE_PARTIAL = "PARTIAL"
INVOICE_PAID = "PAID"

PAYMENT_UNALLOCATED = "UNALLOCATED"
PAYMENT_PARTIAL = "PARTIAL"
PAYMENT_ALLOCATED = "ALLOCATED"

KIND_INVOICE = "invoice"
KIND_PAYMENT = "payment"


@dataclass(frozen=True)
class DerivedStatus:
    status: str
    recovery_rate: Decimal


def _as_decimal(v) -> Decimal:
    if isinstance(v, Decimal):
        return v
    if v is None or isinstance(v, bool):
        raise TypeError(f"Amount must be a number, got {v!r}")
    return Decimal(str(v))


def recovery_rate(paid, total) -> Decimal:
    """
    paid / total * 100 rounded half-up to one decimal; 0.0 when total is 0.
    """
    paid = _as_decimal(paid)
    total = _as_decimal(total)
    if total <= ZERO:
        return RATE_ZERO
    return (paid / total * HUNDRED).quantize(ONEPLACE, rounding=ROUND_HALF_UP)


def derive_invoice_status(total, paid) -> str:
    total = _as_decimal(total)
    paid = _as_decimal(paid)

    if paid <= ZERO or total <= ZERO:
        return INVOICE_UNPAID
    if paid >= total:
        return INVOICE_PAID
    return INVOICE_PARTIAL


def derive_payment_status(amount, allocated) -> str:
    amount = _as_decimal(amount)
    allocated = _as_decimal(allocated)

    if allocated <= ZERO or amount <= ZERO:
        return PAYMENT_UNALLOCATED
    if allocated >= amount:
        return PAYMENT_ALLOCATED
    return PAYMENT_PARTIAL


def derive(total, paid, kind: str = KIND_INVOICE) -> DerivedStatus:
    if kind == KIND_INVOICE:
        status = derive_invoice_status(total, paid)
    elif kind == KIND_PAYMENT:
        status = derive_payment_status(total, paid)
    else:
        raise ValueError(f"Unknown status kind: {kind!r}")

    return DerivedStatus(status=status, recovery_rate=recovery_rate(paid, total))
