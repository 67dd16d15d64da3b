# ledger/services/amounts.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ledger.services.exceptions import InvalidAmount

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# DecimalField(max_digits=14, decimal_places=2)
MAX_AMOUNT = Decimal("999999999999.99")


def _money(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def money_str(v) -> str:
    return f"{_money(v):.2f}"


def parse_amount(value, *, field: str = "amount", allow_zero: bool = False) -> Decimal:
    """
    Strict money parser for command inputs.

    Accepts Decimal / int / numeric str. Rejects bool, NaN/Infinity, more than
    two decimal places, values past the column width, and values <= 0
    (< 0 when allow_zero).
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"{field} is required")

    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmount(f"{field} is not a valid amount: {value!r}") from exc

    if not d.is_finite():
        raise InvalidAmount(f"{field} must be a finite amount")

    if abs(d) > MAX_AMOUNT:
        raise InvalidAmount(f"{field} is too large")

    if d.as_tuple().exponent < -2 and d != d.quantize(TWOPLACES, rounding=ROUND_HALF_UP):
        raise InvalidAmount(f"{field} cannot have more than 2 decimal places")

    if allow_zero:
        if d < ZERO:
            raise InvalidAmount(f"{field} cannot be negative")
    elif d <= ZERO:
        raise InvalidAmount(f"{field} must be greater than zero")

    return d.quantize(TWOPLACES)
