# reports/services/filters.py
"""
======================================================
PATH: reports/services/filters.py
======================================================
REPORT FILTER + PAGE TYPES

- SalesFilter    (invoice listing, by-member rollup, worst customers)
- PaymentFilter  (payment listing)
- PageWindow     (page >= 1, 0 < page_size <= REPORT_MAX_PAGE_SIZE)

All three validate on construction and raise InvalidFilter; `from_params`
parses raw query-string values (strings, "all", blanks).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from django.conf import settings

from ledger.services.exceptions import InvalidFilter

STATUS_ALL = "all"

SALES_STATUSES = ("unpaid", "partial", "paid")
PAYMENT_STATUSES = ("unallocated", "partial", "allocated")

MIN_YEAR = 1900
MAX_YEAR = 9999
MAX_KEYWORD_LENGTH = 100


# =========================================================
# PARSING HELPERS
# =========================================================
def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_int(value, *, field: str) -> int:
    if isinstance(value, bool):
        raise InvalidFilter(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidFilter(f"{field} must be an integer") from exc


def _parse_month(value) -> Optional[int]:
    if _blank(value):
        return None
    if isinstance(value, str) and value.strip().lower() == STATUS_ALL:
        return None
    return _parse_int(value, field="month")


def _parse_status(value) -> str:
    if _blank(value):
        return STATUS_ALL
    return str(value).strip().lower()


def _parse_keyword(value) -> Optional[str]:
    if _blank(value):
        return None
    return str(value).strip()


def _parse_optional_id(value, *, field: str) -> Optional[int]:
    if _blank(value):
        return None
    return _parse_int(value, field=field)


def _validate_common(*, year, month, keyword, member_id) -> None:
    if isinstance(year, bool) or not isinstance(year, int):
        raise InvalidFilter("year is required and must be an integer")
    if not (MIN_YEAR <= year <= MAX_YEAR):
        raise InvalidFilter(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    if month is not None and not (1 <= month <= 12):
        raise InvalidFilter("month must be 1-12 or 'all'")
    if keyword is not None and len(keyword) > MAX_KEYWORD_LENGTH:
        raise InvalidFilter(f"keyword cannot exceed {MAX_KEYWORD_LENGTH} characters")
    if member_id is not None and member_id <= 0:
        raise InvalidFilter("member_id must be a positive integer")


# =========================================================
# FILTERS
# =========================================================
@dataclass(frozen=True)
class SalesFilter:
    """
    year       required
    month      1-12, None = every month of the year (issue_date)
    status     unpaid | partial | paid | all (derived from live allocations)
    keyword    case-insensitive substring of invoice number OR member name
    member_id  restrict to one member
    """

    year: int
    month: Optional[int] = None
    status: str = STATUS_ALL
    keyword: Optional[str] = None
    member_id: Optional[int] = None

    def __post_init__(self):
        _validate_common(
            year=self.year, month=self.month, keyword=self.keyword, member_id=self.member_id
        )
        if self.status != STATUS_ALL and self.status not in SALES_STATUSES:
            raise InvalidFilter(
                f"status must be one of: {', '.join((*SALES_STATUSES, STATUS_ALL))}"
            )

    @classmethod
    def from_params(cls, params: Mapping) -> "SalesFilter":
        year = params.get("year")
        if _blank(year):
            raise InvalidFilter("year is required")
        return cls(
            year=_parse_int(year, field="year"),
            month=_parse_month(params.get("month")),
            status=_parse_status(params.get("status")),
            keyword=_parse_keyword(params.get("keyword")),
            member_id=_parse_optional_id(params.get("member_id"), field="member_id"),
        )


@dataclass(frozen=True)
class PaymentFilter:
    """
    Same shape as SalesFilter; month applies to payment_date and status is
    unallocated | partial | allocated | all. Keyword matches payer name,
    payment id or the invoice numbers the payment is allocated to.
    """

    year: int
    month: Optional[int] = None
    status: str = STATUS_ALL
    keyword: Optional[str] = None
    member_id: Optional[int] = None

    def __post_init__(self):
        _validate_common(
            year=self.year, month=self.month, keyword=self.keyword, member_id=self.member_id
        )
        if self.status != STATUS_ALL and self.status not in PAYMENT_STATUSES:
            raise InvalidFilter(
                f"status must be one of: {', '.join((*PAYMENT_STATUSES, STATUS_ALL))}"
            )

    @classmethod
    def from_params(cls, params: Mapping) -> "PaymentFilter":
        year = params.get("year")
        if _blank(year):
            raise InvalidFilter("year is required")
        return cls(
            year=_parse_int(year, field="year"),
            month=_parse_month(params.get("month")),
            status=_parse_status(params.get("status")),
            keyword=_parse_keyword(params.get("keyword")),
            member_id=_parse_optional_id(params.get("member_id"), field="member_id"),
        )


# =========================================================
# PAGE WINDOW
# =========================================================
def max_page_size() -> int:
    return int(getattr(settings, "REPORT_MAX_PAGE_SIZE", 100))


def default_page_size() -> int:
    return int(getattr(settings, "REPORT_DEFAULT_PAGE_SIZE", 10))


@dataclass(frozen=True)
class PageWindow:
    page: int = 1
    page_size: int = 10

    def __post_init__(self):
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidFilter("page must be an integer >= 1")
        if (
            isinstance(self.page_size, bool)
            or not isinstance(self.page_size, int)
            or self.page_size < 1
        ):
            raise InvalidFilter("page_size must be an integer >= 1")
        if self.page_size > max_page_size():
            raise InvalidFilter(f"page_size cannot exceed {max_page_size()}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def slice(self, items):
        return items[self.offset : self.offset + self.page_size]

    def total_pages(self, total_count: int) -> int:
        return (total_count + self.page_size - 1) // self.page_size

    @classmethod
    def from_params(cls, params: Mapping) -> "PageWindow":
        page = params.get("page")
        page_size = params.get("page_size")
        return cls(
            page=1 if _blank(page) else _parse_int(page, field="page"),
            page_size=(
                default_page_size()
                if _blank(page_size)
                else _parse_int(page_size, field="page_size")
            ),
        )


def year_from_params(params: Mapping) -> int:
    """Required `year` query param for yearly reports (overview)."""
    year = params.get("year")
    if _blank(year):
        raise InvalidFilter("year is required")
    parsed = _parse_int(year, field="year")
    _validate_common(year=parsed, month=None, keyword=None, member_id=None)
    return parsed
