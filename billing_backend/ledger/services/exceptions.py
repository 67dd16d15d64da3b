# ledger/services/exceptions.py

"""
LEDGER SERVICE ERRORS

Centralized domain errors for ledger commands and reporting queries.
Each carries a stable `code`; the API layer maps codes to HTTP status.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all ledger / reporting failures."""

    code = "ledger_error"


class InvalidAmount(LedgerError):
    """Non-positive, non-finite or malformed amount. Rejected before any DB access."""

    code = "invalid_amount"


class InvalidEntity(LedgerError):
    """Invoice / payment fields that cannot be stored (dates, method, blank number)."""

    code = "invalid"


class NotFound(LedgerError):
    """Referenced invoice, payment, member or allocation does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class OverAllocation(LedgerError):
    """The command would push an invoice or a payment past its cap."""

    code = "over_allocation"

    CAP_INVOICE_REMAINING = "invoice_remaining"
    CAP_PAYMENT_UNALLOCATED = "payment_unallocated"

    def __init__(self, message: str, *, cap: str):
        self.cap = cap
        super().__init__(message)


class DuplicateAllocation(LedgerError):
    """An allocation already links this payment and invoice; resize via replace."""

    code = "duplicate_allocation"


class InvoiceNumberTaken(LedgerError):
    """Another invoice already uses this invoice_number."""

    code = "invoice_number_taken"


class AllocationsExist(LedgerError):
    """Entity still has allocations and cascade was not requested."""

    code = "allocations_exist"


class ConcurrencyConflict(LedgerError):
    """Lost a lock / serialization race. Transient; the whole command may be retried."""

    code = "concurrency_conflict"


class StorageUnavailable(LedgerError):
    """Database failure unrelated to contention. Not retried internally."""

    code = "storage_unavailable"


class OperationCancelled(LedgerError):
    """Caller cancelled before commit; the transaction was rolled back."""

    code = "cancelled"


class InvalidFilter(LedgerError):
    """Report filter or page window is out of range."""

    code = "invalid_filter"
