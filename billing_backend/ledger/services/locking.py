# ledger/services/locking.py
"""
======================================================
PATH: ledger/services/locking.py
======================================================
LEDGER TRANSACTION + ROW LOCKS

Purpose:
- One place that opens the ledger transaction and translates DB failures.
- Row locks taken in ONE global order so two commands never wait on each
  other in opposite directions.

LOCK ORDER (every ledger command):
1) payments, ascending id
2) invoices, ascending id

Any command that inserts, resizes or removes an allocation holds the lock on
that allocation's payment. A payment's allocation set is therefore stable
once its row is locked.

ERROR TRANSLATION:
- LedgerError                       -> re-raised unchanged (logged as warning)
- IntegrityError                    -> ConcurrencyConflict
- OperationalError (lock/deadlock/
  serialization/"database is locked") -> ConcurrencyConflict
- any other DatabaseError           -> StorageUnavailable
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator

from django.conf import settings
from django.db import DatabaseError, IntegrityError, OperationalError, transaction

from ledger.models import Invoice, Payment
from ledger.services.exceptions import (
    ConcurrencyConflict,
    LedgerError,
    NotFound,
    OperationCancelled,
    StorageUnavailable,
)

logger = logging.getLogger("ledger")

# serialization_failure, deadlock_detected, lock_not_available
LOCK_CONFLICT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
LOCK_CONFLICT_MARKERS = ("deadlock", "could not serialize", "lock", "database is locked")


# =========================================================
# CANCELLATION
# =========================================================
def check_cancelled(cancel_event, *, stage: str) -> None:
    """
    Raise OperationCancelled when the caller's event is set.
    Inside the ledger transaction this rolls everything back.
    """
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled(f"Operation cancelled ({stage})")


# =========================================================
# ERROR CLASSIFICATION
# =========================================================
def _sqlstate(exc: BaseException):
    cause = exc.__cause__
    if cause is None:
        return None
    # psycopg2 exposes pgcode, psycopg3 exposes sqlstate
    return getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)


def is_lock_conflict(exc: BaseException) -> bool:
    if _sqlstate(exc) in LOCK_CONFLICT_SQLSTATES:
        return True
    text = str(exc).lower()
    return any(marker in text for marker in LOCK_CONFLICT_MARKERS)


# =========================================================
# TRANSACTION GUARD
# =========================================================
@contextmanager
def ledger_transaction(*, operation: str, **context) -> Iterator[None]:
    """
    Runs the block in transaction.atomic() and maps failures to the
    ledger error taxonomy. No retries.
    """
    extra = {"operation": operation, **context}

    try:
        with transaction.atomic():
            yield
    except LedgerError as exc:
        logger.warning(
            "Ledger command rejected",
            extra={**extra, "code": exc.code, "reason": str(exc)},
        )
        raise
    except IntegrityError as exc:
        logger.warning("Ledger integrity race", extra={**extra, "error": str(exc)})
        raise ConcurrencyConflict(
            "A concurrent change conflicted with this command; retry it."
        ) from exc
    except OperationalError as exc:
        if is_lock_conflict(exc):
            logger.warning("Ledger lock conflict", extra={**extra, "error": str(exc)})
            raise ConcurrencyConflict(
                "Could not acquire ledger locks; retry the command."
            ) from exc
        logger.exception("Ledger storage failure", extra=extra)
        raise StorageUnavailable("Ledger storage is unavailable.") from exc
    except DatabaseError as exc:
        logger.exception("Ledger storage failure", extra=extra)
        raise StorageUnavailable("Ledger storage is unavailable.") from exc


# =========================================================
# ROW LOCKS
# =========================================================
def as_id(value, entity: str) -> int:
    if isinstance(value, bool):
        raise NotFound(entity, value)
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise NotFound(entity, value) from exc


def _nowait() -> bool:
    return bool(getattr(settings, "LEDGER_LOCK_NOWAIT", False))


def lock_payment(payment_id) -> Payment:
    pk = as_id(payment_id, "payment")
    try:
        return Payment.objects.select_for_update(nowait=_nowait()).get(pk=pk)
    except Payment.DoesNotExist as exc:
        raise NotFound("payment", payment_id) from exc


def lock_payments(payment_ids: Iterable) -> Dict[int, Payment]:
    """
    Lock payments in ascending id order. Missing ids are simply absent
    from the result; callers decide whether that is NotFound.
    """
    ids = sorted({as_id(i, "payment") for i in payment_ids})
    if not ids:
        return {}
    qs = (
        Payment.objects.select_for_update(nowait=_nowait())
        .filter(pk__in=ids)
        .order_by("pk")
    )
    return {p.pk: p for p in qs}


def lock_invoices(invoice_ids: Iterable, *, require_all: bool = True) -> Dict[int, Invoice]:
    """
    Lock invoices in ascending id order (after any payment locks).
    """
    ids = sorted({as_id(i, "invoice") for i in invoice_ids})
    if not ids:
        return {}
    qs = (
        Invoice.objects.select_for_update(nowait=_nowait())
        .filter(pk__in=ids)
        .order_by("pk")
    )
    locked = {inv.pk: inv for inv in qs}

    if require_all:
        missing = [i for i in ids if i not in locked]
        if missing:
            raise NotFound("invoice", missing[0])

    return locked
