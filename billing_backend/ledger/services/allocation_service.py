# ledger/services/allocation_service.py
"""
======================================================
PATH: ledger/services/allocation_service.py
======================================================
ALLOCATION LEDGER MANAGER

Commands:
- add_allocation(payment_id, invoice_id, amount)
- delete_allocation(payment_id, allocation_id)
- save_allocations(payment_id, lines)   (replace the payment's whole set)

RULES:
- Amounts are validated before any DB access.
- One transaction per command; rows locked in the global order
  (payments asc, then invoices asc) before sums are read.
- Caps are checked against sums re-read under the locks:
    Σ allocations(invoice) <= invoice.total_amount
    Σ allocations(payment) <= payment.amount
- Denormalized paid/allocated/status columns are re-derived by the status
  deriver in the same transaction, then the caps are re-checked before commit.
- cancel_event (anything with is_set()) is honoured until commit; a set
  event rolls the transaction back.

GUARANTEES:
- No partial writes: a rejected or failed command leaves the ledger as it was.
- save_allocations validates the full target set against a locked snapshot
  before deleting, resizing or inserting a single row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from django.db.models import DecimalField, Max, Sum
from django.db.models.functions import Coalesce

from ledger.models import Allocation, Invoice, Payment
from ledger.services.amounts import ZERO, money_str, parse_amount
from ledger.services.exceptions import (
    ConcurrencyConflict,
    DuplicateAllocation,
    InvalidAmount,
    NotFound,
    OverAllocation,
)
from ledger.services.locking import (
    as_id,
    check_cancelled,
    ledger_transaction,
    lock_invoices,
    lock_payment,
)
from ledger.services.status_deriver import (
    KIND_INVOICE,
    KIND_PAYMENT,
    DerivedStatus,
    derive,
)

logger = logging.getLogger("ledger")

_MONEY_FIELD = DecimalField(max_digits=14, decimal_places=2)


# =========================================================
# RESULTS
# =========================================================
@dataclass(frozen=True)
class InvoiceState:
    invoice_id: int
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str
    recovery_rate: Decimal

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "total_amount": money_str(self.total_amount),
            "paid_amount": money_str(self.paid_amount),
            "remaining_amount": money_str(self.remaining_amount),
            "status": self.status,
            "recovery_rate": str(self.recovery_rate),
        }


@dataclass(frozen=True)
class PaymentState:
    payment_id: int
    amount: Decimal
    allocated_amount: Decimal
    unallocated_amount: Decimal
    status: str

    def to_dict(self) -> dict:
        return {
            "payment_id": self.payment_id,
            "amount": money_str(self.amount),
            "allocated_amount": money_str(self.allocated_amount),
            "unallocated_amount": money_str(self.unallocated_amount),
            "status": self.status,
        }


@dataclass(frozen=True)
class AllocationResult:
    allocation_id: Optional[int]
    payment: PaymentState
    invoice: InvoiceState
    amount: Decimal

    def to_dict(self) -> dict:
        return {
            "allocation_id": self.allocation_id,
            "amount": money_str(self.amount),
            "payment": self.payment.to_dict(),
            "invoice": self.invoice.to_dict(),
        }


@dataclass(frozen=True)
class SaveAllocationsResult:
    payment: PaymentState
    invoices: Tuple[InvoiceState, ...]
    created: int
    updated: int
    deleted: int

    def to_dict(self) -> dict:
        return {
            "payment": self.payment.to_dict(),
            "invoices": [s.to_dict() for s in self.invoices],
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
        }


# =========================================================
# SUMS (always read under the row locks)
# =========================================================
def _sum_amount(qs) -> Decimal:
    return qs.aggregate(
        total=Coalesce(Sum("amount"), ZERO, output_field=_MONEY_FIELD)
    )["total"]


def invoice_paid_total(invoice_id, *, exclude_payment_id=None) -> Decimal:
    qs = Allocation.objects.filter(invoice_id=invoice_id)
    if exclude_payment_id is not None:
        qs = qs.exclude(payment_id=exclude_payment_id)
    return _sum_amount(qs)


def payment_allocated_total(payment_id) -> Decimal:
    return _sum_amount(Allocation.objects.filter(payment_id=payment_id))


# =========================================================
# DENORMALIZED CACHE SYNC
# =========================================================
def sync_invoice(invoice: Invoice) -> InvoiceState:
    """
    Re-derive paid_amount / status / last_paid_at from the allocation table.
    Caller must hold the invoice lock.
    """
    agg = Allocation.objects.filter(invoice_id=invoice.pk).aggregate(
        paid=Coalesce(Sum("amount"), ZERO, output_field=_MONEY_FIELD),
        last_paid_at=Max("payment__payment_date"),
    )
    paid = agg["paid"]

    if paid > invoice.total_amount:
        raise ConcurrencyConflict(
            f"Invoice {invoice.invoice_number} would be over-allocated; retry the command."
        )

    derived: DerivedStatus = derive(invoice.total_amount, paid, KIND_INVOICE)

    Invoice.objects.filter(pk=invoice.pk).update(
        paid_amount=paid,
        status=derived.status,
        last_paid_at=agg["last_paid_at"],
    )
    invoice.paid_amount = paid
    invoice.status = derived.status
    invoice.last_paid_at = agg["last_paid_at"]

    return InvoiceState(
        invoice_id=invoice.pk,
        total_amount=invoice.total_amount,
        paid_amount=paid,
        remaining_amount=invoice.total_amount - paid,
        status=derived.status,
        recovery_rate=derived.recovery_rate,
    )


def sync_payment(payment: Payment) -> PaymentState:
    """
    Re-derive allocated_amount / status. Caller must hold the payment lock.
    """
    allocated = payment_allocated_total(payment.pk)

    if allocated > payment.amount:
        raise ConcurrencyConflict(
            f"Payment {payment.pk} would be over-allocated; retry the command."
        )

    derived = derive(payment.amount, allocated, KIND_PAYMENT)

    Payment.objects.filter(pk=payment.pk).update(
        allocated_amount=allocated,
        status=derived.status,
    )
    payment.allocated_amount = allocated
    payment.status = derived.status

    return PaymentState(
        payment_id=payment.pk,
        amount=payment.amount,
        allocated_amount=allocated,
        unallocated_amount=payment.amount - allocated,
        status=derived.status,
    )


# =========================================================
# INPUT NORMALIZATION
# =========================================================
def _normalize_lines(lines) -> Dict[int, Decimal]:
    """
    Accepts [(invoice_id, amount)] or [{"invoice_id": ..., "amount": ...}].
    Lines for the same invoice are merged (summed). Amount errors raise
    InvalidAmount before the DB is touched.
    """
    if lines is None:
        raise InvalidAmount("lines is required (use an empty list to clear)")

    merged: Dict[int, Decimal] = {}
    for idx, line in enumerate(lines):
        if isinstance(line, dict):
            invoice_id = line.get("invoice_id")
            amount = line.get("amount")
        else:
            try:
                invoice_id, amount = line
            except (TypeError, ValueError) as exc:
                raise InvalidAmount(f"lines[{idx}] must be (invoice_id, amount)") from exc

        amt = parse_amount(amount, field=f"lines[{idx}].amount")
        inv_id = as_id(invoice_id, "invoice")
        merged[inv_id] = merged.get(inv_id, ZERO) + amt

    return merged


# =========================================================
# ADD
# =========================================================
def add_allocation(
    *,
    payment_id,
    invoice_id,
    amount,
    cancel_event=None,
) -> AllocationResult:
    """
    Apply `amount` of a payment to an invoice.

    Raises:
    - InvalidAmount (before DB access)
    - NotFound, DuplicateAllocation, OverAllocation (no write)
    - ConcurrencyConflict / StorageUnavailable / OperationCancelled
    """
    amt = parse_amount(amount)
    check_cancelled(cancel_event, stage="before_lock")

    with ledger_transaction(
        operation="add_allocation", payment_id=payment_id, invoice_id=invoice_id
    ):
        payment = lock_payment(payment_id)
        invoice = lock_invoices([invoice_id])[as_id(invoice_id, "invoice")]

        if Allocation.objects.filter(payment_id=payment.pk, invoice_id=invoice.pk).exists():
            raise DuplicateAllocation(
                f"Payment {payment.pk} is already allocated to invoice "
                f"{invoice.invoice_number}; replace the allocation set to change it."
            )

        invoice_remaining = invoice.total_amount - invoice_paid_total(invoice.pk)
        if amt > invoice_remaining:
            raise OverAllocation(
                f"Amount {money_str(amt)} exceeds invoice remaining "
                f"{money_str(invoice_remaining)} on {invoice.invoice_number}.",
                cap=OverAllocation.CAP_INVOICE_REMAINING,
            )

        payment_unallocated = payment.amount - payment_allocated_total(payment.pk)
        if amt > payment_unallocated:
            raise OverAllocation(
                f"Amount {money_str(amt)} exceeds payment unallocated "
                f"{money_str(payment_unallocated)} on payment {payment.pk}.",
                cap=OverAllocation.CAP_PAYMENT_UNALLOCATED,
            )

        check_cancelled(cancel_event, stage="validated")

        allocation = Allocation.objects.create(payment=payment, invoice=invoice, amount=amt)

        payment_state = sync_payment(payment)
        invoice_state = sync_invoice(invoice)

        check_cancelled(cancel_event, stage="before_commit")

    logger.info(
        "Allocation added",
        extra={
            "allocation_id": allocation.pk,
            "payment_id": payment.pk,
            "invoice_id": invoice.pk,
            "amount": money_str(amt),
            "invoice_status": invoice_state.status,
            "payment_status": payment_state.status,
        },
    )

    return AllocationResult(
        allocation_id=allocation.pk,
        payment=payment_state,
        invoice=invoice_state,
        amount=amt,
    )


# =========================================================
# DELETE
# =========================================================
def delete_allocation(
    *,
    payment_id,
    allocation_id,
    cancel_event=None,
) -> AllocationResult:
    """
    Remove one allocation of a payment and re-derive both sides.
    The allocation must belong to the payment (NotFound otherwise).
    """
    check_cancelled(cancel_event, stage="before_lock")

    with ledger_transaction(
        operation="delete_allocation", payment_id=payment_id, allocation_id=allocation_id
    ):
        payment = lock_payment(payment_id)

        allocation = (
            Allocation.objects.filter(
                pk=as_id(allocation_id, "allocation"), payment_id=payment.pk
            )
            .only("pk", "invoice_id", "amount")
            .first()
        )
        if allocation is None:
            raise NotFound("allocation", allocation_id)

        invoice = lock_invoices([allocation.invoice_id])[allocation.invoice_id]

        check_cancelled(cancel_event, stage="validated")

        removed_id = allocation.pk
        removed_amount = allocation.amount
        allocation.delete()

        payment_state = sync_payment(payment)
        invoice_state = sync_invoice(invoice)

        check_cancelled(cancel_event, stage="before_commit")

    logger.info(
        "Allocation deleted",
        extra={
            "allocation_id": removed_id,
            "payment_id": payment.pk,
            "invoice_id": invoice.pk,
            "amount": money_str(removed_amount),
        },
    )

    return AllocationResult(
        allocation_id=removed_id,
        payment=payment_state,
        invoice=invoice_state,
        amount=removed_amount,
    )


# =========================================================
# REPLACE (diff-and-commit)
# =========================================================
def save_allocations(
    *,
    payment_id,
    lines: Iterable,
    cancel_event=None,
) -> SaveAllocationsResult:
    """
    Replace the payment's allocation set with `lines`.

    Validation (all before any write):
    (a) Σ line amounts <= payment.amount
    (b) per invoice: line + paid by OTHER payments <= invoice.total_amount
    Then deletes / resizes / inserts are applied and the payment plus every
    invoice in (before ∪ after) is re-derived. Empty `lines` clears the set.
    """
    target = _normalize_lines(lines)
    check_cancelled(cancel_event, stage="before_lock")

    with ledger_transaction(operation="save_allocations", payment_id=payment_id):
        payment = lock_payment(payment_id)

        existing: Dict[int, Allocation] = {
            a.invoice_id: a for a in Allocation.objects.filter(payment_id=payment.pk)
        }
        affected_ids = sorted(set(existing) | set(target))
        invoices = lock_invoices(affected_ids)

        # (a) payment cap
        target_total = sum(target.values(), ZERO)
        if target_total > payment.amount:
            raise OverAllocation(
                f"Allocations total {money_str(target_total)} exceeds payment amount "
                f"{money_str(payment.amount)} on payment {payment.pk}.",
                cap=OverAllocation.CAP_PAYMENT_UNALLOCATED,
            )

        # (b) invoice caps, excluding this payment's own prior allocations
        paid_by_others = {
            row["invoice_id"]: row["total"]
            for row in Allocation.objects.filter(invoice_id__in=list(target))
            .exclude(payment_id=payment.pk)
            .values("invoice_id")
            .annotate(total=Sum("amount"))
            .order_by()
        }
        for inv_id in sorted(target):
            invoice = invoices[inv_id]
            others = paid_by_others.get(inv_id, ZERO)
            available = invoice.total_amount - others
            if target[inv_id] > available:
                raise OverAllocation(
                    f"Amount {money_str(target[inv_id])} exceeds invoice remaining "
                    f"{money_str(available)} on {invoice.invoice_number}.",
                    cap=OverAllocation.CAP_INVOICE_REMAINING,
                )

        check_cancelled(cancel_event, stage="validated")

        # apply diff
        to_delete: List[int] = [
            a.pk for inv_id, a in existing.items() if inv_id not in target
        ]
        to_update: List[Allocation] = []
        to_create: List[Allocation] = []

        for inv_id, amt in target.items():
            current = existing.get(inv_id)
            if current is None:
                to_create.append(Allocation(payment=payment, invoice=invoices[inv_id], amount=amt))
            elif current.amount != amt:
                current.amount = amt
                to_update.append(current)

        if to_delete:
            Allocation.objects.filter(pk__in=to_delete).delete()
        if to_update:
            Allocation.objects.bulk_update(to_update, ["amount"])
        for allocation in to_create:
            allocation.save()

        payment_state = sync_payment(payment)
        invoice_states = tuple(sync_invoice(invoices[i]) for i in affected_ids)

        check_cancelled(cancel_event, stage="before_commit")

    logger.info(
        "Allocations replaced",
        extra={
            "payment_id": payment.pk,
            "lines": len(target),
            "created_count": len(to_create),
            "updated_count": len(to_update),
            "deleted_count": len(to_delete),
            "allocated_amount": money_str(payment_state.allocated_amount),
        },
    )

    return SaveAllocationsResult(
        payment=payment_state,
        invoices=invoice_states,
        created=len(to_create),
        updated=len(to_update),
        deleted=len(to_delete),
    )
