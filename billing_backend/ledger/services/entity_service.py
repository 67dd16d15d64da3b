# ledger/services/entity_service.py
"""
======================================================
PATH: ledger/services/entity_service.py
======================================================
INVOICE / PAYMENT COMMANDS

- create_invoice / create_payment
- delete_invoice / delete_payment (cascade=False by default)

RULES:
- Deleting an entity that still has allocations fails with AllocationsExist
  unless cascade=True.
- Cascade removes the allocations, re-derives every counter-party and deletes
  the entity in one transaction, under the ledger lock order
  (payments asc, then invoices asc).
"""

from __future__ import annotations

import logging
from datetime import date

from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils.dateparse import parse_date

from ledger.models import Allocation, Invoice, Payment
from ledger.services.allocation_service import sync_invoice, sync_payment
from ledger.services.amounts import money_str, parse_amount
from ledger.services.exceptions import (
    AllocationsExist,
    ConcurrencyConflict,
    InvalidEntity,
    InvoiceNumberTaken,
    NotFound,
)
from ledger.services.locking import (
    as_id,
    check_cancelled,
    ledger_transaction,
    lock_invoices,
    lock_payment,
    lock_payments,
)
from members.models import Member

logger = logging.getLogger("ledger")

PAYMENT_METHODS = {value for value, _ in Payment.METHOD_CHOICES}


def _as_date(value, *, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        parsed = parse_date(str(value).strip()) if value else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidEntity(f"{field} must be a date (YYYY-MM-DD)")
    return parsed


def _member(member_id) -> Member:
    member = Member.objects.filter(pk=as_id(member_id, "member")).first()
    if member is None:
        raise NotFound("member", member_id)
    return member


def _validation_message(exc: DjangoValidationError) -> str:
    if hasattr(exc, "message_dict"):
        return "; ".join(
            f"{field}: {' '.join(msgs)}" for field, msgs in exc.message_dict.items()
        )
    return " ".join(exc.messages)


# =========================================================
# CREATE
# =========================================================
def create_invoice(
    *,
    member_id,
    invoice_number: str,
    issue_date,
    due_date,
    total_amount,
    remarks: str = "",
) -> Invoice:
    total = parse_amount(total_amount, field="total_amount", allow_zero=True)
    number = (invoice_number or "").strip()
    if not number:
        raise InvalidEntity("invoice_number is required")

    issued = _as_date(issue_date, field="issue_date")
    due = _as_date(due_date, field="due_date")
    if due < issued:
        raise InvalidEntity("due_date cannot be before issue_date")

    with ledger_transaction(operation="create_invoice", invoice_number=number):
        member = _member(member_id)

        if Invoice.objects.filter(invoice_number=number).exists():
            raise InvoiceNumberTaken(f"Invoice number already exists: {number}")

        try:
            invoice = Invoice.objects.create(
                member=member,
                invoice_number=number,
                issue_date=issued,
                due_date=due,
                total_amount=total,
                remarks=remarks or "",
            )
        except DjangoValidationError as exc:
            raise InvalidEntity(_validation_message(exc)) from exc

    logger.info(
        "Invoice created",
        extra={
            "invoice_id": invoice.pk,
            "invoice_number": number,
            "member_id": member.pk,
            "total_amount": money_str(total),
        },
    )
    return invoice


def create_payment(
    *,
    member_id,
    payment_date,
    amount,
    payer_name: str = "",
    method: str = Payment.METHOD_BANK_TRANSFER,
) -> Payment:
    amt = parse_amount(amount)
    paid_on = _as_date(payment_date, field="payment_date")
    method = (method or "").strip() or Payment.METHOD_BANK_TRANSFER
    if method not in PAYMENT_METHODS:
        raise InvalidEntity(f"Unsupported payment method: {method}")

    with ledger_transaction(operation="create_payment", member_id=member_id):
        member = _member(member_id)
        try:
            payment = Payment.objects.create(
                member=member,
                payment_date=paid_on,
                amount=amt,
                payer_name=payer_name or member.name,
                method=method,
            )
        except DjangoValidationError as exc:
            raise InvalidEntity(_validation_message(exc)) from exc

    logger.info(
        "Payment created",
        extra={
            "payment_id": payment.pk,
            "member_id": member.pk,
            "amount": money_str(amt),
            "method": method,
        },
    )
    return payment


# =========================================================
# DELETE
# =========================================================
def delete_invoice(*, invoice_id, cascade: bool = False, cancel_event=None) -> dict:
    """
    Payments are locked before the invoice. The set of paying payments is
    read first, then re-read under the invoice lock; if it grew in between
    the command fails with ConcurrencyConflict instead of locking out of order.
    """
    pk = as_id(invoice_id, "invoice")
    check_cancelled(cancel_event, stage="before_lock")

    with ledger_transaction(operation="delete_invoice", invoice_id=pk, cascade=cascade):
        payment_ids = set(
            Allocation.objects.filter(invoice_id=pk).values_list("payment_id", flat=True)
        )
        payments = lock_payments(payment_ids)
        invoice = lock_invoices([pk])[pk]

        current_ids = set(
            Allocation.objects.filter(invoice_id=pk).values_list("payment_id", flat=True)
        )
        if not current_ids <= set(payments):
            raise ConcurrencyConflict(
                f"Allocations on invoice {invoice.invoice_number} changed; retry the command."
            )

        if current_ids and not cascade:
            raise AllocationsExist(
                f"Invoice {invoice.invoice_number} has {len(current_ids)} allocation(s); "
                "delete them first or use cascade."
            )

        check_cancelled(cancel_event, stage="validated")

        removed, _ = Allocation.objects.filter(invoice_id=pk).delete()
        for payment_id in sorted(current_ids):
            sync_payment(payments[payment_id])

        number = invoice.invoice_number
        invoice.delete()

        check_cancelled(cancel_event, stage="before_commit")

    logger.info(
        "Invoice deleted",
        extra={"invoice_id": pk, "invoice_number": number, "allocations_removed": removed},
    )
    return {"invoice_id": pk, "allocations_removed": removed}


def delete_payment(*, payment_id, cascade: bool = False, cancel_event=None) -> dict:
    pk = as_id(payment_id, "payment")
    check_cancelled(cancel_event, stage="before_lock")

    with ledger_transaction(operation="delete_payment", payment_id=pk, cascade=cascade):
        payment = lock_payment(pk)

        invoice_ids = set(
            Allocation.objects.filter(payment_id=pk).values_list("invoice_id", flat=True)
        )
        invoices = lock_invoices(invoice_ids)

        if invoice_ids and not cascade:
            raise AllocationsExist(
                f"Payment {pk} has {len(invoice_ids)} allocation(s); "
                "delete them first or use cascade."
            )

        check_cancelled(cancel_event, stage="validated")

        removed, _ = Allocation.objects.filter(payment_id=pk).delete()
        for inv_id in sorted(invoice_ids):
            sync_invoice(invoices[inv_id])

        payment.delete()

        check_cancelled(cancel_event, stage="before_commit")

    logger.info(
        "Payment deleted",
        extra={"payment_id": pk, "allocations_removed": removed},
    )
    return {"payment_id": pk, "allocations_removed": removed}
