# ledger/models/invoice.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ledger.services.status_deriver import (
    INVOICE_PAID,
    INVOICE_PARTIAL,
    INVOICE_UNPAID,
    recovery_rate,
)


class Invoice(models.Model):
    """
    Customer invoice.

    RULES:
    - total_amount is fixed at creation (>= 0).
    - paid_amount / status / last_paid_at are a denormalized cache of the
      allocation table; only ledger.services.allocation_service writes them,
      inside the same transaction as the allocation change.
    """

    STATUS_UNPAID = INVOICE_UNPAID
    STATUS_PARTIAL = INVOICE_PARTIAL
    STATUS_PAID = INVOICE_PAID

    STATUSES = [
        (STATUS_UNPAID, "Unpaid"),
        (STATUS_PARTIAL, "Partially paid"),
        (STATUS_PAID, "Paid"),
    ]

    invoice_number = models.CharField(max_length=64, unique=True)
    member = models.ForeignKey(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="invoices",
    )

    issue_date = models.DateField(default=timezone.localdate)
    due_date = models.DateField()

    total_amount = models.DecimalField(max_digits=14, decimal_places=2)
    remarks = models.TextField(blank=True, default="")

    paid_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(max_length=16, choices=STATUSES, default=STATUS_UNPAID)
    last_paid_at = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-issue_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=Decimal("0.00")),
                name="invoice_total_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=Decimal("0.00")),
                name="invoice_paid_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(paid_amount__lte=models.F("total_amount")),
                name="invoice_paid_lte_total",
            ),
            models.CheckConstraint(
                condition=models.Q(due_date__gte=models.F("issue_date")),
                name="invoice_due_after_issue",
            ),
        ]
        indexes = [
            models.Index(fields=["issue_date", "id"], name="invoice_issue_date_idx"),
            models.Index(fields=["member", "issue_date"], name="invoice_member_issue_idx"),
            models.Index(fields=["status"], name="invoice_status_idx"),
        ]

    # -------------------------
    # derived (read-only)
    # -------------------------
    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @property
    def recovery_rate(self) -> Decimal:
        return recovery_rate(self.paid_amount, self.total_amount)

    @property
    def is_overdue(self) -> bool:
        return self.due_date < timezone.localdate() and self.remaining_amount > 0

    def clean(self):
        if not (self.invoice_number or "").strip():
            raise ValidationError({"invoice_number": "invoice_number is required"})

        if self.total_amount is not None and self.total_amount < Decimal("0.00"):
            raise ValidationError({"total_amount": "total_amount cannot be negative"})

        if self.issue_date and self.due_date and self.due_date < self.issue_date:
            raise ValidationError({"due_date": "due_date cannot be before issue_date"})

        if self.pk:
            original = (
                type(self)
                .objects.filter(pk=self.pk)
                .values_list("total_amount", flat=True)
                .first()
            )
            if original is not None and original != self.total_amount:
                raise ValidationError({"total_amount": "total_amount is immutable"})

    def save(self, *args, **kwargs):
        if self.invoice_number is not None:
            self.invoice_number = self.invoice_number.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.invoice_number} ({self.total_amount})"
