# ledger/models/payment.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from ledger.services.status_deriver import (
    PAYMENT_ALLOCATED,
    PAYMENT_PARTIAL,
    PAYMENT_UNALLOCATED,
)


class Payment(models.Model):
    """
    Money received from a member.

    RULES:
    - amount is fixed at creation (> 0).
    - allocated_amount / status are a denormalized cache of the allocation
      table, written only by the allocation service.
    """

    STATUS_UNALLOCATED = PAYMENT_UNALLOCATED
    STATUS_PARTIAL = PAYMENT_PARTIAL
    STATUS_ALLOCATED = PAYMENT_ALLOCATED

    STATUSES = [
        (STATUS_UNALLOCATED, "Unallocated"),
        (STATUS_PARTIAL, "Partially allocated"),
        (STATUS_ALLOCATED, "Allocated"),
    ]

    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_CASH = "cash"
    METHOD_CARD = "card"
    METHOD_OTHER = "other"

    METHOD_CHOICES = [
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_CASH, "Cash"),
        (METHOD_CARD, "Card"),
        (METHOD_OTHER, "Other"),
    ]

    member = models.ForeignKey(
        "members.Member",
        on_delete=models.PROTECT,
        related_name="payments",
    )

    payment_date = models.DateField(default=timezone.localdate)
    amount = models.DecimalField(max_digits=14, decimal_places=2)

    payer_name = models.CharField(max_length=200, blank=True, default="")
    method = models.CharField(
        max_length=32, choices=METHOD_CHOICES, default=METHOD_BANK_TRANSFER
    )

    allocated_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(
        max_length=16, choices=STATUSES, default=STATUS_UNALLOCATED
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-payment_date", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="payment_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(allocated_amount__gte=Decimal("0.00")),
                name="payment_allocated_nonnegative",
            ),
            models.CheckConstraint(
                condition=models.Q(allocated_amount__lte=models.F("amount")),
                name="payment_allocated_lte_amount",
            ),
        ]
        indexes = [
            models.Index(fields=["payment_date", "id"], name="payment_date_idx"),
            models.Index(fields=["member", "payment_date"], name="payment_member_date_idx"),
            models.Index(fields=["status"], name="payment_status_idx"),
        ]

    @property
    def unallocated_amount(self) -> Decimal:
        return self.amount - self.allocated_amount

    def clean(self):
        if self.amount is not None and self.amount <= Decimal("0.00"):
            raise ValidationError({"amount": "amount must be greater than zero"})

        if self.pk:
            original = (
                type(self)
                .objects.filter(pk=self.pk)
                .values_list("amount", flat=True)
                .first()
            )
            if original is not None and original != self.amount:
                raise ValidationError({"amount": "amount is immutable"})

    def save(self, *args, **kwargs):
        if self.payer_name is not None:
            self.payer_name = self.payer_name.strip()

        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"Payment #{self.pk} | {self.payment_date} | {self.amount}"
