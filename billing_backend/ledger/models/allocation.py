# ledger/models/allocation.py

from decimal import Decimal

from django.db import models


class Allocation(models.Model):
    """
    Portion of a payment applied to an invoice.

    RULES:
    - amount > 0
    - at most one row per (payment, invoice)
    - sums per invoice / per payment never exceed their caps; enforced by
      ledger.services.allocation_service under row locks
    - created, resized and removed only through the allocation service
    """

    payment = models.ForeignKey(
        "ledger.Payment",
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    invoice = models.ForeignKey(
        "ledger.Invoice",
        on_delete=models.PROTECT,
        related_name="allocations",
    )

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["payment", "invoice"],
                name="uniq_allocation_payment_invoice",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0.00")),
                name="allocation_amount_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["invoice"], name="allocation_invoice_idx"),
        ]

    def __str__(self):
        return f"{self.payment_id} -> {self.invoice_id} | {self.amount}"
