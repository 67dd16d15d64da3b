"""
======================================================
PATH: ledger/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Invoice, Payment, Allocation

Purpose:
- Ledger tables with denormalized paid/allocated caches.
- DB-level check constraints for the cap invariants that are expressible
  per row; cross-row sums are guarded by the allocation service.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("members", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Invoice",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("invoice_number", models.CharField(max_length=64, unique=True)),
                ("issue_date", models.DateField(default=django.utils.timezone.localdate)),
                ("due_date", models.DateField()),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("remarks", models.TextField(blank=True, default="")),
                (
                    "paid_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("UNPAID", "Unpaid"),
                            ("PARTIAL", "Partially paid"),
                            ("PAID", "Paid"),
                        ],
                        default="UNPAID",
                        max_length=16,
                    ),
                ),
                ("last_paid_at", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoices",
                        to="members.member",
                    ),
                ),
            ],
            options={
                "ordering": ["-issue_date", "-id"],
                "indexes": [
                    models.Index(fields=["issue_date", "id"], name="invoice_issue_date_idx"),
                    models.Index(fields=["member", "issue_date"], name="invoice_member_issue_idx"),
                    models.Index(fields=["status"], name="invoice_status_idx"),
                ],
                "constraints": [
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
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("payment_date", models.DateField(default=django.utils.timezone.localdate)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("payer_name", models.CharField(blank=True, default="", max_length=200)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("bank_transfer", "Bank transfer"),
                            ("cash", "Cash"),
                            ("card", "Card"),
                            ("other", "Other"),
                        ],
                        default="bank_transfer",
                        max_length=32,
                    ),
                ),
                (
                    "allocated_amount",
                    models.DecimalField(
                        decimal_places=2, default=Decimal("0.00"), max_digits=14
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("UNALLOCATED", "Unallocated"),
                            ("PARTIAL", "Partially allocated"),
                            ("ALLOCATED", "Allocated"),
                        ],
                        default="UNALLOCATED",
                        max_length=16,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "member",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="members.member",
                    ),
                ),
            ],
            options={
                "ordering": ["-payment_date", "-id"],
                "indexes": [
                    models.Index(fields=["payment_date", "id"], name="payment_date_idx"),
                    models.Index(fields=["member", "payment_date"], name="payment_member_date_idx"),
                    models.Index(fields=["status"], name="payment_status_idx"),
                ],
                "constraints": [
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
                ],
            },
        ),
        migrations.CreateModel(
            name="Allocation",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="ledger.invoice",
                    ),
                ),
                (
                    "payment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="ledger.payment",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["invoice"], name="allocation_invoice_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("payment", "invoice"),
                        name="uniq_allocation_payment_invoice",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=Decimal("0.00")),
                        name="allocation_amount_positive",
                    ),
                ],
            },
        ),
    ]
