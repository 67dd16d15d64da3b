"""
======================================================
PATH: ledger/migrations/0002_reminderlog.py
======================================================
MIGRATION: CREATE ReminderLog (collection contact history per invoice)
"""

from __future__ import annotations

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):
    dependencies = [
        ("ledger", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ReminderLog",
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
                ("reminded_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "channel",
                    models.CharField(
                        choices=[("email", "Email"), ("phone", "Phone"), ("letter", "Letter")],
                        max_length=10,
                    ),
                ),
                (
                    "tone",
                    models.CharField(
                        blank=True,
                        choices=[("soft", "Soft"), ("normal", "Normal"), ("strong", "Strong")],
                        default="",
                        max_length=10,
                    ),
                ),
                ("title", models.CharField(blank=True, default="", max_length=200)),
                ("memo", models.TextField(blank=True, default="")),
                ("next_action_date", models.DateField(blank=True, null=True)),
                ("subject", models.CharField(blank=True, default="", max_length=255)),
                ("body_text", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "invoice",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reminders",
                        to="ledger.invoice",
                    ),
                ),
            ],
            options={
                "ordering": ["-reminded_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["invoice", "reminded_at"], name="reminder_invoice_at_idx"
                    ),
                ],
            },
        ),
    ]
