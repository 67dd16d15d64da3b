# ledger/models/reminder.py

from django.db import models
from django.utils import timezone


class ReminderLog(models.Model):
    """
    One collection contact (dunning) recorded against an invoice.

    Append-only history; it never changes the invoice status, which stays
    derived from allocations. Removed together with its invoice.
    """

    CHANNEL_EMAIL = "email"
    CHANNEL_PHONE = "phone"
    CHANNEL_LETTER = "letter"

    CHANNEL_CHOICES = (
        (CHANNEL_EMAIL, "Email"),
        (CHANNEL_PHONE, "Phone"),
        (CHANNEL_LETTER, "Letter"),
    )

    TONE_SOFT = "soft"
    TONE_NORMAL = "normal"
    TONE_STRONG = "strong"

    TONE_CHOICES = (
        (TONE_SOFT, "Soft"),
        (TONE_NORMAL, "Normal"),
        (TONE_STRONG, "Strong"),
    )

    invoice = models.ForeignKey(
        "ledger.Invoice",
        on_delete=models.CASCADE,
        related_name="reminders",
    )

    reminded_at = models.DateTimeField(default=timezone.now)
    channel = models.CharField(max_length=10, choices=CHANNEL_CHOICES)
    tone = models.CharField(max_length=10, choices=TONE_CHOICES, blank=True, default="")
    title = models.CharField(max_length=200, blank=True, default="")
    memo = models.TextField(blank=True, default="")
    next_action_date = models.DateField(null=True, blank=True)

    subject = models.CharField(max_length=255, blank=True, default="")
    body_text = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-reminded_at", "-id"]
        indexes = [
            models.Index(fields=["invoice", "reminded_at"], name="reminder_invoice_at_idx"),
        ]

    def __str__(self):
        return f"{self.invoice_id} | {self.channel} | {self.reminded_at:%Y-%m-%d}"
