# ledger/admin.py

"""
Read-only admin for ledger tables. Allocation changes must go through the
allocation service so the denormalized columns stay in sync.
"""

from django.contrib import admin

from ledger.models import Allocation, Invoice, Payment, ReminderLog


class _ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(_ReadOnlyAdmin):
    list_display = (
        "invoice_number",
        "member",
        "issue_date",
        "due_date",
        "total_amount",
        "paid_amount",
        "status",
    )
    list_filter = ("status",)
    search_fields = ("invoice_number", "member__name")


@admin.register(Payment)
class PaymentAdmin(_ReadOnlyAdmin):
    list_display = ("id", "member", "payment_date", "amount", "allocated_amount", "status")
    list_filter = ("status", "method")
    search_fields = ("payer_name", "member__name")


@admin.register(Allocation)
class AllocationAdmin(_ReadOnlyAdmin):
    list_display = ("id", "payment", "invoice", "amount", "created_at")


@admin.register(ReminderLog)
class ReminderLogAdmin(_ReadOnlyAdmin):
    list_display = ("invoice", "reminded_at", "channel", "tone", "title", "next_action_date")
    list_filter = ("channel", "tone")
