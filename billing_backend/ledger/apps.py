# ledger/apps.py

"""
LEDGER APP CONFIG

Invoices, payments and the allocation ledger that ties them together.
All writes go through ledger.services; models never update themselves.
"""

from django.apps import AppConfig


class LedgerConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "ledger"
    verbose_name = "Allocation Ledger"
