# reports/apps.py

"""
REPORTS APP CONFIG

Read-only sales / collections reporting over the allocation ledger.
No models of its own.
"""

from django.apps import AppConfig


class ReportsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "reports"
    verbose_name = "Reports"
