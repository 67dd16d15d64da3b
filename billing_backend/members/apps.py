# members/apps.py

"""
MEMBERS APP CONFIG

Customers ("members") that invoices are issued to and payments are
received from. Owned outside the ledger; the ledger only references them.
"""

from django.apps import AppConfig


class MembersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "members"
    verbose_name = "Members"
