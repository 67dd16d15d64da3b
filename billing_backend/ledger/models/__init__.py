# ledger/models/__init__.py

"""
LEDGER MODELS PACKAGE EXPORTS
"""

from .allocation import Allocation
from .invoice import Invoice
from .payment import Payment
from .reminder import ReminderLog

__all__ = [
    "Invoice",
    "Payment",
    "Allocation",
    "ReminderLog",
]
