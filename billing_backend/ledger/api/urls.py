# ledger/api/urls.py

"""
LEDGER API URLS

- POST   /api/ledger/invoices/
- GET    /api/ledger/invoices/<id>/
- DELETE /api/ledger/invoices/<id>/?cascade=true
- GET    /api/ledger/invoices/<id>/collection/
- GET    /api/ledger/invoices/<id>/reminders/
- POST   /api/ledger/invoices/<id>/reminders/
- POST   /api/ledger/payments/
- GET    /api/ledger/payments/<id>/
- DELETE /api/ledger/payments/<id>/?cascade=true
- GET    /api/ledger/payments/<id>/allocations/        (ledger view)
- POST   /api/ledger/payments/<id>/allocations/        (add one)
- PUT    /api/ledger/payments/<id>/allocations/        (replace set)
- DELETE /api/ledger/payments/<id>/allocations/<allocation_id>/
"""

from django.urls import path

from ledger.api.views import (
    InvoiceCollectionView,
    InvoiceCreateView,
    InvoiceDetailView,
    InvoiceRemindersView,
    PaymentAllocationDetailView,
    PaymentAllocationsView,
    PaymentCreateView,
    PaymentDetailView,
)

urlpatterns = [
    path("invoices/", InvoiceCreateView.as_view(), name="ledger-invoices"),
    path(
        "invoices/<int:invoice_id>/",
        InvoiceDetailView.as_view(),
        name="ledger-invoice-detail",
    ),
    path(
        "invoices/<int:invoice_id>/collection/",
        InvoiceCollectionView.as_view(),
        name="ledger-invoice-collection",
    ),
    path(
        "invoices/<int:invoice_id>/reminders/",
        InvoiceRemindersView.as_view(),
        name="ledger-invoice-reminders",
    ),
    path("payments/", PaymentCreateView.as_view(), name="ledger-payments"),
    path(
        "payments/<int:payment_id>/",
        PaymentDetailView.as_view(),
        name="ledger-payment-detail",
    ),
    path(
        "payments/<int:payment_id>/allocations/",
        PaymentAllocationsView.as_view(),
        name="ledger-payment-allocations",
    ),
    path(
        "payments/<int:payment_id>/allocations/<int:allocation_id>/",
        PaymentAllocationDetailView.as_view(),
        name="ledger-payment-allocation-detail",
    ),
]
