# reports/api/urls.py

from django.urls import path

from reports.api.views import (
    PaymentReportView,
    ReportsOverviewView,
    SalesByMemberReportView,
    SalesReportView,
    WorstCustomersReportView,
)

urlpatterns = [
    path("sales/", SalesReportView.as_view(), name="reports-sales"),
    path(
        "sales/by-member/",
        SalesByMemberReportView.as_view(),
        name="reports-sales-by-member",
    ),
    path(
        "sales/worst-customers/",
        WorstCustomersReportView.as_view(),
        name="reports-worst-customers",
    ),
    path("payments/", PaymentReportView.as_view(), name="reports-payments"),
    path("overview/", ReportsOverviewView.as_view(), name="reports-overview"),
]
