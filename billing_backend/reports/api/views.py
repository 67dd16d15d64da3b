# reports/api/views.py

"""
PATH: reports/api/views.py

COLLECTIONS REPORTS (STAFF ONLY, READ-ONLY)

- GET /api/reports/sales/                  per-invoice listing + summary
- GET /api/reports/sales/by-member/        per-member rollup + summary
- GET /api/reports/sales/worst-customers/  top-N outstanding members
- GET /api/reports/payments/               payment listing + summary
- GET /api/reports/overview/?year=       yearly totals, 12 months, top unpaid

Query params: year (required), month (1-12|all), status, keyword, member_id,
page, page_size (worst-customers takes limit instead of paging).
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ledger.api.errors import ledger_error_response
from ledger.services.exceptions import InvalidFilter, LedgerError
from reports.services.filters import (
    PageWindow,
    PaymentFilter,
    SalesFilter,
    year_from_params,
)
from reports.services.overview_service import year_overview
from reports.services.payment_report_service import search_payments
from reports.services.sales_report_service import (
    search_by_member,
    search_invoices,
    worst_customers,
)

FILTER_PARAMS = [
    OpenApiParameter(name="year", type=OpenApiTypes.INT, required=True),
    OpenApiParameter(
        name="month",
        type=OpenApiTypes.STR,
        required=False,
        description="1-12 or 'all' (default all).",
    ),
    OpenApiParameter(name="status", type=OpenApiTypes.STR, required=False),
    OpenApiParameter(
        name="keyword",
        type=OpenApiTypes.STR,
        required=False,
        description="Case-insensitive substring match.",
    ),
    OpenApiParameter(name="member_id", type=OpenApiTypes.INT, required=False),
]

PAGE_PARAMS = [
    OpenApiParameter(name="page", type=OpenApiTypes.INT, required=False),
    OpenApiParameter(name="page_size", type=OpenApiTypes.INT, required=False),
]


class SalesReportView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["reports"],
        parameters=FILTER_PARAMS + PAGE_PARAMS,
        description="Invoices for the period with paid / remaining / recovery rate.",
    )
    def get(self, request):
        try:
            result = search_invoices(
                filters=SalesFilter.from_params(request.query_params),
                window=PageWindow.from_params(request.query_params),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class SalesByMemberReportView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["reports"],
        parameters=FILTER_PARAMS + PAGE_PARAMS,
        description="One row per member, ordered by invoice total.",
    )
    def get(self, request):
        try:
            result = search_by_member(
                filters=SalesFilter.from_params(request.query_params),
                window=PageWindow.from_params(request.query_params),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class WorstCustomersReportView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["reports"],
        parameters=[p for p in FILTER_PARAMS if p.name != "status"]
        + [OpenApiParameter(name="limit", type=OpenApiTypes.INT, required=False)],
        description=(
            "Members ranked by outstanding balance, worst recovery first on ties. "
            "Any status parameter is ignored."
        ),
    )
    def get(self, request):
        raw_limit = (request.query_params.get("limit") or "").strip()

        try:
            if raw_limit:
                try:
                    limit = int(raw_limit)
                except ValueError as exc:
                    raise InvalidFilter("limit must be an integer >= 1") from exc
            else:
                limit = None

            filters = SalesFilter.from_params(request.query_params)
            rows = worst_customers(filters=filters, limit=limit)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {"results": [r.to_dict() for r in rows], "count": len(rows)},
            status=status.HTTP_200_OK,
        )


class PaymentReportView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["reports"],
        parameters=FILTER_PARAMS + PAGE_PARAMS,
        description="Payments for the period with allocated / unallocated totals.",
    )
    def get(self, request):
        try:
            result = search_payments(
                filters=PaymentFilter.from_params(request.query_params),
                window=PageWindow.from_params(request.query_params),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(result.to_dict(), status=status.HTTP_200_OK)


class ReportsOverviewView(APIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["reports"],
        parameters=[OpenApiParameter(name="year", type=OpenApiTypes.INT, required=True)],
        description=(
            "Yearly totals and counts, invoice totals per month (1-12) and the "
            "top outstanding invoices, overdue first."
        ),
    )
    def get(self, request):
        try:
            overview = year_overview(year=year_from_params(request.query_params))
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(overview.to_dict(), status=status.HTTP_200_OK)
