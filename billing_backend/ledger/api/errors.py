# ledger/api/errors.py

"""
Domain error -> HTTP response mapping shared by ledger and reports views.
Body shape: {"detail": <message>, "code": <stable code>} (+ "cap" for OverAllocation).
"""

from rest_framework import status
from rest_framework.response import Response

from ledger.services.exceptions import LedgerError, OverAllocation

STATUS_BY_CODE = {
    "invalid_amount": status.HTTP_400_BAD_REQUEST,
    "invalid": status.HTTP_400_BAD_REQUEST,
    "invalid_filter": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "over_allocation": status.HTTP_409_CONFLICT,
    "duplicate_allocation": status.HTTP_409_CONFLICT,
    "invoice_number_taken": status.HTTP_409_CONFLICT,
    "allocations_exist": status.HTTP_409_CONFLICT,
    "concurrency_conflict": status.HTTP_409_CONFLICT,
    "cancelled": status.HTTP_409_CONFLICT,
    "storage_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def ledger_error_response(exc: LedgerError) -> Response:
    body = {"detail": str(exc), "code": exc.code}
    if isinstance(exc, OverAllocation):
        body["cap"] = exc.cap
    return Response(
        body, status=STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST)
    )
