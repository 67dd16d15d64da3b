# ledger/api/views.py

"""
LEDGER API (STAFF ONLY)

Thin HTTP layer: serializers validate shape, services own every rule.
Domain errors are rendered by ledger.api.errors.ledger_error_response.
"""

from drf_spectacular.utils import OpenApiParameter, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.serializers import (
    AllocationCreateSerializer,
    AllocationReplaceSerializer,
    InvoiceCreateSerializer,
    InvoiceSerializer,
    PaymentCreateSerializer,
    PaymentSerializer,
    ReminderCreateSerializer,
)
from ledger.models import Invoice, Payment
from ledger.services.allocation_service import (
    add_allocation,
    delete_allocation,
    save_allocations,
)
from ledger.services.collection_service import (
    get_collection_snapshot,
    list_reminders,
    record_reminder,
)
from ledger.services.entity_service import (
    create_invoice,
    create_payment,
    delete_invoice,
    delete_payment,
)
from ledger.services.exceptions import LedgerError
from ledger.services.ledger_view_service import (
    get_invoice_ledger_view,
    get_payment_ledger_view,
)

CASCADE_PARAM = OpenApiParameter(
    name="cascade",
    type=OpenApiTypes.BOOL,
    required=False,
    description="Also remove allocations (and re-derive counter-parties).",
)


def _cascade(request) -> bool:
    return (request.query_params.get("cascade") or "").strip().lower() in {"1", "true", "yes"}


# =========================================================
# INVOICES
# =========================================================
class InvoiceCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]
    serializer_class = InvoiceCreateSerializer

    @extend_schema(
        tags=["ledger"],
        request=InvoiceCreateSerializer,
        responses={201: InvoiceSerializer},
    )
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            invoice = create_invoice(
                member_id=data["member_id"],
                invoice_number=data["invoice_number"],
                issue_date=data["issue_date"],
                due_date=data["due_date"],
                total_amount=data["total_amount"],
                remarks=data.get("remarks", ""),
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        invoice = Invoice.objects.select_related("member").get(pk=invoice.pk)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class InvoiceDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(tags=["ledger"], description="Invoice with its allocations.")
    def get(self, request, invoice_id: int):
        try:
            view = get_invoice_ledger_view(invoice_id=invoice_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(view.to_dict(), status=status.HTTP_200_OK)

    @extend_schema(tags=["ledger"], parameters=[CASCADE_PARAM])
    def delete(self, request, invoice_id: int):
        try:
            result = delete_invoice(invoice_id=invoice_id, cascade=_cascade(request))
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(result, status=status.HTTP_200_OK)


# =========================================================
# PAYMENTS
# =========================================================
class PaymentCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]
    serializer_class = PaymentCreateSerializer

    @extend_schema(
        tags=["ledger"],
        request=PaymentCreateSerializer,
        responses={201: PaymentSerializer},
    )
    def post(self, request):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            payment = create_payment(
                member_id=data["member_id"],
                payment_date=data["payment_date"],
                amount=data["amount"],
                payer_name=data.get("payer_name", ""),
                method=data["method"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        payment = Payment.objects.select_related("member").get(pk=payment.pk)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


class PaymentDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(tags=["ledger"], description="Payment with its allocations.")
    def get(self, request, payment_id: int):
        try:
            view = get_payment_ledger_view(payment_id=payment_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(view.to_dict(), status=status.HTTP_200_OK)

    @extend_schema(tags=["ledger"], parameters=[CASCADE_PARAM])
    def delete(self, request, payment_id: int):
        try:
            result = delete_payment(payment_id=payment_id, cascade=_cascade(request))
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(result, status=status.HTTP_200_OK)


# =========================================================
# ALLOCATIONS
# =========================================================
class PaymentAllocationsView(GenericAPIView):
    """
    GET  -> payment ledger view
    POST -> add one allocation {invoice_id, amount}
    PUT  -> replace the whole set {lines: [{invoice_id, amount}, ...]}
    """

    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(tags=["ledger"])
    def get(self, request, payment_id: int):
        try:
            view = get_payment_ledger_view(payment_id=payment_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(view.to_dict(), status=status.HTTP_200_OK)

    @extend_schema(tags=["ledger"], request=AllocationCreateSerializer)
    def post(self, request, payment_id: int):
        s = AllocationCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = add_allocation(
                payment_id=payment_id,
                invoice_id=data["invoice_id"],
                amount=data["amount"],
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(result.to_dict(), status=status.HTTP_201_CREATED)

    @extend_schema(tags=["ledger"], request=AllocationReplaceSerializer)
    def put(self, request, payment_id: int):
        s = AllocationReplaceSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        lines = [(line["invoice_id"], line["amount"]) for line in s.validated_data["lines"]]

        try:
            result = save_allocations(payment_id=payment_id, lines=lines)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(result.to_dict(), status=status.HTTP_200_OK)


class PaymentAllocationDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(tags=["ledger"])
    def delete(self, request, payment_id: int, allocation_id: int):
        try:
            result = delete_allocation(payment_id=payment_id, allocation_id=allocation_id)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(result.to_dict(), status=status.HTTP_200_OK)


# =========================================================
# COLLECTIONS
# =========================================================
class InvoiceCollectionView(GenericAPIView):
    permission_classes = [IsAuthenticated, IsAdminUser]

    @extend_schema(
        tags=["collections"],
        description="Live paid / remaining, member contact and reminder summary.",
    )
    def get(self, request, invoice_id: int):
        try:
            snapshot = get_collection_snapshot(invoice_id=invoice_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response(snapshot.to_dict(), status=status.HTTP_200_OK)


class InvoiceRemindersView(GenericAPIView):
    """
    GET  -> reminder history, newest first
    POST -> record one contact (does not change invoice status)
    """

    permission_classes = [IsAuthenticated, IsAdminUser]
    serializer_class = ReminderCreateSerializer

    @extend_schema(tags=["collections"])
    def get(self, request, invoice_id: int):
        try:
            reminders = list_reminders(invoice_id=invoice_id)
        except LedgerError as exc:
            return ledger_error_response(exc)
        return Response([r.to_dict() for r in reminders], status=status.HTTP_200_OK)

    @extend_schema(tags=["collections"], request=ReminderCreateSerializer)
    def post(self, request, invoice_id: int):
        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            reminder = record_reminder(invoice_id=invoice_id, **data)
        except LedgerError as exc:
            return ledger_error_response(exc)

        return Response(reminder.to_dict(), status=status.HTTP_201_CREATED)
