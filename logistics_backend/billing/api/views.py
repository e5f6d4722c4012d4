# billing/api/views.py

"""
BILLING API

GET/POST /api/billing/customers/
GET/POST /api/billing/invoices/                     (filter: status, direction, ...)
GET      /api/billing/invoices/<id>/
GET/POST /api/billing/invoices/<id>/payments/       (POST = record a settlement)
POST     /api/billing/invoices/<id>/status/         (staff correction)
POST     /api/billing/payments/<id>/verify/         (approve / reject agent payment)

Views stay thin: validate input, build a RequestContext, call the service,
map service errors to responses (backend.errors).
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.errors import error_response
from billing.api.filters import InvoiceFilter
from billing.api.serializers import (
    CustomerSerializer,
    InvoiceCreateSerializer,
    InvoiceDetailSerializer,
    InvoiceSerializer,
    InvoiceStatusSerializer,
    PaymentSerializer,
    RecordPaymentSerializer,
    SettlementResultSerializer,
    VerifyPaymentSerializer,
)
from billing.models import Customer, Payment
from billing.services.exceptions import BillingServiceError, InvoiceNotFoundError
from billing.services.invoice_service import (
    create_invoice,
    invoices_visible_to,
    update_invoice_status,
)
from billing.services.payment_service import record_invoice_payment, verify_payment
from currency.services.converter import CurrencyValidationError
from permissions.context import CapabilityError, context_from_request
from permissions.roles import CAP_INVOICES_MANAGE, CAP_INVOICES_VIEW, HasCapability, IsStaff

SERVICE_ERRORS = (BillingServiceError, CapabilityError, CurrencyValidationError, ValidationError)


def _service_error(exc: Exception) -> Response:
    if isinstance(exc, InvoiceNotFoundError):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    return error_response(exc)


class CustomerListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, IsStaff, HasCapability]
    required_capabilities = {"GET": CAP_INVOICES_VIEW, "POST": CAP_INVOICES_MANAGE}
    serializer_class = CustomerSerializer
    queryset = Customer.objects.all()
    filter_backends = [SearchFilter]
    search_fields = ["name", "customer_code", "email", "phone", "company_name"]

    @extend_schema(tags=["billing"], request=CustomerSerializer, responses={201: CustomerSerializer})
    def post(self, request):
        s = CustomerSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            customer = s.save()
        except ValidationError as exc:
            return error_response(exc)
        return Response(CustomerSerializer(customer).data, status=status.HTTP_201_CREATED)


class InvoiceListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InvoiceSerializer
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    filterset_class = InvoiceFilter
    search_fields = ["invoice_number", "shipment_reference", "customer__name", "agent__email"]
    ordering_fields = ["created_at", "amount", "due_date", "status"]
    ordering = ["-created_at"]

    def get_queryset(self):
        return invoices_visible_to(context_from_request(self.request))

    @extend_schema(
        tags=["billing"],
        request=InvoiceCreateSerializer,
        responses={201: InvoiceSerializer, 400: OpenApiResponse(description="Validation error")},
    )
    def post(self, request):
        s = InvoiceCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            invoice = create_invoice(context=context_from_request(request), **s.validated_data)
        except SERVICE_ERRORS as exc:
            return _service_error(exc)

        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)


class InvoiceDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InvoiceDetailSerializer

    @extend_schema(tags=["billing"], responses=InvoiceDetailSerializer)
    def get(self, request, invoice_id):
        invoice = (
            invoices_visible_to(context_from_request(request))
            .prefetch_related("payments__bank_account")
            .filter(pk=invoice_id)
            .first()
        )
        if invoice is None:
            return Response({"detail": "Invoice not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(InvoiceDetailSerializer(invoice).data)


class InvoicePaymentsView(GenericAPIView):
    """
    Record a settlement (single or split). Staff payments apply at once;
    an agent paying an invoice billed to them submits it for verification.

    `journal_status` is "posted", "queued" (outbox) or "awaiting_verification".
    """

    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    @extend_schema(tags=["billing"], responses=PaymentSerializer(many=True))
    def get(self, request, invoice_id):
        invoice = invoices_visible_to(context_from_request(request)).filter(pk=invoice_id).first()
        if invoice is None:
            return Response({"detail": "Invoice not found"}, status=status.HTTP_404_NOT_FOUND)
        payments = Payment.objects.filter(invoice=invoice).select_related("bank_account")
        return Response(PaymentSerializer(payments, many=True).data)

    @extend_schema(
        tags=["billing"],
        request=RecordPaymentSerializer,
        responses={
            201: SettlementResultSerializer,
            400: OpenApiResponse(description="Validation / invoice state error"),
            403: OpenApiResponse(description="Not allowed to pay this invoice"),
            404: OpenApiResponse(description="Invoice not found"),
        },
    )
    def post(self, request, invoice_id):
        s = RecordPaymentSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        splits = [
            {"bank_account_id": split["bank_account_id"], "amount": split["amount"]}
            for split in data.get("splits") or []
        ]

        try:
            result = record_invoice_payment(
                context=context_from_request(request),
                invoice_id=invoice_id,
                amount=data["amount"],
                payment_currency=data["payment_currency"],
                payment_method=data["payment_method"],
                bank_account_id=data.get("bank_account_id"),
                splits=splits or None,
                payment_date=data.get("payment_date"),
                reference=data.get("reference", ""),
                notes=data.get("notes", ""),
            )
        except SERVICE_ERRORS as exc:
            return _service_error(exc)

        return Response(SettlementResultSerializer(result).data, status=status.HTTP_201_CREATED)


class InvoiceStatusView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = InvoiceStatusSerializer

    @extend_schema(tags=["billing"], request=InvoiceStatusSerializer, responses=InvoiceSerializer)
    def post(self, request, invoice_id):
        s = InvoiceStatusSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            invoice = update_invoice_status(
                context=context_from_request(request),
                invoice_id=invoice_id,
                status=s.validated_data["status"],
                notes=s.validated_data.get("notes"),
            )
        except SERVICE_ERRORS as exc:
            return _service_error(exc)

        return Response(InvoiceSerializer(invoice).data)


class VerifyPaymentView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = VerifyPaymentSerializer

    @extend_schema(tags=["billing"], request=VerifyPaymentSerializer, responses=SettlementResultSerializer)
    def post(self, request, payment_id):
        s = VerifyPaymentSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        try:
            result = verify_payment(
                context=context_from_request(request),
                payment_id=payment_id,
                status=s.validated_data["status"],
            )
        except SERVICE_ERRORS as exc:
            return _service_error(exc)

        return Response(SettlementResultSerializer(result).data)
