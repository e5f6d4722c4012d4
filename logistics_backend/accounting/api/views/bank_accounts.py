# accounting/api/views/bank_accounts.py

"""
BANK ACCOUNTS

GET  /api/accounting/bank-accounts/
POST /api/accounting/bank-accounts/                      (bank_accounts.manage)
POST /api/accounting/bank-accounts/<id>/recalculate/     (accounting.post)

Balances only move through settlements (billing.payment_service); there is
no endpoint that edits current_balance directly.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView, ListAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers import BankAccountCreateSerializer, BankAccountSerializer
from accounting.models.bank_account import BankAccount
from accounting.services.account_resolver import get_account_by_code
from accounting.services.bank_service import create_bank_account, recalculate_bank_balance
from accounting.services.exceptions import AccountingServiceError
from backend.errors import error_response
from permissions.context import CapabilityError, context_from_request
from permissions.roles import (
    CAP_ACCOUNTING_POST,
    CAP_BANK_ACCOUNTS_MANAGE,
    CAP_INVOICES_VIEW,
    HasCapability,
)


class BankAccountListCreateView(ListAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capabilities = {"GET": CAP_INVOICES_VIEW, "POST": CAP_BANK_ACCOUNTS_MANAGE}
    serializer_class = BankAccountSerializer
    queryset = BankAccount.objects.select_related("ledger_account").order_by("account_name")

    @extend_schema(
        tags=["accounting"],
        request=BankAccountCreateSerializer,
        responses={201: BankAccountSerializer, 400: OpenApiResponse(description="Validation error")},
    )
    def post(self, request):
        s = BankAccountCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)

        try:
            code = data.pop("ledger_account_code", "")
            ledger_account = get_account_by_code(code) if code else None
            bank = create_bank_account(
                context=context_from_request(request),
                ledger_account=ledger_account,
                **data,
            )
        except (AccountingServiceError, CapabilityError, ValidationError) as exc:
            return error_response(exc)

        return Response(BankAccountSerializer(bank).data, status=status.HTTP_201_CREATED)


class RecalculateBankBalanceView(GenericAPIView):
    """Rebuild current_balance from the ledger (after outbox catch-up)."""

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_POST
    serializer_class = BankAccountSerializer

    @extend_schema(tags=["accounting"], request=None, responses=BankAccountSerializer)
    def post(self, request, bank_account_id):
        bank = BankAccount.objects.select_related("ledger_account").filter(pk=bank_account_id).first()
        if bank is None:
            return Response({"detail": "Bank account not found"}, status=status.HTTP_404_NOT_FOUND)

        try:
            recalculate_bank_balance(bank)
        except AccountingServiceError as exc:
            return error_response(exc)

        bank.refresh_from_db()
        return Response(BankAccountSerializer(bank).data)
