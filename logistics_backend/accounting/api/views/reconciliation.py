# accounting/api/views/reconciliation.py

"""
RECONCILIATION + JOURNAL OUTBOX

GET  /api/accounting/reconciliation/    book vs ledger per bank, open outbox rows
POST /api/accounting/outbox/retry/      retry pending postings now
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import serializers, status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.outbox_service import retry_pending_postings
from accounting.services.reconciliation_service import reconciliation_report
from permissions.roles import CAP_ACCOUNTING_POST, CAP_REPORTS_VIEW_ACCOUNTING, HasCapability


class OutboxRetrySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1, allow_null=True)


class ReconciliationView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_REPORTS_VIEW_ACCOUNTING

    @extend_schema(tags=["accounting"], responses={200: dict})
    def get(self, request):
        return Response(reconciliation_report(), status=status.HTTP_200_OK)


class OutboxRetryView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ACCOUNTING_POST
    serializer_class = OutboxRetrySerializer

    @extend_schema(tags=["accounting"], request=OutboxRetrySerializer, responses={200: dict})
    def post(self, request):
        s = OutboxRetrySerializer(data=request.data)
        s.is_valid(raise_exception=True)

        counts = retry_pending_postings(limit=s.validated_data.get("limit"))
        return Response(counts, status=status.HTTP_200_OK)
