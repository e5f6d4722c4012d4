"""
PATH: accounting/api/views/trial_balance.py

TRIAL BALANCE API VIEW (READ-ONLY)

GET /api/accounting/trial-balance/?as_of=...|as_of_date=YYYY-MM-DD

Always the active chart. Balances are in the base currency; totals must
match (debits == credits) or the books are broken.
"""

from __future__ import annotations

from datetime import datetime, time
from decimal import Decimal

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.account_resolver import get_active_chart
from accounting.services.balance_service import get_trial_balance
from accounting.services.exceptions import AccountResolutionError
from backend.errors import error_response
from permissions.roles import CAP_REPORTS_VIEW_ACCOUNTING, HasCapability


def _as_aware_dt(dt):
    if dt is None:
        return None
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


@extend_schema(
    tags=["accounting"],
    parameters=[
        OpenApiParameter(
            name="as_of",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="ISO datetime snapshot (e.g. 2026-01-15T23:59:59).",
        ),
        OpenApiParameter(
            name="as_of_date",
            type=str,
            location=OpenApiParameter.QUERY,
            required=False,
            description="End-of-day snapshot (YYYY-MM-DD). If set, overrides as_of.",
        ),
    ],
    responses={200: dict},
)
class TrialBalanceView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_REPORTS_VIEW_ACCOUNTING

    def get(self, request):
        as_of_param = request.query_params.get("as_of")
        as_of_date_param = request.query_params.get("as_of_date")

        as_of = None
        if as_of_date_param:
            d = parse_date(str(as_of_date_param).strip())
            if d is None:
                return Response(
                    {"detail": "Invalid as_of_date (expected YYYY-MM-DD)"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            as_of = _as_aware_dt(datetime.combine(d, time.max.replace(microsecond=0)))
        elif as_of_param:
            dt = parse_datetime(str(as_of_param).strip())
            if dt is None:
                return Response(
                    {"detail": "Invalid as_of (expected ISO datetime)"},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            as_of = _as_aware_dt(dt)

        try:
            chart = get_active_chart()
        except AccountResolutionError as exc:
            return error_response(exc)

        rows = get_trial_balance(chart, as_of=as_of)
        total_debit = sum((r["debit_total"] for r in rows), Decimal("0.00"))
        total_credit = sum((r["credit_total"] for r in rows), Decimal("0.00"))

        return Response(
            {
                "chart": {"id": chart.id, "code": chart.code, "name": chart.name},
                "as_of": as_of,
                "accounts": rows,
                "total_debit": total_debit,
                "total_credit": total_credit,
                "is_balanced": total_debit == total_credit,
            },
            status=status.HTTP_200_OK,
        )
