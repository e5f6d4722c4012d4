# accounting/api/views/accounts.py

"""
PATH: accounting/api/views/accounts.py

ACTIVE CHART ACCOUNTS API (READ-ONLY)

GET /api/accounting/accounts/
Returns accounts for the ACTIVE chart only. No chart_id parameter.
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.models.account import Account
from accounting.services.account_resolver import get_active_chart
from accounting.services.exceptions import AccountResolutionError
from backend.errors import error_response
from permissions.roles import CAP_REPORTS_VIEW_ACCOUNTING, HasCapability


class ActiveChartAccountsView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_REPORTS_VIEW_ACCOUNTING
    serializer_class = AccountListSerializer

    @extend_schema(
        tags=["accounting"],
        responses=AccountListSerializer(many=True),
    )
    def get(self, request, *args, **kwargs):
        try:
            chart = get_active_chart()
        except AccountResolutionError as exc:
            return error_response(exc)

        qs = Account.objects.filter(chart=chart, is_active=True).order_by("code")

        return Response(AccountListSerializer(qs, many=True).data, status=status.HTTP_200_OK)
