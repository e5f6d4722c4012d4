# currency/api/views.py

from django.conf import settings
from django.core.exceptions import ValidationError
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.errors import error_response
from currency.api.serializers import (
    ConversionSerializer,
    ConvertQuerySerializer,
    ExchangeRateSerializer,
    ExchangeRateUpdateSerializer,
    ExchangeRateWriteSerializer,
)
from currency.models import ExchangeRate
from currency.services.converter import (
    CurrencyValidationError,
    convert_between,
    round_money,
)
from currency.services.rates import get_rate_snapshot, set_exchange_rate
from permissions.context import CapabilityError, context_from_request


class ExchangeRateListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["currency"], responses=ExchangeRateSerializer(many=True))
    def get(self, request):
        qs = ExchangeRate.objects.all()
        return Response(
            {
                "base_currency": settings.BASE_CURRENCY,
                "rates": ExchangeRateSerializer(qs, many=True).data,
            }
        )

    @extend_schema(
        tags=["currency"],
        request=ExchangeRateWriteSerializer,
        responses={201: ExchangeRateSerializer},
    )
    def post(self, request):
        s = ExchangeRateWriteSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            row = set_exchange_rate(
                context=context_from_request(request),
                currency_code=data["currency_code"],
                rate_to_base=data["rate_to_base"],
                currency_name=data.get("currency_name", ""),
            )
        except (CapabilityError, CurrencyValidationError, ValidationError) as exc:
            return error_response(exc)

        return Response(ExchangeRateSerializer(row).data, status=status.HTTP_201_CREATED)


class ExchangeRateDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["currency"],
        request=ExchangeRateUpdateSerializer,
        responses={200: ExchangeRateSerializer},
    )
    def patch(self, request, currency_code):
        if not ExchangeRate.objects.filter(currency_code=currency_code.upper()).exists():
            return Response({"detail": "Exchange rate not found"}, status=status.HTTP_404_NOT_FOUND)

        s = ExchangeRateUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            row = set_exchange_rate(
                context=context_from_request(request),
                currency_code=currency_code,
                rate_to_base=data["rate_to_base"],
                currency_name=data.get("currency_name", ""),
            )
        except (CapabilityError, CurrencyValidationError, ValidationError) as exc:
            return error_response(exc)

        return Response(ExchangeRateSerializer(row).data)


class ConvertView(GenericAPIView):
    """
    GET /api/currency/convert/?amount=100&currency=USD[&to=TZS]

    `degraded` is true when a rate was missing and 1:1 was used.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["currency"],
        parameters=[ConvertQuerySerializer],
        responses=ConversionSerializer,
    )
    def get(self, request):
        s = ConvertQuerySerializer(data=request.query_params)
        s.is_valid(raise_exception=True)
        data = s.validated_data
        target = (data.get("to") or settings.BASE_CURRENCY).upper()

        try:
            result = convert_between(
                data["amount"], data["currency"], target, get_rate_snapshot()
            )
        except CurrencyValidationError as exc:
            return error_response(exc)

        return Response(
            ConversionSerializer(
                {
                    "amount": data["amount"],
                    "currency": data["currency"].upper(),
                    "converted_amount": round_money(result.amount),
                    "converted_currency": result.currency,
                    "rate": result.rate,
                    "degraded": result.degraded,
                }
            ).data
        )
