# shopforme/api/views.py

"""
SHOP-FOR-ME API

GET/POST /api/shop-for-me/rates/      (POST needs rates.manage)
GET/POST /api/shop-for-me/charges/    (POST needs rates.manage)
POST     /api/shop-for-me/quote/      public calculator (AllowAny, throttled)

Quote:
- without `region`: every active region rate for the category, each total
  also in base currency
- with `region`: the admin-configured charge breakdown for that region
"""

from __future__ import annotations

from django.conf import settings
from django.core.exceptions import ValidationError
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from backend.errors import error_response
from currency.services.converter import CurrencyValidationError
from currency.services.rates import get_rate_snapshot
from permissions.context import CapabilityError, context_from_request
from shopforme.api.serializers import (
    ProductRateSerializer,
    QuoteRequestSerializer,
    QuoteResponseSerializer,
    ShopForMeChargeSerializer,
)
from shopforme.models import ProductRate, ShopForMeCharge
from shopforme.services.admin_service import upsert_charge, upsert_product_rate
from shopforme.services.calculator import ChargeValidationError
from shopforme.services.quote import quote_all_regions, quote_configured_charges


class PublicQuoteThrottle(AnonRateThrottle):
    scope = "public_quote"


class ProductRateListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ProductRateSerializer

    @extend_schema(tags=["shop-for-me"], responses=ProductRateSerializer(many=True))
    def get(self, request):
        qs = ProductRate.objects.all()
        region = request.query_params.get("region")
        if region:
            qs = qs.filter(region=region)
        return Response(ProductRateSerializer(qs, many=True).data)

    @extend_schema(
        tags=["shop-for-me"],
        request=ProductRateSerializer,
        responses={201: ProductRateSerializer},
    )
    def post(self, request):
        s = ProductRateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)

        try:
            rate = upsert_product_rate(
                context=context_from_request(request),
                region=data.pop("region"),
                product_category=data.pop("product_category"),
                **data,
            )
        except (CapabilityError, ValidationError) as exc:
            return error_response(exc)

        return Response(ProductRateSerializer(rate).data, status=status.HTTP_201_CREATED)


class ShopForMeChargeListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ShopForMeChargeSerializer

    @extend_schema(tags=["shop-for-me"], responses=ShopForMeChargeSerializer(many=True))
    def get(self, request):
        return Response(ShopForMeChargeSerializer(ShopForMeCharge.objects.all(), many=True).data)

    @extend_schema(
        tags=["shop-for-me"],
        request=ShopForMeChargeSerializer,
        responses={201: ShopForMeChargeSerializer},
    )
    def post(self, request):
        s = ShopForMeChargeSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = dict(s.validated_data)

        try:
            charge = upsert_charge(
                context=context_from_request(request),
                charge_key=data.pop("charge_key"),
                **data,
            )
        except (CapabilityError, ValidationError) as exc:
            return error_response(exc)

        return Response(ShopForMeChargeSerializer(charge).data, status=status.HTTP_201_CREATED)


class QuoteView(GenericAPIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [PublicQuoteThrottle]

    @extend_schema(
        tags=["shop-for-me"],
        request=QuoteRequestSerializer,
        responses={
            200: QuoteResponseSerializer,
            400: OpenApiResponse(description="Validation error"),
            429: OpenApiResponse(description="Rate limited"),
        },
        description="Public shop-for-me price calculator (AllowAny).",
    )
    def post(self, request):
        s = QuoteRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            if data.get("region"):
                breakdown = quote_configured_charges(
                    data["product_cost"],
                    data["weight_kg"],
                    region=data["region"],
                    category=data["product_category"],
                )
                return Response(
                    {
                        "region": data["region"],
                        "product_category": data["product_category"],
                        "currency": breakdown.currency,
                        "items": [item.as_dict() for item in breakdown.items],
                        "total": breakdown.display_total,
                    }
                )

            quotes = quote_all_regions(
                data["product_cost"],
                data["weight_kg"],
                data["product_category"],
                rate_table=get_rate_snapshot(),
            )
        except (ChargeValidationError, CurrencyValidationError) as exc:
            return error_response(exc)

        return Response(
            QuoteResponseSerializer(
                {
                    "base_currency": settings.BASE_CURRENCY,
                    "product_category": data["product_category"],
                    "quotes": [q.as_dict() for q in quotes],
                }
            ).data
        )
