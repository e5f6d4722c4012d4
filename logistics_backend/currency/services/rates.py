# currency/services/rates.py

"""
EXCHANGE RATE SERVICE

- get_rate_snapshot(): read-only table for one settlement / quote
- set_exchange_rate(): staff maintenance (rates.manage)

Stored rows win over DEFAULT_EXCHANGE_RATES; the defaults only cover a
fresh install where nobody has entered rates yet.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from types import MappingProxyType

from django.conf import settings
from django.db import transaction

from currency.models import ExchangeRate
from currency.services.converter import CurrencyValidationError, RateTable, _decimal
from permissions.context import RequestContext
from permissions.roles import CAP_RATES_MANAGE

logger = logging.getLogger(__name__)

DEFAULT_EXCHANGE_RATES: dict[str, Decimal] = {
    "USD": Decimal("2500"),
    "GBP": Decimal("3150"),
    "EUR": Decimal("2700"),
    "AED": Decimal("680"),
    "JPY": Decimal("17"),
    "CNY": Decimal("345"),
    "INR": Decimal("30"),
    "TZS": Decimal("1"),
}


def get_rate_snapshot() -> RateTable:
    table: dict[str, Decimal] = {}
    # Defaults are quoted against TZS; they are meaningless for another base.
    if settings.BASE_CURRENCY == "TZS":
        table.update(DEFAULT_EXCHANGE_RATES)

    for code, rate in ExchangeRate.objects.values_list("currency_code", "rate_to_base"):
        table[code] = rate

    table[settings.BASE_CURRENCY] = Decimal("1")
    return MappingProxyType(table)


@transaction.atomic
def set_exchange_rate(
    *,
    context: RequestContext,
    currency_code: str,
    rate_to_base,
    currency_name: str = "",
) -> ExchangeRate:
    context.require(CAP_RATES_MANAGE)

    code = (currency_code or "").strip().upper()
    rate = _decimal(rate_to_base, label="rate_to_base")
    if not rate.is_finite() or rate <= 0:
        raise CurrencyValidationError("rate_to_base must be > 0")

    row = ExchangeRate.objects.select_for_update().filter(currency_code=code).first()
    previous = row.rate_to_base if row else None

    if row is None:
        row = ExchangeRate(currency_code=code)

    row.rate_to_base = rate
    if currency_name:
        row.currency_name = currency_name.strip()
    row.updated_by = context.user
    row.save()

    logger.info(
        "Exchange rate updated",
        extra={
            "currency": code,
            "previous_rate": str(previous) if previous is not None else None,
            "rate": str(rate),
            "user_id": str(context.user_id) if context.user_id else None,
        },
    )
    return row
