# currency/services/converter.py

"""
======================================================
PATH: currency/services/converter.py
======================================================
CURRENCY CONVERTER (PURE)

Converts amounts into (and out of) the base currency using a rate table
snapshot: {"USD": Decimal("2500"), ...} meaning 1 USD = 2500 base units.

Rules:
- no database access; callers pass the table (see rates.get_rate_snapshot)
- converting base currency is a no-op (rate 1, not degraded)
- a currency missing from the table converts at rate 1 and the result is
  flagged `degraded`, with a WARNING log. It never raises.
- negative amounts and non-positive rates fail fast (CurrencyValidationError)
- no rounding here; use round_money / round_base_total for display
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping

from django.conf import settings

logger = logging.getLogger(__name__)

RateTable = Mapping[str, Decimal]

ONE = Decimal("1")
TWOPLACES = Decimal("0.01")


class CurrencyValidationError(ValueError):
    pass


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    rate: Decimal
    currency: str
    degraded: bool = False


def _decimal(value, *, label: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise CurrencyValidationError(f"Invalid {label}: {value!r}") from exc


def _code(currency) -> str:
    code = (currency or "").strip().upper()
    if not code:
        raise CurrencyValidationError("currency is required")
    return code


def base_currency() -> str:
    return settings.BASE_CURRENCY


def lookup_rate(currency: str, rate_table: RateTable, *, base: str | None = None) -> tuple[Decimal, bool]:
    """(rate, degraded) for one currency. Missing rates give (1, True)."""
    code = _code(currency)
    base = (base or base_currency()).upper()
    if code == base:
        return ONE, False

    raw = rate_table.get(code)
    if raw is None:
        logger.warning(
            "Exchange rate missing; converting at 1:1 (degraded precision)",
            extra={"currency": code, "base_currency": base},
        )
        return ONE, True

    rate = _decimal(raw, label="exchange rate")
    if rate <= 0:
        raise CurrencyValidationError(f"Exchange rate for {code} must be > 0")
    return rate, False


def convert(amount, from_currency, rate_table: RateTable, *, base: str | None = None) -> ConversionResult:
    """amount in `from_currency` -> amount in base currency."""
    amt = _decimal(amount, label="amount")
    if amt < 0:
        raise CurrencyValidationError("amount cannot be negative")

    rate, degraded = lookup_rate(from_currency, rate_table, base=base)
    return ConversionResult(
        amount=amt * rate,
        rate=rate,
        currency=_code(from_currency),
        degraded=degraded,
    )


def convert_amount(amount, from_currency, rate_table: RateTable) -> Decimal:
    return convert(amount, from_currency, rate_table).amount


def convert_from_base(amount, to_currency, rate_table: RateTable, *, base: str | None = None) -> ConversionResult:
    """amount in base currency -> amount in `to_currency`."""
    amt = _decimal(amount, label="amount")
    if amt < 0:
        raise CurrencyValidationError("amount cannot be negative")

    rate, degraded = lookup_rate(to_currency, rate_table, base=base)
    return ConversionResult(
        amount=amt / rate,
        rate=rate,
        currency=_code(to_currency),
        degraded=degraded,
    )


def convert_between(amount, from_currency, to_currency, rate_table: RateTable) -> ConversionResult:
    """
    Cross conversion through base. `rate` is the effective from->to rate.
    Degraded if either leg was.
    """
    if _code(from_currency) == _code(to_currency):
        return ConversionResult(
            amount=_decimal(amount, label="amount"),
            rate=ONE,
            currency=_code(to_currency),
        )

    to_base = convert(amount, from_currency, rate_table)
    out = convert_from_base(to_base.amount, to_currency, rate_table)
    return ConversionResult(
        amount=out.amount,
        rate=to_base.rate / out.rate,
        currency=out.currency,
        degraded=to_base.degraded or out.degraded,
    )


# ------------------------------------------------------------
# DISPLAY ROUNDING
# ------------------------------------------------------------


def round_money(value) -> Decimal:
    return _decimal(value, label="amount").quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def round_base_total(value) -> Decimal:
    return _decimal(value, label="amount").quantize(ONE, rounding=ROUND_HALF_UP)
