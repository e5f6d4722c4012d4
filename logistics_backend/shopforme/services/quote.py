# shopforme/services/quote.py

"""
======================================================
PATH: shopforme/services/quote.py
======================================================
SHOP-FOR-ME QUOTES

- quote_all_regions(): one calculator breakdown per active region rate for a
  category, each total also expressed in base currency
- quote_configured_charges(): breakdown from the admin-configured charges

Read-only: rates and charges are loaded, never written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from currency.services.converter import RateTable, convert, round_base_total
from shopforme.models import ProductRate, ShopForMeCharge
from shopforme.services.calculator import (
    ChargeBreakdown,
    ChargeValidationError,
    calculate,
    calculate_configured_charges,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegionQuote:
    region: str
    region_label: str
    breakdown: ChargeBreakdown
    total_in_base: Decimal
    exchange_rate: Decimal
    degraded: bool

    def as_dict(self) -> dict:
        return {
            "region": self.region,
            "region_label": self.region_label,
            "currency": self.breakdown.currency,
            "items": [item.as_dict() for item in self.breakdown.items],
            "total": self.breakdown.display_total,
            "total_in_base": round_base_total(self.total_in_base),
            "exchange_rate": self.exchange_rate,
            "degraded": self.degraded,
        }


def quote_all_regions(product_cost, weight_kg, category, *, rate_table: RateTable) -> list[RegionQuote]:
    """
    Price one product in every region that has an active rate for `category`.

    Regions without a rate are simply absent. A region whose currency has no
    exchange rate still quotes, flagged degraded.
    """
    rates = ProductRate.objects.filter(product_category=category, is_active=True).order_by(
        "display_order", "region"
    )

    quotes: list[RegionQuote] = []
    for rate in rates:
        breakdown = calculate(product_cost, weight_kg, rate)
        in_base = convert(breakdown.total, breakdown.currency, rate_table)
        quotes.append(
            RegionQuote(
                region=rate.region,
                region_label=rate.get_region_display(),
                breakdown=breakdown,
                total_in_base=in_base.amount,
                exchange_rate=in_base.rate,
                degraded=in_base.degraded,
            )
        )

    if any(q.degraded for q in quotes):
        logger.warning(
            "Shop-for-me quote used a fallback exchange rate",
            extra={
                "category": category,
                "regions": [q.region for q in quotes if q.degraded],
            },
        )

    return quotes


def quote_configured_charges(product_cost, weight_kg, *, region: str, category: str) -> ChargeBreakdown:
    """
    Breakdown from the active ShopForMeCharge rows.

    Shipping uses the region/category rate_per_kg.
    """
    rate = ProductRate.objects.filter(
        region=region, product_category=category, is_active=True
    ).first()
    if rate is None:
        raise ChargeValidationError(f"No active rate for {region}/{category}")

    charges = ShopForMeCharge.objects.filter(is_active=True)
    breakdown = calculate_configured_charges(
        product_cost, weight_kg, rate.rate_per_kg, charges
    )
    return ChargeBreakdown(
        items=breakdown.items,
        total=breakdown.total,
        shipping_cost=breakdown.shipping_cost,
        subtotal=breakdown.subtotal,
        currency=rate.currency,
    )
