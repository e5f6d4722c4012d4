# shopforme/services/admin_service.py

"""
Staff maintenance of shop-for-me rates and charges (rates.manage).
"""

from __future__ import annotations

import logging

from django.db import transaction

from permissions.context import RequestContext
from permissions.roles import CAP_RATES_MANAGE
from shopforme.models import ProductRate, ShopForMeCharge

logger = logging.getLogger(__name__)

RATE_FIELDS = (
    "rate_per_kg",
    "duty_percentage",
    "handling_fee_percentage",
    "markup_percentage",
    "currency",
    "is_active",
    "display_order",
)

CHARGE_FIELDS = (
    "charge_name",
    "charge_type",
    "charge_value",
    "applies_to",
    "description",
    "display_order",
    "is_active",
)


@transaction.atomic
def upsert_product_rate(*, context: RequestContext, region: str, product_category: str, **values) -> ProductRate:
    """Create or update the rate for (region, product_category)."""
    context.require(CAP_RATES_MANAGE)

    rate = (
        ProductRate.objects.select_for_update()
        .filter(region=region, product_category=product_category)
        .first()
    )
    created = rate is None
    if created:
        rate = ProductRate(region=region, product_category=product_category)

    for name in RATE_FIELDS:
        if name in values:
            setattr(rate, name, values[name])
    rate.save()

    logger.info(
        "Product rate saved",
        extra={
            "region": region,
            "product_category": product_category,
            "was_created": created,
            "user_id": str(context.user_id) if context.user_id else None,
        },
    )
    return rate


@transaction.atomic
def upsert_charge(*, context: RequestContext, charge_key: str, **values) -> ShopForMeCharge:
    context.require(CAP_RATES_MANAGE)

    charge = ShopForMeCharge.objects.select_for_update().filter(charge_key=charge_key).first()
    created = charge is None
    if created:
        charge = ShopForMeCharge(charge_key=charge_key)

    for name in CHARGE_FIELDS:
        if name in values:
            setattr(charge, name, values[name])
    charge.save()

    logger.info(
        "Shop-for-me charge saved",
        extra={"charge_key": charge_key, "was_created": created},
    )
    return charge
