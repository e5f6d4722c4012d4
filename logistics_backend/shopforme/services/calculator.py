# shopforme/services/calculator.py

"""
======================================================
PATH: shopforme/services/calculator.py
======================================================
CHARGE CALCULATOR (PURE)

Turns a product cost + weight + category rate into an itemized breakdown.

Fixed order, each stage depends on the one before:
    1. shipping  = weight_kg * rate_per_kg
    2. duty      = product_cost * duty% / 100
    3. handling  = (product_cost + shipping) * handling% / 100
    4. subtotal  = product_cost + shipping + duty + handling
    5. markup    = subtotal * markup% / 100   (line omitted when markup% == 0)
    6. total     = subtotal + markup

No intermediate rounding: total is exactly the sum of the line amounts.
Round only for display (LineItem.display_amount, round_base_total).

Rates are duck-typed: a ProductRate row or any object with the same
attribute names works, so the calculator never needs the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable

from currency.services.converter import round_money
from shopforme.models import ShopForMeCharge

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class ChargeValidationError(ValueError):
    pass


@dataclass(frozen=True)
class LineItem:
    name: str
    key: str
    amount: Decimal
    percentage: Decimal | None = None

    @property
    def display_amount(self) -> Decimal:
        return round_money(self.amount)

    def as_dict(self) -> dict:
        out = {"name": self.name, "key": self.key, "amount": self.display_amount}
        if self.percentage is not None:
            out["percentage"] = self.percentage
        return out


@dataclass(frozen=True)
class ChargeBreakdown:
    items: tuple[LineItem, ...]
    total: Decimal
    shipping_cost: Decimal
    subtotal: Decimal
    currency: str = ""

    def item(self, key: str) -> LineItem | None:
        return next((i for i in self.items if i.key == key), None)

    @property
    def display_total(self) -> Decimal:
        return round_money(self.total)


def _non_negative(value, label: str) -> Decimal:
    if value is None:
        return ZERO
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ChargeValidationError(f"Invalid {label}: {value!r}") from exc
    if d < ZERO:
        raise ChargeValidationError(f"{label} cannot be negative")
    return d


def calculate(product_cost, weight_kg, rate) -> ChargeBreakdown:
    cost = _non_negative(product_cost, "product_cost")
    weight = _non_negative(weight_kg, "weight_kg")
    per_kg = _non_negative(rate.rate_per_kg, "rate_per_kg")
    duty_pct = _non_negative(rate.duty_percentage, "duty_percentage")
    handling_pct = _non_negative(rate.handling_fee_percentage, "handling_fee_percentage")
    markup_pct = _non_negative(rate.markup_percentage, "markup_percentage")

    shipping = weight * per_kg
    duty = cost * duty_pct / HUNDRED
    handling = (cost + shipping) * handling_pct / HUNDRED
    subtotal = cost + shipping + duty + handling

    items = [
        LineItem("Product Cost", "product_cost", cost),
        LineItem("Shipping", "shipping", shipping),
        LineItem("Duty", "duty", duty, duty_pct),
        LineItem("Handling Fee", "handling_fee", handling, handling_pct),
    ]

    total = subtotal
    if markup_pct > ZERO:
        markup = subtotal * markup_pct / HUNDRED
        items.append(LineItem("Markup", "markup", markup, markup_pct))
        total = subtotal + markup

    return ChargeBreakdown(
        items=tuple(items),
        total=total,
        shipping_cost=shipping,
        subtotal=subtotal,
        currency=(getattr(rate, "currency", "") or "").upper(),
    )


def calculate_configured_charges(product_cost, weight_kg, shipping_rate_per_kg, charges: Iterable) -> ChargeBreakdown:
    """
    Breakdown from admin-configured ShopForMeCharge rows.

    Percentage charges are computed against the non-percentage running
    subtotal (product cost + fixed charges), never against each other.
    """
    cost = _non_negative(product_cost, "product_cost")
    weight = _non_negative(weight_kg, "weight_kg")
    per_kg = _non_negative(shipping_rate_per_kg, "shipping_rate_per_kg")

    items = [LineItem("Product Cost", "product_cost", cost)]
    fixed_subtotal = cost
    shipping = ZERO
    has_shipping = False

    for charge in sorted(charges, key=lambda c: c.display_order):
        value = _non_negative(charge.charge_value, f"charge_value ({charge.charge_key})")

        if charge.charge_key == ShopForMeCharge.SHIPPING_KEY:
            shipping = weight * per_kg
            has_shipping = True
            items.append(LineItem(charge.charge_name, charge.charge_key, shipping))
            continue

        if charge.charge_type == ShopForMeCharge.TYPE_PERCENTAGE:
            if charge.applies_to == ShopForMeCharge.APPLIES_SUBTOTAL:
                base = fixed_subtotal
            elif charge.applies_to == ShopForMeCharge.APPLIES_CUMULATIVE:
                base = fixed_subtotal + shipping
            else:
                base = cost
            items.append(
                LineItem(charge.charge_name, charge.charge_key, base * value / HUNDRED, value)
            )
        else:
            items.append(LineItem(charge.charge_name, charge.charge_key, value))
            fixed_subtotal += value

    if not has_shipping and weight > ZERO:
        shipping = weight * per_kg
        items.append(LineItem("Shipping Charges", ShopForMeCharge.SHIPPING_KEY, shipping))

    return ChargeBreakdown(
        items=tuple(items),
        total=sum((i.amount for i in items), ZERO),
        shipping_cost=shipping,
        subtotal=fixed_subtotal + shipping,
    )
