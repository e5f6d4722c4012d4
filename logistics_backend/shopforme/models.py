# shopforme/models.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from shopforme.regions import CATEGORY_CHOICES, CATEGORY_GENERAL, REGION_CHOICES

ZERO = Decimal("0")


class ProductRate(models.Model):
    """
    Shop-for-me pricing for one (origin region, product category).

    Input to the charge calculator only; the calculator never writes it.
    Percentages are whole-number percents (10 = 10%).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    region = models.CharField(max_length=20, choices=REGION_CHOICES)
    product_category = models.CharField(
        max_length=20, choices=CATEGORY_CHOICES, default=CATEGORY_GENERAL
    )

    rate_per_kg = models.DecimalField(max_digits=12, decimal_places=2)
    duty_percentage = models.DecimalField(max_digits=6, decimal_places=2, default=ZERO)
    handling_fee_percentage = models.DecimalField(max_digits=6, decimal_places=2, default=ZERO)
    markup_percentage = models.DecimalField(max_digits=6, decimal_places=2, default=ZERO)

    currency = models.CharField(max_length=3, default="USD")

    is_active = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["region", "display_order", "product_category"]
        constraints = [
            models.UniqueConstraint(
                fields=["region", "product_category"],
                name="uniq_product_rate_region_category",
            ),
            models.CheckConstraint(
                condition=models.Q(rate_per_kg__gte=ZERO)
                & models.Q(duty_percentage__gte=ZERO)
                & models.Q(handling_fee_percentage__gte=ZERO)
                & models.Q(markup_percentage__gte=ZERO),
                name="product_rate_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.region}/{self.product_category}: {self.rate_per_kg} {self.currency}/kg"

    def clean(self):
        self.currency = (self.currency or "").strip().upper()
        errors = {}
        for name in (
            "rate_per_kg",
            "duty_percentage",
            "handling_fee_percentage",
            "markup_percentage",
        ):
            value = getattr(self, name)
            if value is not None and value < ZERO:
                errors[name] = f"{name} cannot be negative"
        if len(self.currency) != 3:
            errors["currency"] = "Use a 3-letter ISO currency code"
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)


class ShopForMeCharge(models.Model):
    """
    Admin-configurable extra charge on shop-for-me orders.

    charge_key "shipping" is special: weight x rate_per_kg, whatever the type.

    applies_to (percentage charges only):
    - product_cost: % of the product cost
    - subtotal:     % of product cost + fixed charges so far
    - cumulative:   the subtotal base + shipping
    """

    TYPE_PERCENTAGE = "percentage"
    TYPE_FIXED = "fixed"
    CHARGE_TYPES = [(TYPE_PERCENTAGE, "Percentage"), (TYPE_FIXED, "Fixed amount")]

    APPLIES_PRODUCT_COST = "product_cost"
    APPLIES_SUBTOTAL = "subtotal"
    APPLIES_CUMULATIVE = "cumulative"
    APPLIES_TO = [
        (APPLIES_PRODUCT_COST, "Product cost"),
        (APPLIES_SUBTOTAL, "Subtotal"),
        (APPLIES_CUMULATIVE, "Cumulative (incl. shipping)"),
    ]

    SHIPPING_KEY = "shipping"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    charge_name = models.CharField(max_length=100)
    charge_key = models.SlugField(max_length=50, unique=True)
    charge_type = models.CharField(max_length=12, choices=CHARGE_TYPES, default=TYPE_PERCENTAGE)
    charge_value = models.DecimalField(max_digits=12, decimal_places=2, default=ZERO)
    applies_to = models.CharField(max_length=14, choices=APPLIES_TO, default=APPLIES_PRODUCT_COST)
    description = models.TextField(blank=True, default="")

    display_order = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["display_order", "charge_key"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(charge_value__gte=ZERO),
                name="shopforme_charge_value_nonnegative",
            ),
        ]

    def __str__(self):
        return f"{self.charge_name} ({self.charge_key})"

    def clean(self):
        if self.charge_value is not None and self.charge_value < ZERO:
            raise ValidationError({"charge_value": "charge_value cannot be negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
