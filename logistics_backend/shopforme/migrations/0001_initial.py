"""
======================================================
PATH: shopforme/migrations/0001_initial.py
======================================================
MIGRATION: CREATE ProductRate + ShopForMeCharge
"""

import uuid
from decimal import Decimal

from django.db import migrations, models

REGIONS = [
    ("europe", "Europe"),
    ("dubai", "Dubai"),
    ("china", "China"),
    ("india", "India"),
    ("usa", "USA"),
    ("uk", "United Kingdom"),
]

CATEGORIES = [
    ("general", "General Goods"),
    ("hazardous", "Hazardous Goods"),
    ("cosmetics", "Cosmetics"),
    ("electronics", "Electronics"),
    ("spare_parts", "Spare Parts"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ProductRate",
            fields=[
                (
                    "id",
                    models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False),
                ),
                ("region", models.CharField(choices=REGIONS, max_length=20)),
                (
                    "product_category",
                    models.CharField(choices=CATEGORIES, default="general", max_length=20),
                ),
                ("rate_per_kg", models.DecimalField(decimal_places=2, max_digits=12)),
                ("duty_percentage", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6)),
                (
                    "handling_fee_percentage",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6),
                ),
                ("markup_percentage", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=6)),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("is_active", models.BooleanField(default=True)),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["region", "display_order", "product_category"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("region", "product_category"),
                        name="uniq_product_rate_region_category",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("rate_per_kg__gte", Decimal("0")),
                            ("duty_percentage__gte", Decimal("0")),
                            ("handling_fee_percentage__gte", Decimal("0")),
                            ("markup_percentage__gte", Decimal("0")),
                        ),
                        name="product_rate_nonnegative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ShopForMeCharge",
            fields=[
                (
                    "id",
                    models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False),
                ),
                ("charge_name", models.CharField(max_length=100)),
                ("charge_key", models.SlugField(unique=True)),
                (
                    "charge_type",
                    models.CharField(
                        choices=[("percentage", "Percentage"), ("fixed", "Fixed amount")],
                        default="percentage",
                        max_length=12,
                    ),
                ),
                ("charge_value", models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12)),
                (
                    "applies_to",
                    models.CharField(
                        choices=[
                            ("product_cost", "Product cost"),
                            ("subtotal", "Subtotal"),
                            ("cumulative", "Cumulative (incl. shipping)"),
                        ],
                        default="product_cost",
                        max_length=14,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                ("display_order", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["display_order", "charge_key"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("charge_value__gte", Decimal("0"))),
                        name="shopforme_charge_value_nonnegative",
                    )
                ],
            },
        ),
    ]
