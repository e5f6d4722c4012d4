# shopforme/api/serializers.py

from rest_framework import serializers

from shopforme.models import ProductRate, ShopForMeCharge
from shopforme.regions import CATEGORY_CHOICES, CATEGORY_GENERAL, REGION_CHOICES


class ProductRateSerializer(serializers.ModelSerializer):
    region_label = serializers.CharField(source="get_region_display", read_only=True)

    class Meta:
        model = ProductRate
        fields = (
            "id",
            "region",
            "region_label",
            "product_category",
            "rate_per_kg",
            "duty_percentage",
            "handling_fee_percentage",
            "markup_percentage",
            "currency",
            "is_active",
            "display_order",
            "updated_at",
        )
        read_only_fields = ("id", "region_label", "updated_at")
        # Upserts are keyed on (region, product_category); the service owns that rule.
        validators = []


class ShopForMeChargeSerializer(serializers.ModelSerializer):
    charge_key = serializers.SlugField(max_length=50)

    class Meta:
        model = ShopForMeCharge
        fields = (
            "id",
            "charge_name",
            "charge_key",
            "charge_type",
            "charge_value",
            "applies_to",
            "description",
            "display_order",
            "is_active",
        )
        read_only_fields = ("id",)


class QuoteRequestSerializer(serializers.Serializer):
    product_cost = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0)
    weight_kg = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=0)
    product_category = serializers.ChoiceField(choices=CATEGORY_CHOICES, default=CATEGORY_GENERAL)
    region = serializers.ChoiceField(choices=REGION_CHOICES, required=False)


class LineItemSerializer(serializers.Serializer):
    name = serializers.CharField()
    key = serializers.CharField()
    amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    percentage = serializers.DecimalField(max_digits=6, decimal_places=2, required=False)


class RegionQuoteSerializer(serializers.Serializer):
    region = serializers.CharField()
    region_label = serializers.CharField()
    currency = serializers.CharField()
    items = LineItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=16, decimal_places=2)
    total_in_base = serializers.DecimalField(max_digits=20, decimal_places=0)
    exchange_rate = serializers.DecimalField(max_digits=18, decimal_places=6)
    degraded = serializers.BooleanField()


class QuoteResponseSerializer(serializers.Serializer):
    base_currency = serializers.CharField()
    product_category = serializers.CharField()
    quotes = RegionQuoteSerializer(many=True)
