from django.contrib import admin

from shopforme.models import ProductRate, ShopForMeCharge


@admin.register(ProductRate)
class ProductRateAdmin(admin.ModelAdmin):
    list_display = (
        "region",
        "product_category",
        "rate_per_kg",
        "duty_percentage",
        "handling_fee_percentage",
        "markup_percentage",
        "currency",
        "is_active",
    )
    list_filter = ("region", "product_category", "is_active")
    ordering = ("region", "display_order")


@admin.register(ShopForMeCharge)
class ShopForMeChargeAdmin(admin.ModelAdmin):
    list_display = ("charge_name", "charge_key", "charge_type", "charge_value", "applies_to", "is_active")
    list_filter = ("charge_type", "applies_to", "is_active")
    search_fields = ("charge_name", "charge_key")
