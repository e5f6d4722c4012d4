from django.contrib import admin

from currency.models import ExchangeRate


@admin.register(ExchangeRate)
class ExchangeRateAdmin(admin.ModelAdmin):
    list_display = ("currency_code", "currency_name", "rate_to_base", "updated_at", "updated_by")
    search_fields = ("currency_code", "currency_name")
    readonly_fields = ("updated_at", "updated_by")
