# currency/models.py

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class ExchangeRate(models.Model):
    """
    "1 unit of currency_code = rate_to_base units of the base currency".

    Maintained by staff out of band. Settlements read a snapshot of the whole
    table once per action (currency.services.rates.get_rate_snapshot).
    """

    currency_code = models.CharField(max_length=3, unique=True)
    currency_name = models.CharField(max_length=64, blank=True, default="")

    rate_to_base = models.DecimalField(max_digits=18, decimal_places=6)

    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["currency_code"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rate_to_base__gt=Decimal("0")),
                name="exchange_rate_positive",
            ),
        ]

    def __str__(self):
        return f"1 {self.currency_code} = {self.rate_to_base} {settings.BASE_CURRENCY}"

    def clean(self):
        self.currency_code = (self.currency_code or "").strip().upper()
        if len(self.currency_code) != 3 or not self.currency_code.isalpha():
            raise ValidationError({"currency_code": "Use a 3-letter ISO currency code"})

        if self.rate_to_base is None or self.rate_to_base <= Decimal("0"):
            raise ValidationError({"rate_to_base": "rate_to_base must be > 0"})

        if self.currency_code == settings.BASE_CURRENCY and self.rate_to_base != Decimal("1"):
            raise ValidationError(
                {"rate_to_base": f"{settings.BASE_CURRENCY} is the base currency; its rate is always 1"}
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
