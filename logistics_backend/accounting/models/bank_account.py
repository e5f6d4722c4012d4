# accounting/models/bank_account.py

"""
======================================================
PATH: accounting/models/bank_account.py
======================================================
BANK ACCOUNT MODEL

A real bank (or mobile money / till) account the business receives into
and pays out of.

Balance rules:
- current_balance is held in the account's own currency
- it only moves additively (F() updates in bank_service) per payment leg
- reconciliation may recompute it from opening_balance + ledger lines
- ledger_account links the bank to its chart account for journal posting
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from accounting.models.account import Account


class BankAccount(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    account_name = models.CharField(max_length=150)
    bank_name = models.CharField(max_length=150, blank=True, default="")
    account_number = models.CharField(max_length=64, blank=True, default="")

    currency = models.CharField(max_length=3, default="TZS")

    ledger_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bank_accounts",
        help_text="Chart account debited/credited when money moves through this bank",
    )

    opening_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    current_balance = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["account_name"]
        indexes = [
            models.Index(fields=["is_active"], name="bank_active_idx"),
            models.Index(fields=["currency"], name="bank_currency_idx"),
        ]

    def __str__(self):
        return f"{self.account_name} ({self.currency})"

    def clean(self):
        self.account_name = (self.account_name or "").strip()
        self.currency = (self.currency or "").strip().upper()

        if not self.account_name:
            raise ValidationError({"account_name": "account_name is required"})
        if len(self.currency) != 3:
            raise ValidationError({"currency": "Use a 3-letter ISO currency code"})
        if self.ledger_account_id and self.ledger_account.account_type != Account.ASSET:
            raise ValidationError(
                {"ledger_account": "Bank accounts must link to an ASSET account"}
            )

    def save(self, *args, **kwargs):
        if self._state.adding and self.current_balance == Decimal("0.00"):
            self.current_balance = self.opening_balance
        self.full_clean()
        return super().save(*args, **kwargs)
