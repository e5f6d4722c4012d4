# billing/models/payment.py

"""
======================================================
PATH: billing/models/payment.py
======================================================
PAYMENT (SETTLEMENT LEG)

One row per receiving (or paying) bank account. A split payment is several
rows sharing a settlement_id.

Amounts:
- amount          in `currency` (what actually moved)
- amount_in_base  amount * exchange_rate (rate snapshot of the settlement)
- amount_applied  what the leg paid off, in the invoice currency

Write-once, except:
- verification_status: pending -> verified | rejected, once
- journal_entry: backfilled when a queued posting is written
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Payment(models.Model):
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_CASH = "cash"
    METHOD_MOBILE_MONEY = "mobile_money"
    METHOD_CARD = "card"

    METHOD_CHOICES = [
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_CASH, "Cash"),
        (METHOD_MOBILE_MONEY, "Mobile money"),
        (METHOD_CARD, "Card"),
    ]

    VERIFICATION_PENDING = "pending"
    VERIFICATION_VERIFIED = "verified"
    VERIFICATION_REJECTED = "rejected"

    VERIFICATION_CHOICES = [
        (VERIFICATION_PENDING, "Pending"),
        (VERIFICATION_VERIFIED, "Verified"),
        (VERIFICATION_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice = models.ForeignKey(
        "billing.Invoice",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    settlement_id = models.UUIDField(db_index=True)

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3)
    method = models.CharField(max_length=20, choices=METHOD_CHOICES)

    bank_account = models.ForeignKey(
        "accounting.BankAccount",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="payments",
    )

    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1"))
    amount_in_base = models.DecimalField(max_digits=16, decimal_places=2)
    amount_applied = models.DecimalField(max_digits=14, decimal_places=2)
    rate_degraded = models.BooleanField(default=False)

    verification_status = models.CharField(
        max_length=10, choices=VERIFICATION_CHOICES, default=VERIFICATION_VERIFIED
    )
    verified_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    verified_at = models.DateTimeField(null=True, blank=True)

    paid_at = models.DateTimeField(default=timezone.now)
    reference = models.CharField(max_length=128, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    journal_entry = models.ForeignKey(
        "accounting.JournalEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="+",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_payments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-paid_at", "-created_at"]
        indexes = [
            models.Index(fields=["invoice", "verification_status"], name="payment_invoice_verif_idx"),
            models.Index(fields=["paid_at"], name="payment_paid_at_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0")),
                name="payment_amount_positive",
            ),
        ]

    _MUTABLE_FIELDS = ("verification_status", "verified_by", "verified_at", "journal_entry")

    def __str__(self):
        return f"{self.invoice_id} | {self.amount} {self.currency} [{self.verification_status}]"

    @property
    def is_verified(self) -> bool:
        return self.verification_status == self.VERIFICATION_VERIFIED

    def clean(self):
        self.currency = (self.currency or "").strip().upper()
        if self.amount is None or self.amount <= 0:
            raise ValidationError({"amount": "amount must be > 0"})
        if len(self.currency) != 3:
            raise ValidationError({"currency": "Use a 3-letter ISO currency code"})

    def _validate_against(self, previous: "Payment"):
        for field in self._meta.concrete_fields:
            if field.name in self._MUTABLE_FIELDS:
                continue
            if getattr(self, field.attname) != getattr(previous, field.attname):
                raise ValidationError(f"Payment field '{field.name}' cannot be changed")

        if self.verification_status != previous.verification_status:
            if previous.verification_status != self.VERIFICATION_PENDING:
                raise ValidationError(
                    f"Payment already {previous.verification_status}; verification is final"
                )

        if previous.journal_entry_id and self.journal_entry_id != previous.journal_entry_id:
            raise ValidationError("Payment journal entry cannot be replaced")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            previous = Payment.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_against(previous)

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Payments are immutable and cannot be deleted")
