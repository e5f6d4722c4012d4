# billing/models/invoice.py

"""
======================================================
PATH: billing/models/invoice.py
======================================================
INVOICE MODEL

One bill, in one currency, in one direction:
- to_customer  we bill a customer (money comes in)
- to_agent     we bill an overseas agent (money comes in)
- from_agent   an agent bills us (money goes out)

Guarantees:
- amount, currency, direction and parties are fixed once created
- the base-currency snapshot taken at creation is what the ledger carries
- paid / cancelled invoices only accept notes and staff status corrections
- amount_paid only moves through settlements (billing.services.payment_service)
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from permissions.roles import ROLE_AGENT
from shopforme.regions import REGION_CHOICES

User = settings.AUTH_USER_MODEL


class Invoice(models.Model):
    TYPE_SHIPPING = "shipping"
    TYPE_PURCHASE_SHIPPING = "purchase_shipping"

    TYPE_CHOICES = [
        (TYPE_SHIPPING, "Shipping"),
        (TYPE_PURCHASE_SHIPPING, "Purchase + shipping"),
    ]

    DIRECTION_TO_CUSTOMER = "to_customer"
    DIRECTION_TO_AGENT = "to_agent"
    DIRECTION_FROM_AGENT = "from_agent"

    DIRECTION_CHOICES = [
        (DIRECTION_TO_CUSTOMER, "To customer"),
        (DIRECTION_TO_AGENT, "To agent"),
        (DIRECTION_FROM_AGENT, "From agent"),
    ]

    AGENT_DIRECTIONS = (DIRECTION_TO_AGENT, DIRECTION_FROM_AGENT)

    STATUS_PENDING = "pending"
    STATUS_PAID = "paid"
    STATUS_OVERDUE = "overdue"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PAID, "Paid"),
        (STATUS_OVERDUE, "Overdue"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    TERMINAL_STATUSES = (STATUS_PAID, STATUS_CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    invoice_number = models.CharField(max_length=32, unique=True)
    invoice_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default=TYPE_SHIPPING)
    direction = models.CharField(
        max_length=12, choices=DIRECTION_CHOICES, default=DIRECTION_TO_CUSTOMER
    )
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING)

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")

    # base-currency snapshot at creation
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=6, default=Decimal("1"))
    amount_in_base = models.DecimalField(max_digits=16, decimal_places=2, default=Decimal("0.00"))

    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_method = models.CharField(max_length=20, blank=True, default="")
    payment_currency = models.CharField(max_length=3, blank=True, default="")

    customer = models.ForeignKey(
        "billing.Customer",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
    )
    agent = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="agent_invoices",
    )

    origin_region = models.CharField(max_length=20, choices=REGION_CHOICES, blank=True, default="")
    shipment_reference = models.CharField(max_length=64, blank=True, default="")

    due_date = models.DateField(null=True, blank=True)
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
        related_name="created_invoices",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="invoice_status_created_idx"),
            models.Index(fields=["direction", "status"], name="invoice_direction_status_idx"),
            models.Index(fields=["shipment_reference"], name="invoice_shipment_ref_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=Decimal("0")),
                name="invoice_amount_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_paid__gte=Decimal("0")),
                name="invoice_amount_paid_nonnegative",
            ),
        ]

    _IMMUTABLE_FIELDS = (
        "invoice_number",
        "invoice_type",
        "direction",
        "amount",
        "currency",
        "exchange_rate",
        "amount_in_base",
        "customer_id",
        "agent_id",
    )

    _LOCKED_WHEN_TERMINAL = (
        "amount_paid",
        "payment_method",
        "payment_currency",
        "origin_region",
        "shipment_reference",
        "due_date",
    )

    def __str__(self):
        return f"{self.invoice_number} | {self.amount} {self.currency} [{self.status}]"

    @property
    def balance_due(self) -> Decimal:
        return max(self.amount - self.amount_paid, Decimal("0.00"))

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def clean(self):
        self.currency = (self.currency or "").strip().upper()
        self.payment_currency = (self.payment_currency or "").strip().upper()
        errors = {}

        if self.amount is None or self.amount <= 0:
            errors["amount"] = "amount must be > 0"
        if self.amount_paid is not None and self.amount_paid < 0:
            errors["amount_paid"] = "amount_paid cannot be negative"
        if len(self.currency) != 3:
            errors["currency"] = "Use a 3-letter ISO currency code"

        if self.direction == self.DIRECTION_TO_CUSTOMER and not self.customer_id:
            errors["customer"] = "Customer invoices need a customer"
        if self.direction in self.AGENT_DIRECTIONS:
            if not self.agent_id:
                errors["agent"] = "Agent invoices need an agent"
            elif getattr(self.agent, "role", None) != ROLE_AGENT:
                errors["agent"] = "agent must be a user with the agent role"

        if errors:
            raise ValidationError(errors)

    def _validate_against(self, previous: "Invoice"):
        for name in self._IMMUTABLE_FIELDS:
            if getattr(self, name) != getattr(previous, name):
                raise ValidationError(f"Invoice field '{name}' cannot be changed after creation")

        if previous.status in self.TERMINAL_STATUSES:
            for name in self._LOCKED_WHEN_TERMINAL:
                if getattr(self, name) != getattr(previous, name):
                    raise ValidationError(
                        f"Invoice is {previous.status}; field '{name}' cannot be changed"
                    )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            previous = Invoice.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_against(previous)

        if self.status == self.STATUS_PAID and not self.paid_at:
            self.paid_at = timezone.now()

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Invoices cannot be deleted; cancel them instead")
