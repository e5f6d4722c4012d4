# billing/models/customer.py

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


class Customer(models.Model):
    """
    Someone we ship for and invoice.

    `user` links the customer to a portal login when they have one.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    customer_code = models.CharField(max_length=16, unique=True, blank=True)

    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    company_name = models.CharField(max_length=200, blank=True, default="")
    address = models.TextField(blank=True, default="")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customer_profiles",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [models.Index(fields=["customer_code"], name="customer_code_idx")]

    def __str__(self):
        return f"{self.customer_code} {self.name}".strip()

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "name is required"})

    def save(self, *args, **kwargs):
        if not self.customer_code:
            from billing.services.numbering import next_customer_code

            self.customer_code = next_customer_code()
        self.full_clean()
        return super().save(*args, **kwargs)
