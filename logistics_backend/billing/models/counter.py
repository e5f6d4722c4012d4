# billing/models/counter.py

from django.db import models


class DocumentCounter(models.Model):
    """
    Sequential document numbers (INV-2025-0001, CT0001).

    One row per counter_key; incremented under a row lock by
    billing.services.numbering.
    """

    counter_key = models.CharField(max_length=32, unique=True)
    counter_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.counter_key}={self.counter_value}"
