# billing/services/numbering.py

"""
Sequential document numbers.

    invoice   INV-2025-0001   (sequence restarts each year)
    customer  CT0001

The counter row is locked for the increment, so concurrent creators never
share a number.
"""

from __future__ import annotations

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from billing.models.counter import DocumentCounter


@transaction.atomic
def next_counter_value(counter_key: str) -> int:
    DocumentCounter.objects.get_or_create(counter_key=counter_key)
    DocumentCounter.objects.filter(counter_key=counter_key).update(
        counter_value=F("counter_value") + 1
    )
    return (
        DocumentCounter.objects.select_for_update()
        .values_list("counter_value", flat=True)
        .get(counter_key=counter_key)
    )


def next_invoice_number(prefix: str = "INV") -> str:
    year = timezone.now().year
    value = next_counter_value(f"invoice-{year}")
    return f"{prefix}-{year}-{value:04d}"


def next_customer_code() -> str:
    return f"CT{next_counter_value('customer'):04d}"
