# billing/models/__init__.py

from billing.models.counter import DocumentCounter
from billing.models.customer import Customer
from billing.models.invoice import Invoice
from billing.models.payment import Payment

__all__ = [
    "DocumentCounter",
    "Customer",
    "Invoice",
    "Payment",
]
