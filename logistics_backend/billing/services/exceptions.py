# billing/services/exceptions.py

"""
BILLING SERVICE ERRORS

Validation errors subclass ValueError so callers that only care about
"bad input" can catch them generically.
"""

from permissions.context import CapabilityError


class BillingServiceError(Exception):
    """Base exception for billing service failures."""


class PaymentValidationError(BillingServiceError, ValueError):
    """Raised before any write when a payment request is malformed."""


class InvoiceValidationError(BillingServiceError, ValueError):
    """Raised before any write when an invoice request is malformed."""


class InvoiceNotFoundError(BillingServiceError):
    """Raised when the invoice (or payment) does not exist."""


class InvoiceStateError(BillingServiceError):
    """Raised when the invoice state does not allow the operation."""


class PermissionDeniedError(BillingServiceError, CapabilityError):
    """Raised when the caller may not act on this particular invoice."""
