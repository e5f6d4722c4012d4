# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for accounting services.

Only JournalImbalanceError is never degradable: callers must let it
propagate so the surrounding transaction rolls back. The others may be
queued in the journal outbox by settlement flows.
"""


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""


class PostingRuleError(AccountingServiceError):
    """Raised when a business event cannot be mapped to postings."""


class AccountResolutionError(AccountingServiceError):
    """Raised when an expected account cannot be resolved."""


class JournalEntryCreationError(AccountingServiceError):
    """Raised when a journal entry cannot be created."""


class JournalImbalanceError(JournalEntryCreationError):
    """Raised when debits and credits of a draft entry differ."""


class IdempotencyError(AccountingServiceError):
    """Raised on duplicate or retried accounting events."""


class PostingDisabledError(AccountingServiceError):
    """Raised when ACCOUNTING_POSTING_ENABLED is off."""


class BankAccountError(AccountingServiceError):
    """Raised when a bank account cannot be used for a movement."""
