# accounting/api/serializers/__init__.py

from accounting.api.serializers.accounts import AccountListSerializer
from accounting.api.serializers.bank_accounts import (
    BankAccountCreateSerializer,
    BankAccountSerializer,
)
from accounting.api.serializers.journal_entries import JournalEntrySerializer
from accounting.api.serializers.ledger_entries import LedgerEntrySerializer

__all__ = [
    "AccountListSerializer",
    "BankAccountSerializer",
    "BankAccountCreateSerializer",
    "JournalEntrySerializer",
    "LedgerEntrySerializer",
]
