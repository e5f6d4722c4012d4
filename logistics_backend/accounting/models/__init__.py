# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Imports only. Models never import services.
"""

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.models.outbox import PendingJournalPosting

__all__ = [
    "ChartOfAccounts",
    "Account",
    "BankAccount",
    "JournalEntry",
    "LedgerEntry",
    "PendingJournalPosting",
]
