# accounting/services/reconciliation_service.py

"""
RECONCILIATION REPORT (READ-ONLY)

Per active bank account: the running book balance next to the balance the
ledger implies, and the difference. Differences usually mean a settlement
whose journal entry is still sitting in the outbox, which is listed too.
"""

from __future__ import annotations

from decimal import Decimal

from accounting.models.bank_account import BankAccount
from accounting.services.bank_service import ledger_balance_for_bank
from accounting.services.outbox_service import outstanding_postings
from currency.services.rates import get_rate_snapshot


def reconciliation_report() -> dict:
    rate_table = get_rate_snapshot()
    banks = []

    for bank in BankAccount.objects.filter(is_active=True).select_related("ledger_account"):
        row = {
            "bank_account_id": bank.id,
            "account_name": bank.account_name,
            "currency": bank.currency,
            "book_balance": bank.current_balance,
            "ledger_balance": None,
            "difference": None,
            "ledger_account": bank.ledger_account.code if bank.ledger_account else None,
        }
        if bank.ledger_account_id:
            ledger = ledger_balance_for_bank(bank, rate_table=rate_table)
            row["ledger_balance"] = ledger
            row["difference"] = bank.current_balance - ledger
        banks.append(row)

    outbox = [
        {
            "id": p.id,
            "posting_kind": p.posting_kind,
            "source_id": p.source_id,
            "status": p.status,
            "attempts": p.attempts,
            "last_error": p.last_error,
            "created_at": p.created_at,
        }
        for p in outstanding_postings()
    ]

    return {
        "bank_accounts": banks,
        "unreconciled": sum(1 for b in banks if b["difference"] not in (None, Decimal("0.00"))),
        "outbox": outbox,
    }
