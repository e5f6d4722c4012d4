# accounting/services/bank_service.py

"""
======================================================
PATH: accounting/services/bank_service.py
======================================================
BANK ACCOUNT SERVICE

- create_bank_account(): staff setup (bank_accounts.manage)
- apply_bank_delta(): additive balance movement, one per payment leg
- ledger_balance_for_bank() / recalculate_bank_balance(): rebuild the book
  balance from opening balance + ledger lines (reconciliation)

Balances are in the bank's own currency. Ledger lines are in base currency
and also carry their original amount, which is used when the line was
posted in the bank's currency.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from accounting.models.bank_account import BankAccount
from accounting.models.ledger import LedgerEntry
from accounting.services.exceptions import BankAccountError
from currency.services.converter import RateTable, convert_from_base
from currency.services.rates import get_rate_snapshot
from permissions.context import RequestContext
from permissions.roles import CAP_BANK_ACCOUNTS_MANAGE

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _q2(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@transaction.atomic
def create_bank_account(
    *,
    context: RequestContext,
    account_name: str,
    currency: str,
    bank_name: str = "",
    account_number: str = "",
    ledger_account=None,
    opening_balance=Decimal("0.00"),
) -> BankAccount:
    context.require(CAP_BANK_ACCOUNTS_MANAGE)

    bank = BankAccount.objects.create(
        account_name=account_name,
        bank_name=bank_name,
        account_number=account_number,
        currency=currency,
        ledger_account=ledger_account,
        opening_balance=_q2(opening_balance),
    )
    logger.info(
        "Bank account created",
        extra={"bank_account_id": str(bank.id), "currency": bank.currency},
    )
    return bank


def apply_bank_delta(bank_account_id, delta: Decimal) -> None:
    """
    current_balance += delta, as a single UPDATE.

    Must run inside the settlement transaction; the caller holds the row lock.
    """
    updated = BankAccount.objects.filter(id=bank_account_id).update(
        current_balance=F("current_balance") + _q2(delta),
        updated_at=timezone.now(),
    )
    if not updated:
        raise BankAccountError(f"Bank account {bank_account_id} not found")


def ledger_balance_for_bank(bank: BankAccount, *, rate_table: RateTable | None = None) -> Decimal:
    """
    opening_balance + net ledger movement on the bank's ledger account,
    expressed in the bank's currency.

    Assumes the ledger account belongs to this bank alone.
    """
    if bank.ledger_account_id is None:
        raise BankAccountError(f"Bank account '{bank}' has no ledger account")

    table = rate_table if rate_table is not None else get_rate_snapshot()
    balance = bank.opening_balance

    lines = LedgerEntry.objects.filter(
        account_id=bank.ledger_account_id, journal_entry__is_posted=True
    ).only("entry_type", "amount", "currency", "original_amount")

    for line in lines.iterator():
        if line.currency == bank.currency and line.original_amount is not None:
            amount = line.original_amount
        else:
            amount = convert_from_base(line.amount, bank.currency, table).amount

        if line.entry_type == LedgerEntry.DEBIT:
            balance += amount
        else:
            balance -= amount

    return _q2(balance)


@transaction.atomic
def recalculate_bank_balance(bank: BankAccount, *, rate_table: RateTable | None = None) -> Decimal:
    bank = BankAccount.objects.select_for_update().get(pk=bank.pk)
    previous = bank.current_balance
    balance = ledger_balance_for_bank(bank, rate_table=rate_table)

    BankAccount.objects.filter(pk=bank.pk).update(
        current_balance=balance, updated_at=timezone.now()
    )

    if balance != previous:
        logger.warning(
            "Bank balance corrected from ledger",
            extra={
                "bank_account_id": str(bank.id),
                "previous_balance": str(previous),
                "balance": str(balance),
            },
        )
    return balance
