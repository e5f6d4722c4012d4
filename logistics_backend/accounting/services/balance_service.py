# accounting/services/balance_service.py

"""
BALANCE SERVICE (READ-ONLY)

Ledger aggregation helpers.

RULES:
- never writes
- LedgerEntry is the single source of truth (base currency)
- timeline is JournalEntry.posted_at
- only posted journals count
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from django.db.models import Case, F, Sum, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.ledger import LedgerEntry


class BalanceServiceError(Exception):
    """Base error for balance and reporting services."""


TWOPLACES = Decimal("0.01")


def _q2(v) -> Decimal:
    return Decimal(str(v or "0.00")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _posted_lines(*, as_of: datetime | None = None):
    qs = LedgerEntry.objects.filter(journal_entry__is_posted=True)
    if as_of is not None:
        if timezone.is_naive(as_of):
            as_of = timezone.make_aware(as_of, timezone.get_current_timezone())
        qs = qs.filter(journal_entry__posted_at__lte=as_of)
    return qs


def _signed_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    if account_type in Account.DEBIT_NORMAL_TYPES:
        return _q2(debit - credit)
    return _q2(credit - debit)


def get_debit_credit_totals(account: Account, *, as_of: datetime | None = None) -> tuple[Decimal, Decimal]:
    if account is None:
        raise BalanceServiceError("Account is required")

    aggregates = _posted_lines(as_of=as_of).filter(account=account).aggregate(
        debit_total=Coalesce(
            Sum(Case(When(entry_type=LedgerEntry.DEBIT, then=F("amount")))),
            Decimal("0.00"),
        ),
        credit_total=Coalesce(
            Sum(Case(When(entry_type=LedgerEntry.CREDIT, then=F("amount")))),
            Decimal("0.00"),
        ),
    )
    return _q2(aggregates["debit_total"]), _q2(aggregates["credit_total"])


def get_account_balance(account: Account, *, as_of: datetime | None = None) -> Decimal:
    """
    Assets & Expenses carry a debit balance (debits - credits);
    Liabilities, Equity & Revenue a credit balance (credits - debits).
    """
    debit, credit = get_debit_credit_totals(account, as_of=as_of)
    return _signed_balance(account.account_type, debit, credit)


def get_trial_balance(chart, *, as_of: datetime | None = None) -> list[dict]:
    """Bulk trial balance (one grouped query)."""
    if chart is None:
        raise BalanceServiceError("Chart of Accounts is required")

    accounts = list(
        Account.objects.filter(chart=chart, is_active=True)
        .only("id", "code", "name", "account_type")
        .order_by("code")
    )
    if not accounts:
        return []

    rows = (
        _posted_lines(as_of=as_of)
        .filter(account_id__in=[a.id for a in accounts])
        .values("account_id", "entry_type")
        .annotate(total=Coalesce(Sum("amount"), Decimal("0.00")))
    )

    totals: dict[tuple[int, str], Decimal] = {
        (r["account_id"], r["entry_type"]): _q2(r["total"]) for r in rows
    }

    results = []
    for acc in accounts:
        debit = totals.get((acc.id, LedgerEntry.DEBIT), Decimal("0.00"))
        credit = totals.get((acc.id, LedgerEntry.CREDIT), Decimal("0.00"))
        results.append(
            {
                "account_id": acc.id,
                "code": acc.code,
                "name": acc.name,
                "account_type": acc.account_type,
                "debit_total": debit,
                "credit_total": credit,
                "balance": _signed_balance(acc.account_type, debit, credit),
            }
        )
    return results
