# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (ACCOUNTING ENGINE)

This module is the ONLY place allowed to:
- Create JournalEntry
- Create LedgerEntry
- Enforce debit == credit (in base currency)
- Guarantee atomicity
- Enforce idempotency via reference (prevents double-posting)

Invoices, settlements and the outbox retry all pass through here.

Posting line shape:
    {
        "account": Account,
        "debit": Decimal | str,       # base currency
        "credit": Decimal | str,      # base currency
        "currency": "USD",            # optional, transaction currency
        "exchange_rate": Decimal,     # optional, 1 unit -> base
        "original_amount": Decimal,   # optional, in `currency`
        "description": str,           # optional
    }
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.exceptions import (
    IdempotencyError,
    JournalEntryCreationError,
    JournalImbalanceError,
)

TWOPLACES = Decimal("0.01")
MIN_LINE_AMOUNT = Decimal("0.01")


def _money(value) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")

    if isinstance(value, Decimal):
        amt = value
    else:
        try:
            amt = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise JournalEntryCreationError(f"Invalid money value: {value!r}") from exc

    return amt.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _rate(value) -> Decimal:
    if value is None or value == "":
        return Decimal("1")
    try:
        rate = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise JournalEntryCreationError(f"Invalid exchange rate: {value!r}") from exc
    if rate <= 0:
        raise JournalEntryCreationError(f"Exchange rate must be > 0: {value!r}")
    return rate


def _as_aware_dt(dt: datetime | None) -> datetime:
    if dt is None:
        return timezone.now()
    if timezone.is_naive(dt):
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


def normalize_reference(reference_type: str | None, reference_id) -> str | None:
    if not reference_type or not reference_id:
        return None

    rt = str(reference_type).strip().upper()
    rid = str(reference_id).strip()
    if not rt or not rid:
        return None

    return f"{rt}:{rid}"


def _check_same_chart(normalized_postings: list[dict]) -> None:
    chart_id = normalized_postings[0]["account"].chart_id
    for line in normalized_postings[1:]:
        if line["account"].chart_id != chart_id:
            raise JournalEntryCreationError(
                "All postings must belong to the same chart. Cross-chart journal entries are not allowed."
            )


def assert_balanced(postings: list[dict]) -> tuple[Decimal, Decimal]:
    """
    Totals of a posting list, raising JournalImbalanceError when they differ.

    Used by the engine and by draft builders before anything touches the DB.
    """
    total_debits = sum((_money(p.get("debit")) for p in postings), Decimal("0.00"))
    total_credits = sum((_money(p.get("credit")) for p in postings), Decimal("0.00"))

    if total_debits != total_credits:
        raise JournalImbalanceError(
            f"Journal entry not balanced: debits={total_debits} credits={total_credits}"
        )
    return total_debits, total_credits


def _normalize_line(line) -> dict:
    if not isinstance(line, dict):
        raise JournalEntryCreationError("Each posting must be an object/dict")

    account = line.get("account")
    if account is None:
        raise JournalEntryCreationError("Posting missing account")

    if not getattr(account, "is_active", True):
        raise JournalEntryCreationError(
            f"Account {getattr(account, 'code', 'UNKNOWN')} is inactive"
        )

    debit = _money(line.get("debit"))
    credit = _money(line.get("credit"))

    if debit < 0 or credit < 0:
        raise JournalEntryCreationError("Debit or credit cannot be negative")
    if debit > 0 and credit > 0:
        raise JournalEntryCreationError("A posting cannot have both debit and credit")
    if debit == 0 and credit == 0:
        raise JournalEntryCreationError("A posting must have either debit or credit")
    if 0 < debit < MIN_LINE_AMOUNT or 0 < credit < MIN_LINE_AMOUNT:
        raise JournalEntryCreationError(f"Line amount too small: {debit or credit}")

    currency = (line.get("currency") or settings.BASE_CURRENCY).strip().upper()
    original = line.get("original_amount")

    return {
        "account": account,
        "debit": debit,
        "credit": credit,
        "currency": currency,
        "exchange_rate": _rate(line.get("exchange_rate")),
        "original_amount": _money(original) if original is not None else (debit or credit),
        "description": (line.get("description") or "")[:255],
    }


@transaction.atomic
def create_journal_entry(
    *,
    description: str,
    postings: list,
    reference_type: str | None = None,
    reference_id=None,
    source_type: str = JournalEntry.SOURCE_MANUAL,
    posted_at: datetime | None = None,
    created_by=None,
) -> JournalEntry:
    if not postings:
        raise JournalEntryCreationError("Journal entry must contain at least one posting")

    description = (description or "").strip()
    if not description:
        raise JournalEntryCreationError("Journal entry description is required")

    reference = normalize_reference(reference_type, reference_id)

    normalized_postings = [_normalize_line(line) for line in postings]
    assert_balanced(normalized_postings)
    _check_same_chart(normalized_postings)

    # Clear error before DB constraint race handling
    if reference and JournalEntry.objects.filter(reference=reference).exists():
        raise IdempotencyError(f"Journal entry already exists for reference {reference}")

    try:
        with transaction.atomic():
            journal_entry = JournalEntry.objects.create(
                description=description,
                reference=reference,
                source_type=source_type,
                posted_at=_as_aware_dt(posted_at),
                created_by=created_by,
                is_posted=True,
            )
    except IntegrityError as exc:
        if reference and JournalEntry.objects.filter(reference=reference).exists():
            raise IdempotencyError(
                f"Journal entry already exists for reference {reference}"
            ) from exc
        raise JournalEntryCreationError(f"Failed to create journal entry: {exc}") from exc

    LedgerEntry.objects.bulk_create(
        [
            LedgerEntry(
                journal_entry=journal_entry,
                account=line["account"],
                entry_type=LedgerEntry.DEBIT if line["debit"] > 0 else LedgerEntry.CREDIT,
                amount=line["debit"] or line["credit"],
                currency=line["currency"],
                exchange_rate=line["exchange_rate"],
                original_amount=line["original_amount"],
                description=line["description"],
            )
            for line in normalized_postings
        ]
    )
    return journal_entry
