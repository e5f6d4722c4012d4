# accounting/services/journal_poster.py

"""
======================================================
PATH: accounting/services/journal_poster.py
======================================================
JOURNAL POSTER

Maps billing events to balanced journal drafts, then writes them through
the engine (create_journal_entry).

Two halves:
- build_* functions are pure: accounts are resolved by the caller and passed
  in, nothing touches the database, every draft is checked for balance.
- post_drafts() is the only writer; it honours ACCOUNTING_POSTING_ENABLED.

Posting rules:
    customer / agent-billing payment   Dr bank ledger      Cr accounts receivable
    agent payment (from_agent)         Dr agent payables   Cr bank ledger
    invoice issued (to customer/agent) Dr accounts recv.   Cr shipping revenue
    agent invoice received             Dr agent cost       Cr agent payables

All ledger amounts are in base currency. Each line keeps the transaction
currency, the rate snapshot and the original amount.

An unbalanced draft raises JournalImbalanceError. It is never queued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.conf import settings

from accounting.flow import FlowDirection
from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.exceptions import PostingDisabledError, PostingRuleError
from accounting.services.journal_entry_service import (
    assert_balanced,
    create_journal_entry,
)

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    return Decimal(str(v or "0")).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# DRAFT TYPES
# ============================================================


@dataclass(frozen=True)
class DraftLine:
    account: Account
    debit: Decimal
    credit: Decimal
    currency: str
    exchange_rate: Decimal
    original_amount: Decimal
    description: str = ""

    def as_posting(self) -> dict:
        return {
            "account": self.account,
            "debit": self.debit,
            "credit": self.credit,
            "currency": self.currency,
            "exchange_rate": self.exchange_rate,
            "original_amount": self.original_amount,
            "description": self.description,
        }


@dataclass(frozen=True)
class JournalDraft:
    description: str
    reference_type: str
    reference_id: str
    source_type: str
    lines: tuple[DraftLine, ...]
    posted_at: datetime | None = None

    def postings(self) -> list[dict]:
        return [line.as_posting() for line in self.lines]

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0.00"))

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0.00"))


@dataclass(frozen=True)
class SettlementLeg:
    """
    One applied payment leg, with its accounts already resolved.

    `amount` is in `currency`; `amount_in_base` is the base-currency value
    using the rate snapshot taken for the settlement.
    """

    payment_id: str
    amount: Decimal
    currency: str
    exchange_rate: Decimal
    amount_in_base: Decimal
    bank_ledger_account: Account
    counter_account: Account
    flow: FlowDirection
    invoice_number: str = ""
    posted_at: datetime | None = None


# ============================================================
# PURE BUILDERS
# ============================================================


def _pair(
    *,
    debit_account: Account,
    credit_account: Account,
    base_amount: Decimal,
    currency: str,
    exchange_rate: Decimal,
    original_amount: Decimal,
    description: str,
) -> tuple[DraftLine, DraftLine]:
    return (
        DraftLine(
            account=debit_account,
            debit=base_amount,
            credit=Decimal("0.00"),
            currency=currency,
            exchange_rate=exchange_rate,
            original_amount=original_amount,
            description=description,
        ),
        DraftLine(
            account=credit_account,
            debit=Decimal("0.00"),
            credit=base_amount,
            currency=currency,
            exchange_rate=exchange_rate,
            original_amount=original_amount,
            description=description,
        ),
    )


def _checked(draft: JournalDraft) -> JournalDraft:
    assert_balanced(draft.postings())
    return draft


def build_settlement_entries(legs: Iterable[SettlementLeg]) -> list[JournalDraft]:
    """One balanced draft per leg. Split payments give N independent entries."""
    drafts: list[JournalDraft] = []

    for leg in legs:
        base_amount = _money(leg.amount_in_base)
        if base_amount <= 0:
            raise PostingRuleError(
                f"Settlement leg {leg.payment_id} has no base amount to post"
            )

        label = f" for invoice {leg.invoice_number}" if leg.invoice_number else ""

        if leg.flow is FlowDirection.OUTGOING:
            description = f"Agent payment{label}"
            lines = _pair(
                debit_account=leg.counter_account,
                credit_account=leg.bank_ledger_account,
                base_amount=base_amount,
                currency=leg.currency,
                exchange_rate=leg.exchange_rate,
                original_amount=_money(leg.amount),
                description=description,
            )
            source_type = JournalEntry.SOURCE_AGENT_PAYMENT
        else:
            description = f"Payment received{label}"
            lines = _pair(
                debit_account=leg.bank_ledger_account,
                credit_account=leg.counter_account,
                base_amount=base_amount,
                currency=leg.currency,
                exchange_rate=leg.exchange_rate,
                original_amount=_money(leg.amount),
                description=description,
            )
            source_type = JournalEntry.SOURCE_PAYMENT

        drafts.append(
            _checked(
                JournalDraft(
                    description=description,
                    reference_type="PAYMENT",
                    reference_id=str(leg.payment_id),
                    source_type=source_type,
                    lines=lines,
                    posted_at=leg.posted_at,
                )
            )
        )

    return drafts


def build_invoice_issue_entry(
    *,
    invoice_id: str,
    invoice_number: str,
    amount: Decimal,
    currency: str,
    exchange_rate: Decimal,
    amount_in_base: Decimal,
    debit_account: Account,
    credit_account: Account,
    agent_invoice: bool = False,
    posted_at: datetime | None = None,
) -> JournalDraft:
    """
    Invoice recognition.

    Billing invoices: debit_account = AR, credit_account = shipping revenue.
    Agent invoices received: debit_account = agent cost, credit_account = agent payables.
    """
    base_amount = _money(amount_in_base)
    if base_amount <= 0:
        raise PostingRuleError(f"Invoice {invoice_number} has no amount to post")

    if agent_invoice:
        description = f"Agent invoice {invoice_number} received"
        source_type = JournalEntry.SOURCE_AGENT_INVOICE
    else:
        description = f"Invoice {invoice_number} issued"
        source_type = JournalEntry.SOURCE_INVOICE

    return _checked(
        JournalDraft(
            description=description,
            reference_type="INVOICE",
            reference_id=str(invoice_id),
            source_type=source_type,
            lines=_pair(
                debit_account=debit_account,
                credit_account=credit_account,
                base_amount=base_amount,
                currency=currency,
                exchange_rate=exchange_rate,
                original_amount=_money(amount),
                description=description,
            ),
            posted_at=posted_at,
        )
    )


# ============================================================
# WRITER
# ============================================================


def posting_enabled() -> bool:
    return bool(getattr(settings, "ACCOUNTING_POSTING_ENABLED", True))


def post_drafts(drafts: Iterable[JournalDraft], *, created_by=None) -> list[JournalEntry]:
    """
    Write drafts through the engine, in order.

    Raises PostingDisabledError when posting is switched off so callers can
    queue the work instead.
    """
    drafts = list(drafts)
    if not posting_enabled():
        raise PostingDisabledError("Accounting posting is disabled (ACCOUNTING_POSTING_ENABLED)")

    entries: list[JournalEntry] = []
    for draft in drafts:
        entry = create_journal_entry(
            description=draft.description,
            postings=draft.postings(),
            reference_type=draft.reference_type,
            reference_id=draft.reference_id,
            source_type=draft.source_type,
            posted_at=draft.posted_at,
            created_by=created_by,
        )
        logger.info(
            "Journal entry posted",
            extra={
                "journal_entry_id": entry.id,
                "reference": entry.reference,
                "amount": str(draft.total_debit),
            },
        )
        entries.append(entry)
    return entries


def post_settlement(legs: Iterable[SettlementLeg], *, created_by=None) -> list[JournalEntry]:
    return post_drafts(build_settlement_entries(legs), created_by=created_by)
