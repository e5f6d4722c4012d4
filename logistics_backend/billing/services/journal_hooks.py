# billing/services/journal_hooks.py

"""
======================================================
PATH: billing/services/journal_hooks.py
======================================================
BILLING -> LEDGER

Resolves accounts for invoices and payment legs, hands them to the journal
poster, and queues the work in the outbox when posting fails for a reason
that can be fixed later (missing account, posting switched off).

JournalImbalanceError is never queued: it propagates and the caller's
transaction rolls back.

Journal status values reported to callers:
- posted    entries written in the same transaction
- queued    outbox rows created; retry_journal_postings will write them
"""

from __future__ import annotations

import logging
from typing import Sequence

from django.db import transaction

from accounting.flow import FlowDirection
from accounting.models.journal import JournalEntry
from accounting.models.outbox import PendingJournalPosting
from accounting.services.account_resolver import (
    get_accounts_receivable_account,
    get_agent_cost_account,
    get_agent_payables_account,
    get_bank_ledger_account,
    get_cash_account,
    get_shipping_revenue_account,
)
from accounting.services.exceptions import (
    AccountingServiceError,
    JournalImbalanceError,
    PostingRuleError,
)
from accounting.services.journal_entry_service import normalize_reference
from accounting.services.journal_poster import (
    SettlementLeg,
    build_invoice_issue_entry,
    post_drafts,
    post_settlement,
)
from accounting.services.outbox_service import enqueue_posting, register_outbox_handler
from billing.models.invoice import Invoice
from billing.models.payment import Payment
from billing.services.allocation import flow_for_direction

logger = logging.getLogger("billing")

JOURNAL_POSTED = "posted"
JOURNAL_QUEUED = "queued"


# ============================================================
# ACCOUNT RESOLUTION
# ============================================================


def settlement_leg_for(invoice: Invoice, payment: Payment) -> SettlementLeg:
    flow = flow_for_direction(invoice.direction)

    if payment.bank_account_id:
        bank_ledger = get_bank_ledger_account(payment.bank_account)
    else:
        bank_ledger = get_cash_account(payment.currency)

    if flow is FlowDirection.OUTGOING:
        counter = get_agent_payables_account()
    else:
        counter = get_accounts_receivable_account()

    return SettlementLeg(
        payment_id=str(payment.id),
        amount=payment.amount,
        currency=payment.currency,
        exchange_rate=payment.exchange_rate,
        amount_in_base=payment.amount_in_base,
        bank_ledger_account=bank_ledger,
        counter_account=counter,
        flow=flow,
        invoice_number=invoice.invoice_number,
        posted_at=payment.paid_at,
    )


def _issue_draft(invoice: Invoice):
    if invoice.direction == Invoice.DIRECTION_FROM_AGENT:
        debit = get_agent_cost_account(invoice.origin_region or getattr(invoice.agent, "region", ""))
        credit = get_agent_payables_account()
        agent_invoice = True
    else:
        debit = get_accounts_receivable_account()
        credit = get_shipping_revenue_account()
        agent_invoice = False

    return build_invoice_issue_entry(
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        amount=invoice.amount,
        currency=invoice.currency,
        exchange_rate=invoice.exchange_rate,
        amount_in_base=invoice.amount_in_base,
        debit_account=debit,
        credit_account=credit,
        agent_invoice=agent_invoice,
        posted_at=invoice.created_at,
    )


# ============================================================
# POST OR QUEUE
# ============================================================


def post_invoice_issue(invoice: Invoice, *, created_by=None) -> str:
    try:
        with transaction.atomic():
            [entry] = post_drafts([_issue_draft(invoice)], created_by=created_by)
            invoice.journal_entry = entry
            invoice.save(update_fields=["journal_entry", "updated_at"])
    except JournalImbalanceError:
        raise
    except AccountingServiceError as exc:
        invoice.journal_entry = None
        enqueue_posting(
            kind=PendingJournalPosting.KIND_INVOICE_ISSUED, source_id=invoice.id, error=exc
        )
        return JOURNAL_QUEUED
    return JOURNAL_POSTED


def post_settlement_legs(invoice: Invoice, payments: Sequence[Payment], *, created_by=None) -> str:
    """
    One journal entry per leg, all or nothing (savepoint).

    On a recoverable failure every leg is queued and the settlement itself
    still commits.
    """
    try:
        with transaction.atomic():
            legs = [settlement_leg_for(invoice, p) for p in payments]
            entries = post_settlement(legs, created_by=created_by)
            for payment, entry in zip(payments, entries):
                payment.journal_entry = entry
                payment.save(update_fields=["journal_entry"])
    except JournalImbalanceError:
        raise
    except AccountingServiceError as exc:
        for payment in payments:
            payment.journal_entry = None
            enqueue_posting(
                kind=PendingJournalPosting.KIND_SETTLEMENT_LEG, source_id=payment.id, error=exc
            )
        logger.warning(
            "Settlement committed without journal entries; queued for retry",
            extra={
                "invoice_id": str(invoice.id),
                "payment_ids": [str(p.id) for p in payments],
                "error": str(exc),
            },
        )
        return JOURNAL_QUEUED
    return JOURNAL_POSTED


# ============================================================
# OUTBOX HANDLERS
# ============================================================


def _existing_entry(reference_type: str, source_id) -> JournalEntry | None:
    return JournalEntry.objects.filter(
        reference=normalize_reference(reference_type, source_id)
    ).first()


def retry_invoice_issue(source_id: str) -> JournalEntry:
    invoice = Invoice.objects.select_for_update().filter(pk=source_id).first()
    if invoice is None:
        raise PostingRuleError(f"Invoice {source_id} no longer exists")

    entry = invoice.journal_entry or _existing_entry("INVOICE", invoice.id)
    if entry is None:
        [entry] = post_drafts([_issue_draft(invoice)], created_by=invoice.created_by)

    if invoice.journal_entry_id != entry.id:
        invoice.journal_entry = entry
        invoice.save(update_fields=["journal_entry", "updated_at"])
    return entry


def retry_settlement_leg(source_id: str) -> JournalEntry:
    payment = (
        Payment.objects.select_for_update()
        .select_related("invoice", "bank_account__ledger_account")
        .filter(pk=source_id)
        .first()
    )
    if payment is None:
        raise PostingRuleError(f"Payment {source_id} no longer exists")
    if not payment.is_verified:
        raise PostingRuleError(f"Payment {source_id} is {payment.verification_status}")

    entry = payment.journal_entry or _existing_entry("PAYMENT", payment.id)
    if entry is None:
        [entry] = post_settlement(
            [settlement_leg_for(payment.invoice, payment)], created_by=payment.created_by
        )

    if payment.journal_entry_id != entry.id:
        payment.journal_entry = entry
        payment.save(update_fields=["journal_entry"])
    return entry


def register_outbox_handlers() -> None:
    register_outbox_handler(PendingJournalPosting.KIND_INVOICE_ISSUED, retry_invoice_issue)
    register_outbox_handler(PendingJournalPosting.KIND_SETTLEMENT_LEG, retry_settlement_leg)
