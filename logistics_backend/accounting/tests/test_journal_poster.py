# accounting/tests/test_journal_poster.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase, override_settings

from accounting.flow import FlowDirection
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.services.account_resolver import (
    clear_active_chart_cache,
    get_accounts_receivable_account,
    get_agent_cost_account,
    get_agent_payables_account,
    get_cash_account,
    get_shipping_revenue_account,
)
from accounting.services.exceptions import (
    IdempotencyError,
    PostingDisabledError,
    PostingRuleError,
)
from accounting.services.journal_poster import (
    SettlementLeg,
    build_invoice_issue_entry,
    build_settlement_entries,
    post_settlement,
)


def _seed_chart():
    clear_active_chart_cache()
    call_command("seed_logistics_chart", verbosity=0)


class JournalPosterTests(TestCase):
    """
    GUARANTEES:
    - one balanced entry per settlement leg, in base currency
    - incoming legs: Dr bank / Cr receivable; outgoing legs: Dr payables / Cr bank
    - each line keeps currency, rate and original amount
    - posting switched off raises PostingDisabledError and writes nothing
    """

    def setUp(self):
        _seed_chart()
        self.usd_bank = get_cash_account("USD")
        self.tzs_bank = get_cash_account("TZS")
        self.ar = get_accounts_receivable_account()
        self.payables = get_agent_payables_account()

    def _leg(self, amount, *, bank=None, currency="USD", rate="2500", flow=FlowDirection.INCOMING):
        amount = Decimal(amount)
        return SettlementLeg(
            payment_id=str(uuid.uuid4()),
            amount=amount,
            currency=currency,
            exchange_rate=Decimal(rate),
            amount_in_base=amount * Decimal(rate),
            bank_ledger_account=bank or self.usd_bank,
            counter_account=self.payables if flow is FlowDirection.OUTGOING else self.ar,
            flow=flow,
            invoice_number="INV-2026-0001",
        )

    def test_single_leg_is_one_balanced_entry(self):
        [draft] = build_settlement_entries([self._leg("100")])

        self.assertEqual(draft.total_debit, Decimal("250000.00"))
        self.assertEqual(draft.total_debit, draft.total_credit)
        debit, credit = draft.lines
        self.assertEqual(debit.account, self.usd_bank)
        self.assertEqual(credit.account, self.ar)
        self.assertEqual(debit.original_amount, Decimal("100.00"))
        self.assertEqual(debit.currency, "USD")

    def test_split_legs_post_independent_entries(self):
        legs = [self._leg("100"), self._leg("50", bank=self.tzs_bank)]

        entries = post_settlement(legs)

        self.assertEqual(len(entries), 2)
        for entry, leg in zip(entries, legs):
            lines = list(LedgerEntry.objects.filter(journal_entry=entry))
            debits = sum(l.amount for l in lines if l.entry_type == LedgerEntry.DEBIT)
            credits = sum(l.amount for l in lines if l.entry_type == LedgerEntry.CREDIT)
            self.assertEqual(debits, credits)
            self.assertEqual(debits, leg.amount_in_base)
            self.assertEqual(entry.reference, f"PAYMENT:{leg.payment_id}")
            self.assertEqual(entry.source_type, JournalEntry.SOURCE_PAYMENT)

        bank_line = LedgerEntry.objects.get(journal_entry=entries[1], entry_type=LedgerEntry.DEBIT)
        self.assertEqual(bank_line.account, self.tzs_bank)

    def test_outgoing_leg_credits_the_bank(self):
        [draft] = build_settlement_entries([self._leg("40", flow=FlowDirection.OUTGOING)])

        debit, credit = draft.lines
        self.assertEqual(debit.account, self.payables)
        self.assertEqual(credit.account, self.usd_bank)
        self.assertEqual(draft.source_type, JournalEntry.SOURCE_AGENT_PAYMENT)

    def test_zero_base_amount_is_a_rule_error(self):
        leg = self._leg("0")
        with self.assertRaises(PostingRuleError):
            build_settlement_entries([leg])

    def test_same_leg_cannot_post_twice(self):
        leg = self._leg("10")
        post_settlement([leg])

        with self.assertRaises(IdempotencyError):
            post_settlement([leg])

    @override_settings(ACCOUNTING_POSTING_ENABLED=False)
    def test_disabled_posting_raises(self):
        with self.assertRaises(PostingDisabledError):
            post_settlement([self._leg("10")])
        self.assertFalse(JournalEntry.objects.exists())

    def test_agent_invoice_issue_entry(self):
        draft = build_invoice_issue_entry(
            invoice_id="42",
            invoice_number="INV-2026-0042",
            amount=Decimal("300"),
            currency="USD",
            exchange_rate=Decimal("2500"),
            amount_in_base=Decimal("750000"),
            debit_account=get_agent_cost_account("china"),
            credit_account=self.payables,
            agent_invoice=True,
        )

        self.assertEqual(draft.reference_type, "INVOICE")
        self.assertEqual(draft.source_type, JournalEntry.SOURCE_AGENT_INVOICE)
        self.assertEqual(draft.lines[0].account.code, "5130")
        self.assertEqual(draft.total_credit, Decimal("750000.00"))

    def test_customer_invoice_issue_entry(self):
        draft = build_invoice_issue_entry(
            invoice_id="7",
            invoice_number="INV-2026-0007",
            amount=Decimal("100"),
            currency="TZS",
            exchange_rate=Decimal("1"),
            amount_in_base=Decimal("100"),
            debit_account=self.ar,
            credit_account=get_shipping_revenue_account(),
        )

        self.assertEqual(draft.source_type, JournalEntry.SOURCE_INVOICE)
        self.assertEqual(draft.lines[1].account.code, "4110")
