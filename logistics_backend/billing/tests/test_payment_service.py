# billing/tests/test_payment_service.py

from __future__ import annotations

import threading
from decimal import Decimal
from unittest import mock, skipUnless

from django.core.management import call_command
from django.db import connection, connections
from django.test import TestCase, TransactionTestCase, override_settings
from django.test.utils import CaptureQueriesContext

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.models.outbox import PendingJournalPosting
from accounting.services.account_resolver import FREIGHT_CHART_CODE, clear_active_chart_cache
from accounting.services.exceptions import JournalImbalanceError
from accounting.services.outbox_service import retry_pending_postings
from billing.models import Customer, Invoice, Payment
from billing.services.exceptions import (
    InvoiceStateError,
    PaymentValidationError,
    PermissionDeniedError,
)
from billing.services.invoice_service import create_invoice, update_invoice_status
from billing.services.payment_service import record_invoice_payment
from permissions.context import context_for_user
from users.models import User


def _seed_chart():
    clear_active_chart_cache()
    call_command("seed_logistics_chart", verbosity=0)


def _account(code):
    return Account.objects.get(chart__code=FREIGHT_CHART_CODE, code=code)


def _assert_balanced(test, entry):
    lines = LedgerEntry.objects.filter(journal_entry=entry)
    debits = sum(l.amount for l in lines if l.entry_type == LedgerEntry.DEBIT)
    credits = sum(l.amount for l in lines if l.entry_type == LedgerEntry.CREDIT)
    test.assertEqual(debits, credits)
    return debits


@override_settings(BASE_CURRENCY="TZS")
class RecordInvoicePaymentTests(TestCase):
    """
    Settlement service (allocator + bank balances + journal in one transaction).

    GUARANTEES:
    - a full payment marks the invoice paid and moves the bank balance
    - a split settlement writes one payment and one balanced entry per leg
    - validation failures write nothing
    - an unbalanced journal rolls the whole settlement back
    - a missing chart queues the journal legs and the settlement still commits
    - a payment currency with no rate settles at 1:1, flagged and logged
    - a non-numeric amount is a validation error
    """

    def setUp(self):
        _seed_chart()
        self.manager = User.objects.create_user(
            email="manager@example.com", password="x", role="manager"
        )
        self.ctx = context_for_user(self.manager)
        self.customer = Customer.objects.create(name="Amina Traders")

        self.bank_a = BankAccount.objects.create(
            account_name="CRDB USD", currency="USD", ledger_account=_account("1130")
        )
        self.bank_b = BankAccount.objects.create(
            account_name="Petty cash USD", currency="USD", ledger_account=_account("1110")
        )
        self.bank_tzs = BankAccount.objects.create(
            account_name="NMB TZS", currency="TZS", ledger_account=_account("1120")
        )

        self.invoice = self._invoice("150")

    def _invoice(self, amount, currency="USD"):
        return create_invoice(
            context=self.ctx,
            direction=Invoice.DIRECTION_TO_CUSTOMER,
            amount=Decimal(amount),
            currency=currency,
            customer_id=self.customer.id,
        )

    def _pay(self, amount, **kwargs):
        kwargs.setdefault("payment_currency", "USD")
        kwargs.setdefault("payment_method", Payment.METHOD_BANK_TRANSFER)
        return record_invoice_payment(
            context=self.ctx, invoice_id=self.invoice.id, amount=Decimal(amount), **kwargs
        )

    def _balance(self, bank):
        bank.refresh_from_db()
        return bank.current_balance

    def test_full_payment_settles_invoice(self):
        result = self._pay("150", bank_account_id=self.bank_a.id)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_PAID)
        self.assertIsNotNone(self.invoice.paid_at)
        self.assertEqual(self.invoice.amount_paid, Decimal("150.00"))
        self.assertTrue(result["is_fully_paid"])
        self.assertEqual(result["journal_status"], "posted")
        self.assertEqual(self._balance(self.bank_a), Decimal("150.00"))

        payment = Payment.objects.get()
        self.assertIsNotNone(payment.journal_entry)
        self.assertEqual(_assert_balanced(self, payment.journal_entry), Decimal("375000.00"))

    def test_split_payment_writes_one_entry_per_leg(self):
        result = self._pay(
            "150",
            splits=[
                {"bank_account_id": self.bank_a.id, "amount": Decimal("100")},
                {"bank_account_id": self.bank_b.id, "amount": Decimal("50")},
            ],
        )

        payments = list(Payment.objects.filter(invoice=self.invoice))
        self.assertEqual(len(payments), 2)
        self.assertEqual(len({p.settlement_id for p in payments}), 1)
        self.assertEqual(len({p.journal_entry_id for p in payments}), 2)
        for p in payments:
            self.assertEqual(_assert_balanced(self, p.journal_entry), p.amount_in_base)

        self.assertEqual(self._balance(self.bank_a), Decimal("100.00"))
        self.assertEqual(self._balance(self.bank_b), Decimal("50.00"))
        self.assertEqual(
            sorted(d["delta"] for d in result["account_deltas"]),
            [Decimal("50.00"), Decimal("100.00")],
        )
        self.assertEqual(result["status"], Invoice.STATUS_PAID)

    def test_partial_payments_accumulate(self):
        self._pay("60", bank_account_id=self.bank_a.id)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_PENDING)
        self.assertEqual(self.invoice.balance_due, Decimal("90.00"))

        result = self._pay("90", bank_account_id=self.bank_a.id)

        self.assertTrue(result["is_fully_paid"])
        self.assertEqual(self._balance(self.bank_a), Decimal("150.00"))

    def test_payment_in_another_currency(self):
        result = self._pay(
            "375000", payment_currency="TZS", bank_account_id=self.bank_tzs.id
        )

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("150.00"))
        self.assertEqual(result["status"], Invoice.STATUS_PAID)
        self.assertEqual(self._balance(self.bank_tzs), Decimal("375000.00"))

    def test_split_mismatch_writes_nothing(self):
        with self.assertRaises(PaymentValidationError):
            self._pay(
                "150",
                splits=[
                    {"bank_account_id": self.bank_a.id, "amount": Decimal("100")},
                    {"bank_account_id": self.bank_b.id, "amount": Decimal("40")},
                ],
            )

        self.assertFalse(Payment.objects.exists())
        self.assertEqual(self._balance(self.bank_a), Decimal("0.00"))

    def test_inactive_bank_is_rejected(self):
        self.bank_b.is_active = False
        self.bank_b.save()

        with self.assertRaises(PaymentValidationError):
            self._pay("10", bank_account_id=self.bank_b.id)

    def test_zero_amount_is_rejected(self):
        with self.assertRaises(PaymentValidationError):
            self._pay("0", bank_account_id=self.bank_a.id)

    def test_cancelled_invoice_cannot_be_paid(self):
        update_invoice_status(
            context=self.ctx, invoice_id=self.invoice.id, status=Invoice.STATUS_CANCELLED
        )

        with self.assertRaises(InvoiceStateError):
            self._pay("150", bank_account_id=self.bank_a.id)

    def test_paid_invoice_cannot_be_paid_again(self):
        self._pay("150", bank_account_id=self.bank_a.id)

        with self.assertRaises(InvoiceStateError):
            self._pay("1", bank_account_id=self.bank_a.id)

    def test_employee_cannot_record_payments(self):
        employee = User.objects.create_user(email="emp@example.com", password="x", role="employee")

        with self.assertRaises(PermissionDeniedError):
            record_invoice_payment(
                context=context_for_user(employee),
                invoice_id=self.invoice.id,
                amount=Decimal("10"),
                payment_currency="USD",
                payment_method=Payment.METHOD_CASH,
            )

    def test_unbalanced_journal_rolls_back_everything(self):
        with mock.patch(
            "accounting.services.journal_poster.assert_balanced",
            side_effect=JournalImbalanceError("debits != credits"),
        ):
            with self.assertRaises(JournalImbalanceError):
                self._pay("150", bank_account_id=self.bank_a.id)

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("0.00"))
        self.assertEqual(self.invoice.status, Invoice.STATUS_PENDING)
        self.assertFalse(Payment.objects.exists())
        self.assertEqual(self._balance(self.bank_a), Decimal("0.00"))
        self.assertFalse(PendingJournalPosting.objects.exists())

    def test_missing_chart_queues_journal_and_commits(self):
        chart = ChartOfAccounts.objects.get(code=FREIGHT_CHART_CODE)
        chart.is_active = False
        chart.save()

        with self.assertLogs("billing", level="WARNING"):
            result = self._pay(
                "150",
                splits=[
                    {"bank_account_id": self.bank_a.id, "amount": Decimal("100")},
                    {"bank_account_id": self.bank_b.id, "amount": Decimal("50")},
                ],
            )

        self.assertEqual(result["journal_status"], "queued")
        self.assertEqual(result["status"], Invoice.STATUS_PAID)
        self.assertEqual(self._balance(self.bank_a), Decimal("100.00"))
        self.assertFalse(Payment.objects.filter(journal_entry__isnull=False).exists())
        self.assertEqual(
            PendingJournalPosting.objects.filter(
                posting_kind=PendingJournalPosting.KIND_SETTLEMENT_LEG,
                status=PendingJournalPosting.STATUS_PENDING,
            ).count(),
            2,
        )

        chart.is_active = True
        chart.save()
        counts = retry_pending_postings()

        self.assertEqual(counts["posted"], 2)
        for p in Payment.objects.all():
            self.assertIsNotNone(p.journal_entry_id)
            _assert_balanced(self, p.journal_entry)

    @override_settings(ACCOUNTING_POSTING_ENABLED=False)
    def test_disabled_posting_queues_journal(self):
        result = self._pay("150", bank_account_id=self.bank_a.id)

        self.assertEqual(result["journal_status"], "queued")
        self.assertFalse(
            JournalEntry.objects.filter(source_type=JournalEntry.SOURCE_PAYMENT).exists()
        )
        self.assertTrue(
            PendingJournalPosting.objects.filter(
                posting_kind=PendingJournalPosting.KIND_SETTLEMENT_LEG
            ).exists()
        )

    def test_unknown_payment_currency_settles_at_one_to_one(self):
        self.invoice = self._invoice("150", currency="TZS")

        with self.assertLogs("currency", level="WARNING") as logs:
            result = self._pay("10", payment_currency="XYZ", bank_account_id=self.bank_tzs.id)

        self.assertTrue(any(getattr(r, "currency", None) == "XYZ" for r in logs.records))
        self.assertTrue(result["rate_degraded"])
        self.assertEqual(result["journal_status"], "posted")

        payment = Payment.objects.get()
        self.assertTrue(payment.rate_degraded)
        self.assertEqual(payment.exchange_rate, Decimal("1"))
        self.assertEqual(payment.amount_in_base, Decimal("10.00"))
        self.assertEqual(payment.amount_applied, Decimal("10.00"))

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("10.00"))
        self.assertEqual(self.invoice.status, Invoice.STATUS_PENDING)
        self.assertEqual(self._balance(self.bank_tzs), Decimal("10.00"))

    def test_non_numeric_amount_is_a_validation_error(self):
        with self.assertRaises(PaymentValidationError):
            record_invoice_payment(
                context=self.ctx,
                invoice_id=self.invoice.id,
                amount="ten",
                payment_currency="USD",
                payment_method=Payment.METHOD_BANK_TRANSFER,
                bank_account_id=self.bank_a.id,
            )
        self.assertFalse(Payment.objects.exists())


@override_settings(BASE_CURRENCY="TZS")
class AgentInvoicePaymentTests(TestCase):
    """
    GUARANTEES:
    - paying an invoice raised by an agent takes money out of the bank
    - the entry debits agent payables and credits the bank ledger account
    """

    def setUp(self):
        _seed_chart()
        manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.ctx = context_for_user(manager)
        self.agent = User.objects.create_user(
            email="agent@example.com", password="x", role="agent", region="china"
        )
        self.bank = BankAccount.objects.create(
            account_name="CRDB USD",
            currency="USD",
            ledger_account=_account("1130"),
            opening_balance=Decimal("500"),
        )

    def test_agent_invoice_payment_is_outgoing(self):
        invoice = create_invoice(
            context=self.ctx,
            direction=Invoice.DIRECTION_FROM_AGENT,
            amount=Decimal("100"),
            currency="USD",
            agent_id=self.agent.id,
        )
        self.assertEqual(invoice.origin_region, "china")
        issue_debit = LedgerEntry.objects.get(
            journal_entry=invoice.journal_entry, entry_type=LedgerEntry.DEBIT
        )
        self.assertEqual(issue_debit.account.code, "5130")

        result = record_invoice_payment(
            context=self.ctx,
            invoice_id=invoice.id,
            amount=Decimal("100"),
            payment_currency="USD",
            payment_method=Payment.METHOD_BANK_TRANSFER,
            bank_account_id=self.bank.id,
        )

        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("400.00"))
        self.assertEqual(result["account_deltas"][0]["delta"], Decimal("-100.00"))

        entry = Payment.objects.get().journal_entry
        debit = LedgerEntry.objects.get(journal_entry=entry, entry_type=LedgerEntry.DEBIT)
        credit = LedgerEntry.objects.get(journal_entry=entry, entry_type=LedgerEntry.CREDIT)
        self.assertEqual(debit.account.code, "2120")
        self.assertEqual(credit.account.code, "1130")
        self.assertEqual(entry.source_type, JournalEntry.SOURCE_AGENT_PAYMENT)


@override_settings(BASE_CURRENCY="TZS")
class SettlementLockingTests(TestCase):
    """
    GUARANTEES:
    - the invoice row is locked before any payment row is written
    - on backends with row locks the invoice SELECT carries FOR UPDATE
    """

    def setUp(self):
        _seed_chart()
        manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.ctx = context_for_user(manager)
        customer = Customer.objects.create(name="Kariakoo Imports")
        self.bank = BankAccount.objects.create(
            account_name="CRDB USD", currency="USD", ledger_account=_account("1130")
        )
        self.invoice = create_invoice(
            context=self.ctx,
            direction=Invoice.DIRECTION_TO_CUSTOMER,
            amount=Decimal("150"),
            currency="USD",
            customer_id=customer.id,
        )

    def _pay(self, amount):
        return record_invoice_payment(
            context=self.ctx,
            invoice_id=self.invoice.id,
            amount=Decimal(amount),
            payment_currency="USD",
            payment_method=Payment.METHOD_BANK_TRANSFER,
            bank_account_id=self.bank.id,
        )

    def test_invoice_is_locked_before_payments_are_written(self):
        calls = []
        original_lock = Invoice.objects.select_for_update
        original_create = Payment.objects.create

        def lock(*args, **kwargs):
            calls.append("lock")
            return original_lock(*args, **kwargs)

        def create(*args, **kwargs):
            calls.append("create")
            return original_create(*args, **kwargs)

        with mock.patch.object(Invoice.objects, "select_for_update", side_effect=lock), \
                mock.patch.object(Payment.objects, "create", side_effect=create):
            self._pay("50")

        self.assertEqual(calls[0], "lock")
        self.assertIn("create", calls)

    @skipUnless(connection.features.has_select_for_update, "backend has no row locks")
    def test_invoice_select_is_for_update(self):
        with CaptureQueriesContext(connection) as ctx:
            self._pay("50")

        invoice_table = Invoice._meta.db_table
        payment_table = Payment._meta.db_table
        sql = [q["sql"] for q in ctx.captured_queries]

        lock_at = next(
            i for i, s in enumerate(sql)
            if s.startswith("SELECT") and invoice_table in s and "FOR UPDATE" in s
        )
        insert_at = next(
            i for i, s in enumerate(sql) if s.startswith("INSERT") and payment_table in s
        )
        self.assertLess(lock_at, insert_at)


@skipUnless(connection.features.has_select_for_update, "backend has no row locks")
@override_settings(BASE_CURRENCY="TZS")
class ConcurrentSettlementTests(TransactionTestCase):
    """
    GUARANTEES:
    - two settlements racing on one invoice both land (no lost update)
    - the shared bank balance reflects both legs
    """

    def setUp(self):
        _seed_chart()
        manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.ctx = context_for_user(manager)
        customer = Customer.objects.create(name="Kariakoo Imports")
        self.bank = BankAccount.objects.create(
            account_name="CRDB USD", currency="USD", ledger_account=_account("1130")
        )
        self.invoice = create_invoice(
            context=self.ctx,
            direction=Invoice.DIRECTION_TO_CUSTOMER,
            amount=Decimal("150"),
            currency="USD",
            customer_id=customer.id,
        )

    def tearDown(self):
        clear_active_chart_cache()

    def test_parallel_payments_accumulate(self):
        barrier = threading.Barrier(2)
        errors = []

        def pay():
            try:
                barrier.wait()
                record_invoice_payment(
                    context=self.ctx,
                    invoice_id=self.invoice.id,
                    amount=Decimal("50"),
                    payment_currency="USD",
                    payment_method=Payment.METHOD_BANK_TRANSFER,
                    bank_account_id=self.bank.id,
                )
            except Exception as exc:  # surfaced through `errors` below
                errors.append(exc)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=pay) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.invoice.refresh_from_db()
        self.bank.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("100.00"))
        self.assertEqual(self.bank.current_balance, Decimal("100.00"))
        self.assertEqual(Payment.objects.filter(invoice=self.invoice).count(), 2)
