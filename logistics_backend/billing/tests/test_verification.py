# billing/tests/test_verification.py

from __future__ import annotations

from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase, override_settings

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.services.account_resolver import FREIGHT_CHART_CODE, clear_active_chart_cache
from billing.models import Invoice, Payment
from billing.services.exceptions import InvoiceStateError, PermissionDeniedError
from billing.services.invoice_service import create_invoice
from billing.services.payment_service import record_invoice_payment, verify_payment
from permissions.context import CapabilityError, context_for_user
from users.models import User


@override_settings(BASE_CURRENCY="TZS")
class AgentPaymentVerificationTests(TestCase):
    """
    GUARANTEES:
    - an agent paying an invoice billed to them submits it as pending; nothing moves
    - approval applies the settlement exactly like a staff payment
    - rejection only flags the legs; verification happens once
    - agents cannot pay other agents' invoices
    """

    def setUp(self):
        clear_active_chart_cache()
        call_command("seed_logistics_chart", verbosity=0)

        manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.accountant = User.objects.create_user(
            email="acc@example.com", password="x", role="accountant"
        )
        self.agent = User.objects.create_user(
            email="agent@example.com", password="x", role="agent", region="dubai"
        )
        self.other_agent = User.objects.create_user(
            email="other@example.com", password="x", role="agent", region="uk"
        )
        self.bank = BankAccount.objects.create(
            account_name="CRDB USD",
            currency="USD",
            ledger_account=Account.objects.get(chart__code=FREIGHT_CHART_CODE, code="1130"),
        )
        self.invoice = create_invoice(
            context=context_for_user(manager),
            direction=Invoice.DIRECTION_TO_AGENT,
            amount=Decimal("200"),
            currency="USD",
            agent_id=self.agent.id,
        )

    def _submit(self, agent=None):
        return record_invoice_payment(
            context=context_for_user(agent or self.agent),
            invoice_id=self.invoice.id,
            amount=Decimal("200"),
            payment_currency="USD",
            payment_method=Payment.METHOD_BANK_TRANSFER,
            bank_account_id=self.bank.id,
        )

    def test_agent_submission_waits_for_verification(self):
        result = self._submit()

        self.assertEqual(result["verification_status"], Payment.VERIFICATION_PENDING)
        self.assertEqual(result["journal_status"], "awaiting_verification")
        self.assertEqual(result["account_deltas"], [])

        self.invoice.refresh_from_db()
        self.bank.refresh_from_db()
        self.assertEqual(self.invoice.amount_paid, Decimal("0.00"))
        self.assertEqual(self.bank.current_balance, Decimal("0.00"))
        self.assertIsNone(Payment.objects.get().journal_entry)

    def test_approval_applies_settlement(self):
        submitted = self._submit()

        result = verify_payment(
            context=context_for_user(self.accountant),
            payment_id=submitted["payment_ids"][0],
            status=Payment.VERIFICATION_VERIFIED,
        )

        self.assertEqual(result["status"], Invoice.STATUS_PAID)
        self.assertEqual(result["journal_status"], "posted")
        self.bank.refresh_from_db()
        self.assertEqual(self.bank.current_balance, Decimal("200.00"))

        payment = Payment.objects.get()
        self.assertEqual(payment.verified_by, self.accountant)
        self.assertIsNotNone(payment.journal_entry)

    def test_rejection_only_flags(self):
        submitted = self._submit()

        result = verify_payment(
            context=context_for_user(self.accountant),
            payment_id=submitted["payment_ids"][0],
            status=Payment.VERIFICATION_REJECTED,
        )

        self.assertEqual(result["journal_status"], "not_posted")
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, Invoice.STATUS_PENDING)
        self.assertEqual(Payment.objects.get().verification_status, Payment.VERIFICATION_REJECTED)

        with self.assertRaises(InvoiceStateError):
            verify_payment(
                context=context_for_user(self.accountant),
                payment_id=submitted["payment_ids"][0],
                status=Payment.VERIFICATION_VERIFIED,
            )

    def test_agent_cannot_verify(self):
        submitted = self._submit()

        with self.assertRaises(CapabilityError):
            verify_payment(
                context=context_for_user(self.agent),
                payment_id=submitted["payment_ids"][0],
                status=Payment.VERIFICATION_VERIFIED,
            )

    def test_agent_cannot_pay_someone_elses_invoice(self):
        with self.assertRaises(PermissionDeniedError):
            self._submit(agent=self.other_agent)
        self.assertFalse(Payment.objects.exists())
