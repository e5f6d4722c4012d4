# accounting/tests/test_accounting_api.py

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.management import call_command
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.models.chart import ChartOfAccounts
from accounting.models.outbox import PendingJournalPosting
from accounting.services.account_resolver import FREIGHT_CHART_CODE, clear_active_chart_cache
from billing.models import Customer, Invoice
from billing.services.invoice_service import create_invoice
from permissions.context import context_for_user
from users.models import User


@override_settings(BASE_CURRENCY="TZS")
class AccountingApiTests(TestCase):
    """
    GUARANTEES:
    - trial balance reports the active chart and balances
    - bank accounts are created against a ledger code and can be recalculated
    - reconciliation and outbox retry are reachable over HTTP
    - ledger views require the accounting report capability
    """

    def setUp(self):
        clear_active_chart_cache()
        call_command("seed_logistics_chart", verbosity=0)

        self.manager = User.objects.create_user(email="m@example.com", password="x", role="manager")
        self.accountant = User.objects.create_user(
            email="acc@example.com", password="x", role="accountant"
        )
        self.employee = User.objects.create_user(email="e@example.com", password="x", role="employee")
        self.customer = Customer.objects.create(name="Mwanza Traders")

        self.client = APIClient()
        self.client.force_authenticate(user=self.accountant)

    def _invoice(self):
        return create_invoice(
            context=context_for_user(self.manager),
            direction=Invoice.DIRECTION_TO_CUSTOMER,
            amount=Decimal("40"),
            currency="USD",
            customer_id=self.customer.id,
        )

    def test_trial_balance_is_balanced(self):
        self._invoice()

        res = self.client.get("/api/accounting/trial-balance/")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["chart"]["code"], FREIGHT_CHART_CODE)
        self.assertTrue(res.data["is_balanced"])
        self.assertEqual(res.data["total_debit"], Decimal("100000.00"))

        rows = {row["code"]: row for row in res.data["accounts"]}
        self.assertEqual(rows["1210"]["balance"], Decimal("100000.00"))

    def test_trial_balance_rejects_bad_date(self):
        res = self.client.get("/api/accounting/trial-balance/", {"as_of_date": "yesterday"})
        self.assertEqual(res.status_code, 400)

    def test_trial_balance_without_active_chart(self):
        chart = ChartOfAccounts.objects.get(code=FREIGHT_CHART_CODE)
        chart.is_active = False
        chart.save()

        res = self.client.get("/api/accounting/trial-balance/")
        self.assertEqual(res.status_code, 400)

    def test_create_bank_account_and_recalculate(self):
        res = self.client.post(
            "/api/accounting/bank-accounts/",
            {
                "account_name": "NMB GBP",
                "currency": "GBP",
                "ledger_account_code": "1140",
                "opening_balance": "12.50",
            },
            format="json",
        )

        self.assertEqual(res.status_code, 201, res.data)
        self.assertEqual(res.data["ledger_account_code"], "1140")
        self.assertEqual(res.data["current_balance"], "12.50")

        recalculated = self.client.post(
            f"/api/accounting/bank-accounts/{res.data['id']}/recalculate/"
        )
        self.assertEqual(recalculated.status_code, 200, recalculated.data)
        self.assertEqual(recalculated.data["current_balance"], "12.50")

    def test_unknown_ledger_code_is_400(self):
        res = self.client.post(
            "/api/accounting/bank-accounts/",
            {"account_name": "Ghost", "currency": "USD", "ledger_account_code": "9999"},
            format="json",
        )
        self.assertEqual(res.status_code, 400)
        self.assertFalse(BankAccount.objects.exists())

    def test_recalculate_unknown_bank_is_404(self):
        res = self.client.post(f"/api/accounting/bank-accounts/{uuid.uuid4()}/recalculate/")
        self.assertEqual(res.status_code, 404)

    def test_employee_lists_banks_but_cannot_create(self):
        BankAccount.objects.create(
            account_name="CRDB USD",
            currency="USD",
            ledger_account=Account.objects.get(chart__code=FREIGHT_CHART_CODE, code="1130"),
        )
        self.client.force_authenticate(user=self.employee)

        listing = self.client.get("/api/accounting/bank-accounts/")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.data["count"], 1)

        res = self.client.post(
            "/api/accounting/bank-accounts/",
            {"account_name": "Nope", "currency": "USD"},
            format="json",
        )
        self.assertEqual(res.status_code, 403)

    def test_employee_cannot_read_journal(self):
        self.client.force_authenticate(user=self.employee)
        self.assertEqual(self.client.get("/api/accounting/journal-entries/").status_code, 403)
        self.assertEqual(self.client.get("/api/accounting/trial-balance/").status_code, 403)

    def test_journal_entries_list_lines(self):
        invoice = self._invoice()

        res = self.client.get("/api/accounting/journal-entries/")

        self.assertEqual(res.status_code, 200)
        [entry] = res.data["results"]
        self.assertEqual(entry["reference"], f"INVOICE:{invoice.id}")
        self.assertEqual(len(entry["lines"]), 2)

    def test_accounts_lists_active_chart(self):
        res = self.client.get("/api/accounting/accounts/")

        self.assertEqual(res.status_code, 200)
        codes = {row["code"] for row in res.data}
        self.assertTrue({"1210", "4110", "5130"} <= codes)

    def test_reconciliation_and_outbox_retry(self):
        chart = ChartOfAccounts.objects.get(code=FREIGHT_CHART_CODE)
        chart.is_active = False
        chart.save()
        self._invoice()
        chart.is_active = True
        chart.save()

        report = self.client.get("/api/accounting/reconciliation/")
        self.assertEqual(report.status_code, 200)
        self.assertEqual(len(report.data["outbox"]), 1)

        res = self.client.post("/api/accounting/outbox/retry/", {}, format="json")

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data[PendingJournalPosting.STATUS_POSTED], 1)
        self.assertFalse(
            PendingJournalPosting.objects.filter(status=PendingJournalPosting.STATUS_PENDING).exists()
        )

    def test_health_reports_chart_and_outbox(self):
        self.client.force_authenticate(user=None)

        res = self.client.get("/api/health/")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["chart"], FREIGHT_CHART_CODE)
        self.assertEqual(res.data["outbox_pending"], 0)

        chart = ChartOfAccounts.objects.get(code=FREIGHT_CHART_CODE)
        chart.is_active = False
        chart.save()
        self._invoice()

        res = self.client.get("/api/health/")
        self.assertEqual(res.data["status"], "degraded")
        self.assertIsNone(res.data["chart"])
        self.assertEqual(res.data["outbox_pending"], 1)
