# accounting/management/commands/seed_logistics_chart.py

from django.core.management.base import BaseCommand
from django.db import transaction

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.services.account_resolver import FREIGHT_CHART_CODE

# (code, name, type, currency pin)
FREIGHT_ACCOUNTS = [
    # Assets
    ("1110", "Petty Cash", Account.ASSET, ""),
    ("1120", "Bank Account - TZS", Account.ASSET, "TZS"),
    ("1130", "Bank Account - USD", Account.ASSET, "USD"),
    ("1140", "Bank Account - GBP", Account.ASSET, "GBP"),
    ("1210", "Trade Receivables", Account.ASSET, ""),
    ("1300", "Prepaid Expenses", Account.ASSET, ""),
    # Liabilities
    ("2110", "Trade Payables", Account.LIABILITY, ""),
    ("2120", "Agent Payables", Account.LIABILITY, ""),
    ("2210", "VAT Payable", Account.LIABILITY, ""),
    # Equity
    ("3100", "Share Capital", Account.EQUITY, ""),
    ("3200", "Retained Earnings", Account.EQUITY, ""),
    # Revenue
    ("4110", "Air Freight Revenue", Account.REVENUE, ""),
    ("4120", "Handling Fee Revenue", Account.REVENUE, ""),
    ("4210", "Foreign Exchange Gain", Account.REVENUE, ""),
    # Cost of services
    ("5100", "Agent Costs", Account.EXPENSE, ""),
    ("5110", "Europe Agent Costs", Account.EXPENSE, ""),
    ("5120", "Dubai Agent Costs", Account.EXPENSE, ""),
    ("5130", "China Agent Costs", Account.EXPENSE, ""),
    ("5140", "India Agent Costs", Account.EXPENSE, ""),
    ("5150", "USA Agent Costs", Account.EXPENSE, ""),
    ("5160", "UK Agent Costs", Account.EXPENSE, ""),
    ("5200", "Freight Costs", Account.EXPENSE, ""),
    ("5300", "Customs and Duties", Account.EXPENSE, ""),
    # Operating
    ("6110", "Employee Salaries", Account.EXPENSE, ""),
    ("6210", "Office Rent", Account.EXPENSE, ""),
]


def _activate_only_this_chart(chart: ChartOfAccounts) -> None:
    if not chart.is_active:
        chart.is_active = True
        # ChartOfAccounts.save deactivates the others and clears the resolver cache
        chart.save(update_fields=["is_active", "updated_at"])


class Command(BaseCommand):
    help = "Seed the freight forwarding Chart of Accounts (idempotent) and make it active"

    @transaction.atomic
    def handle(self, *args, **options):
        verbosity = options.get("verbosity", 1)
        if verbosity:
            self.stdout.write("Seeding Freight Forwarding Chart of Accounts...")

        chart, _ = ChartOfAccounts.objects.get_or_create(
            code=FREIGHT_CHART_CODE,
            defaults={
                "name": "Freight Forwarding",
                "industry": "Logistics",
                "is_active": True,
            },
        )
        _activate_only_this_chart(chart)

        created_count = 0
        updated_count = 0

        for code, name, account_type, currency in FREIGHT_ACCOUNTS:
            acc, acc_created = Account.objects.get_or_create(
                chart=chart,
                code=code,
                defaults={
                    "name": name,
                    "account_type": account_type,
                    "currency": currency,
                    "is_active": True,
                },
            )

            if acc_created:
                created_count += 1
                continue

            changed = []
            for field, value in (
                ("name", name),
                ("account_type", account_type),
                ("currency", currency),
                ("is_active", True),
            ):
                if getattr(acc, field) != value:
                    setattr(acc, field, value)
                    changed.append(field)

            if changed:
                acc.save(update_fields=changed + ["updated_at"])
                updated_count += 1

        if verbosity:
            self.stdout.write(
                self.style.SUCCESS(
                    f"Freight chart seeded ({created_count} new accounts, {updated_count} updated)."
                )
            )
