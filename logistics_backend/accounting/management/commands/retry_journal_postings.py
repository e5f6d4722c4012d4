# accounting/management/commands/retry_journal_postings.py

from django.core.management.base import BaseCommand

from accounting.models.bank_account import BankAccount
from accounting.services.bank_service import recalculate_bank_balance
from accounting.services.outbox_service import outstanding_postings, retry_pending_postings


class Command(BaseCommand):
    help = (
        "Retry journal postings queued in the outbox (missing accounts, posting "
        "switched off). Safe to run from cron."
    )

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None, help="Max rows to retry.")
        parser.add_argument(
            "--recalculate-banks",
            action="store_true",
            help="Rebuild bank balances from the ledger once the outbox is empty.",
        )

    def handle(self, *args, **options):
        counts = retry_pending_postings(limit=options["limit"])

        self.stdout.write(
            f"posted={counts['posted']} pending={counts['pending']} failed={counts['failed']}"
        )

        if not options["recalculate_banks"]:
            return

        if outstanding_postings().filter(status="pending").exists():
            self.stdout.write(
                self.style.WARNING("Outbox still has pending rows; bank balances left alone.")
            )
            return

        for bank in BankAccount.objects.filter(is_active=True, ledger_account__isnull=False):
            balance = recalculate_bank_balance(bank)
            self.stdout.write(f"{bank.account_name}: {balance} {bank.currency}")

        self.stdout.write(self.style.SUCCESS("Bank balances recalculated."))
