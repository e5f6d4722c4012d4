# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.bank_account import BankAccount
from accounting.models.chart import ChartOfAccounts
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from accounting.models.outbox import PendingJournalPosting

# ============================================================
# CHART OF ACCOUNTS
# ============================================================


@admin.register(ChartOfAccounts)
class ChartOfAccountsAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "industry", "is_active", "updated_at")
    list_filter = ("industry", "is_active")
    search_fields = ("name", "code")
    readonly_fields = ("created_at", "updated_at")
    ordering = ("name",)


# ============================================================
# ACCOUNT
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "account_type", "currency", "chart", "is_active")
    list_filter = ("account_type", "is_active", "chart")
    search_fields = ("code", "name")
    ordering = ("chart", "code")
    readonly_fields = ("created_at", "updated_at")

    fieldsets = (
        ("Account Identity", {"fields": ("chart", "code", "name", "account_type", "currency")}),
        ("Status", {"fields": ("is_active",)}),
        ("System Fields", {"fields": ("created_at", "updated_at")}),
    )


# ============================================================
# BANK ACCOUNT
# ============================================================


@admin.register(BankAccount)
class BankAccountAdmin(admin.ModelAdmin):
    list_display = (
        "account_name",
        "bank_name",
        "currency",
        "ledger_account",
        "current_balance",
        "is_active",
    )
    list_filter = ("currency", "is_active")
    search_fields = ("account_name", "bank_name", "account_number")
    # balances move through settlements and recalculation only
    readonly_fields = ("current_balance", "created_at", "updated_at")


# ============================================================
# JOURNAL ENTRY (READ-ONLY)
# ============================================================


class LedgerEntryInline(admin.TabularInline):
    model = LedgerEntry
    extra = 0
    can_delete = False
    fields = ("account", "entry_type", "amount", "currency", "exchange_rate", "original_amount")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = ("id", "reference", "source_type", "description", "posted_at", "created_at")
    list_filter = ("source_type", "posted_at")
    search_fields = ("description", "reference")
    ordering = ("-posted_at",)
    inlines = [LedgerEntryInline]

    readonly_fields = (
        "reference",
        "source_type",
        "description",
        "posted_at",
        "created_by",
        "is_posted",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# LEDGER ENTRY (STRICTLY IMMUTABLE)
# ============================================================


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "journal_entry",
        "account",
        "entry_type",
        "amount",
        "currency",
        "original_amount",
        "created_at",
    )
    list_filter = ("entry_type", "currency", "account")
    search_fields = ("journal_entry__reference", "account__code")
    ordering = ("created_at",)

    readonly_fields = (
        "journal_entry",
        "account",
        "entry_type",
        "amount",
        "currency",
        "exchange_rate",
        "original_amount",
        "description",
        "created_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# JOURNAL OUTBOX
# ============================================================


@admin.register(PendingJournalPosting)
class PendingJournalPostingAdmin(admin.ModelAdmin):
    list_display = ("posting_kind", "source_id", "status", "attempts", "updated_at")
    list_filter = ("posting_kind", "status")
    search_fields = ("source_id", "last_error")
    readonly_fields = (
        "posting_kind",
        "source_id",
        "attempts",
        "last_error",
        "journal_entry",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False
