# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

# ViewSets live in accounting/api/view.py (singular).
# Import directly to avoid circular imports through views/__init__.py.
from accounting.api.view import JournalEntryViewSet, LedgerEntryViewSet
from accounting.api.views.accounts import ActiveChartAccountsView
from accounting.api.views.bank_accounts import BankAccountListCreateView, RecalculateBankBalanceView
from accounting.api.views.reconciliation import OutboxRetryView, ReconciliationView
from accounting.api.views.trial_balance import TrialBalanceView

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")
router.register("ledger-entries", LedgerEntryViewSet, basename="ledger-entry")

urlpatterns = [
    path("", include(router.urls)),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("reconciliation/", ReconciliationView.as_view(), name="reconciliation"),
    # Master data
    path("accounts/", ActiveChartAccountsView.as_view(), name="accounts"),
    path("bank-accounts/", BankAccountListCreateView.as_view(), name="bank-accounts"),
    path(
        "bank-accounts/<uuid:bank_account_id>/recalculate/",
        RecalculateBankBalanceView.as_view(),
        name="bank-account-recalculate",
    ),
    # Posting actions
    path("outbox/retry/", OutboxRetryView.as_view(), name="outbox-retry"),
]
