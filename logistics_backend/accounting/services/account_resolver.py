# PATH: accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which chart account should be used for this purpose?"

Semantic keys (CASH_TZS, AR, AGENT_PAYABLES, AGENT_COST_CHINA, ...) map to
account codes per chart key. The freight chart is the default mapping.

Rules:
- deterministic
- hard-fail on missing setup (AccountResolutionError), never guess
- exactly ONE active chart; none or several is a setup error
"""

from __future__ import annotations

import logging
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import MultipleObjectsReturned, ObjectDoesNotExist

from accounting.models.account import Account
from accounting.models.chart import ChartOfAccounts
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)

# ------------------------------------------------------------
# SEMANTIC CODES
# ------------------------------------------------------------

FREIGHT_CHART_CODE = "freight_standard"

DEFAULT_CODES = {
    # Assets
    "CASH_TZS": "1120",
    "CASH_USD": "1130",
    "CASH_GBP": "1140",
    "AR": "1210",
    # Liabilities
    "ACCOUNTS_PAYABLE": "2110",
    "AGENT_PAYABLES": "2120",
    # Revenue
    "SHIPPING_REVENUE": "4110",
    "HANDLING_FEE_REVENUE": "4120",
    # Agent cost of sales by origin region
    "AGENT_COST": "5100",
    "AGENT_COST_EUROPE": "5110",
    "AGENT_COST_DUBAI": "5120",
    "AGENT_COST_CHINA": "5130",
    "AGENT_COST_INDIA": "5140",
    "AGENT_COST_USA": "5150",
    "AGENT_COST_UK": "5160",
}

CHART_CODE_MAP = {
    FREIGHT_CHART_CODE: DEFAULT_CODES,
}

# Currencies with a dedicated cash account. Others fall back to base cash.
CASH_CURRENCIES = ("TZS", "USD", "GBP")


# ------------------------------------------------------------
# ACTIVE CHART
# ------------------------------------------------------------


@lru_cache(maxsize=1)
def get_active_chart() -> ChartOfAccounts:
    """
    Cached resolver for the single active chart.

    Call clear_active_chart_cache() after toggling charts (ChartOfAccounts.save
    does it automatically).
    """
    try:
        return ChartOfAccounts.objects.get(is_active=True)
    except ObjectDoesNotExist as exc:
        raise AccountResolutionError(
            "No active Chart of Accounts. Run `manage.py seed_logistics_chart`."
        ) from exc
    except MultipleObjectsReturned as exc:
        raise AccountResolutionError(
            "Multiple active Charts of Accounts found. Only one active chart is allowed."
        ) from exc


def clear_active_chart_cache() -> None:
    get_active_chart.cache_clear()


# ------------------------------------------------------------
# INTERNAL RESOLUTION HELPERS
# ------------------------------------------------------------


def _codes_for_chart(chart: ChartOfAccounts) -> dict:
    return CHART_CODE_MAP.get((chart.code or "").strip(), DEFAULT_CODES)


def _resolve_code(*, semantic_key: str, chart: ChartOfAccounts) -> str:
    semantic_key = (semantic_key or "").strip().upper()
    if not semantic_key:
        raise AccountResolutionError("semantic_key is required")

    code = (_codes_for_chart(chart).get(semantic_key) or "").strip()
    if not code:
        raise AccountResolutionError(
            f"Missing mapping for semantic key '{semantic_key}' in chart '{chart.name}'."
        )
    return code


def _get_account_by_code(*, chart: ChartOfAccounts, code: str) -> Account:
    code = (code or "").strip()
    if not code:
        raise AccountResolutionError("Account code is required")

    try:
        return Account.objects.get(chart=chart, code=code, is_active=True)
    except ObjectDoesNotExist as exc:
        logger.error(
            "Account resolution failed: account not found",
            extra={"account_code": code, "chart": chart.code},
        )
        raise AccountResolutionError(
            f"Account with code={code} not found (or inactive) in chart '{chart.name}'. "
            "Run the chart seed command or add the account manually."
        ) from exc


def resolve_account(semantic_key: str) -> Account:
    chart = get_active_chart()
    return _get_account_by_code(
        chart=chart, code=_resolve_code(semantic_key=semantic_key, chart=chart)
    )


def get_account_by_code(code: str) -> Account:
    return _get_account_by_code(chart=get_active_chart(), code=code)


# ------------------------------------------------------------
# PUBLIC RESOLVERS
# ------------------------------------------------------------


def get_cash_account(currency: str | None = None) -> Account:
    """Cash account for a currency; unknown currencies use base-currency cash."""
    base = settings.BASE_CURRENCY
    cur = (currency or base).strip().upper()
    if cur not in CASH_CURRENCIES:
        cur = base if base in CASH_CURRENCIES else "TZS"
    return resolve_account(f"CASH_{cur}")


def get_accounts_receivable_account() -> Account:
    return resolve_account("AR")


def get_accounts_payable_account() -> Account:
    return resolve_account("ACCOUNTS_PAYABLE")


def get_agent_payables_account() -> Account:
    return resolve_account("AGENT_PAYABLES")


def get_shipping_revenue_account() -> Account:
    return resolve_account("SHIPPING_REVENUE")


def get_handling_fee_revenue_account() -> Account:
    return resolve_account("HANDLING_FEE_REVENUE")


def get_agent_cost_account(region: str | None = None) -> Account:
    """Agent cost of sales for an origin region; unknown regions use the generic account."""
    key = f"AGENT_COST_{(region or '').strip().upper()}" if region else "AGENT_COST"
    chart = get_active_chart()
    if key not in _codes_for_chart(chart):
        key = "AGENT_COST"
    return resolve_account(key)


def get_bank_ledger_account(bank_account) -> Account:
    """Ledger account behind a BankAccount; falls back to currency cash when unlinked."""
    if bank_account is None:
        return get_cash_account()

    ledger = getattr(bank_account, "ledger_account", None)
    if ledger is not None:
        if not ledger.is_active:
            raise AccountResolutionError(
                f"Ledger account {ledger.code} for bank '{bank_account}' is inactive"
            )
        return ledger

    return get_cash_account(bank_account.currency)
