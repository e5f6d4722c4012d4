# permissions/roles.py

from __future__ import annotations

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
# Staff roles run the back office; agents and customers use their portals.
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_ACCOUNTANT = "accountant"
ROLE_EMPLOYEE = "employee"
ROLE_AGENT = "agent"
ROLE_CUSTOMER = "customer"

ROLE_CHOICES = [
    (ROLE_ADMIN, "Admin"),
    (ROLE_MANAGER, "Manager"),
    (ROLE_ACCOUNTANT, "Accountant"),
    (ROLE_EMPLOYEE, "Employee"),
    (ROLE_AGENT, "Agent"),
    (ROLE_CUSTOMER, "Customer"),
]

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_ACCOUNTANT,
    ROLE_EMPLOYEE,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views and services protect capabilities, not raw roles.
CAP_INVOICES_VIEW = "invoices.view"
CAP_INVOICES_MANAGE = "invoices.manage"            # create, status corrections
CAP_INVOICES_RECORD_PAYMENT = "invoices.record_payment"

CAP_PAYMENTS_SUBMIT = "payments.submit"            # agent-submitted, awaits verification
CAP_PAYMENTS_VERIFY = "payments.verify"

CAP_RATES_MANAGE = "rates.manage"                  # exchange + shop-for-me rates

CAP_BANK_ACCOUNTS_MANAGE = "bank_accounts.manage"
CAP_REPORTS_VIEW_ACCOUNTING = "reports.view_accounting"
CAP_ACCOUNTING_POST = "accounting.post"            # outbox retry, manual postings

ALL_CAPABILITIES = frozenset(
    {
        CAP_INVOICES_VIEW,
        CAP_INVOICES_MANAGE,
        CAP_INVOICES_RECORD_PAYMENT,
        CAP_PAYMENTS_SUBMIT,
        CAP_PAYMENTS_VERIFY,
        CAP_RATES_MANAGE,
        CAP_BANK_ACCOUNTS_MANAGE,
        CAP_REPORTS_VIEW_ACCOUNTING,
        CAP_ACCOUNTING_POST,
    }
)


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    ROLE_ADMIN: ALL_CAPABILITIES,
    ROLE_MANAGER: frozenset(
        {
            CAP_INVOICES_VIEW,
            CAP_INVOICES_MANAGE,
            CAP_INVOICES_RECORD_PAYMENT,
            CAP_PAYMENTS_VERIFY,
            CAP_RATES_MANAGE,
            CAP_REPORTS_VIEW_ACCOUNTING,
        }
    ),
    ROLE_ACCOUNTANT: frozenset(
        {
            CAP_INVOICES_VIEW,
            CAP_INVOICES_RECORD_PAYMENT,
            CAP_PAYMENTS_VERIFY,
            CAP_BANK_ACCOUNTS_MANAGE,
            CAP_REPORTS_VIEW_ACCOUNTING,
            CAP_ACCOUNTING_POST,
        }
    ),
    ROLE_EMPLOYEE: frozenset({CAP_INVOICES_VIEW}),
    # agents only see and pay their own invoices (scoped in billing services)
    ROLE_AGENT: frozenset({CAP_INVOICES_VIEW, CAP_PAYMENTS_SUBMIT}),
    ROLE_CUSTOMER: frozenset(),
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> str | None:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> frozenset[str]:
    if not user or not getattr(user, "is_authenticated", False):
        return frozenset()
    if getattr(user, "is_superuser", False):
        return ALL_CAPABILITIES
    return ROLE_CAPABILITIES.get(get_user_role(user), frozenset())


# =========================================================
# Base Role Permission
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Subclasses define `allowed_roles`.
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        required_capability = CAP_PAYMENTS_VERIFY

    Views with per-method needs may set `required_capabilities` to a
    {"GET": ..., "POST": ...} mapping instead.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        per_method = getattr(view, "required_capabilities", None) or {}
        required = per_method.get(request.method) or getattr(
            view, "required_capability", None
        )
        if not required:
            # deny-by-default to avoid accidental open endpoints
            return False

        return required in effective_capabilities_for(user)


# =========================================================
# Role Permissions
# =========================================================
class IsStaff(BaseRolePermission):
    allowed_roles = STAFF_ROLES
