# PATH: accounting/api/view.py

"""
PATH: accounting/api/view.py

ACCOUNTING API VIEWSETS (READ-ONLY / AUDIT SAFE)

- Journal entries carry their ledger lines inline
- Gated by the reports.view_accounting capability
- Filtering via django-filter:
    /api/accounting/journal-entries/?source_type=PAYMENT
    /api/accounting/journal-entries/?reference=PAYMENT:<uuid>
    /api/accounting/ledger-entries/?journal_entry=30&account=28
- Ordering via ?ordering=created_at or ?ordering=-created_at
"""

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers import JournalEntrySerializer, LedgerEntrySerializer
from accounting.models.journal import JournalEntry
from accounting.models.ledger import LedgerEntry
from permissions.roles import CAP_REPORTS_VIEW_ACCOUNTING, HasCapability


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(ReadOnlyModelViewSet):
    """
    Read-only access to journal entries (audit-safe).
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_REPORTS_VIEW_ACCOUNTING
    serializer_class = JournalEntrySerializer
    http_method_names = ["get", "head", "options"]

    queryset = (
        JournalEntry.objects.filter(is_posted=True)
        .prefetch_related("ledger_entries__account")
        .order_by("-posted_at")
    )
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["source_type", "reference"]
    ordering_fields = ["posted_at", "created_at"]


@extend_schema(tags=["accounting"])
class LedgerEntryViewSet(ReadOnlyModelViewSet):
    """
    Read-only access to ledger entries (append-only, audit-safe).
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_REPORTS_VIEW_ACCOUNTING
    serializer_class = LedgerEntrySerializer
    http_method_names = ["get", "head", "options"]

    queryset = LedgerEntry.objects.select_related("journal_entry", "account").order_by("-created_at")
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_fields = ["journal_entry", "account", "currency"]
    ordering_fields = ["created_at"]
