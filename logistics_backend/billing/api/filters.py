# billing/api/filters.py

import django_filters

from billing.models import Invoice


class InvoiceFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(choices=Invoice.STATUS_CHOICES)
    direction = django_filters.ChoiceFilter(choices=Invoice.DIRECTION_CHOICES)
    currency = django_filters.CharFilter(lookup_expr="iexact")
    customer = django_filters.UUIDFilter(field_name="customer_id")
    agent = django_filters.UUIDFilter(field_name="agent_id")
    shipment_reference = django_filters.CharFilter(lookup_expr="icontains")
    created_from = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    created_to = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Invoice
        fields = ["status", "direction", "invoice_type", "origin_region"]
