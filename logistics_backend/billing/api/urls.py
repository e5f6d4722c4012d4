# billing/api/urls.py

from django.urls import path

from billing.api.views import (
    CustomerListCreateView,
    InvoiceDetailView,
    InvoiceListCreateView,
    InvoicePaymentsView,
    InvoiceStatusView,
    VerifyPaymentView,
)

urlpatterns = [
    path("customers/", CustomerListCreateView.as_view(), name="billing-customers"),
    path("invoices/", InvoiceListCreateView.as_view(), name="billing-invoices"),
    path("invoices/<uuid:invoice_id>/", InvoiceDetailView.as_view(), name="billing-invoice-detail"),
    path(
        "invoices/<uuid:invoice_id>/payments/",
        InvoicePaymentsView.as_view(),
        name="billing-invoice-payments",
    ),
    path(
        "invoices/<uuid:invoice_id>/status/",
        InvoiceStatusView.as_view(),
        name="billing-invoice-status",
    ),
    path(
        "payments/<uuid:payment_id>/verify/",
        VerifyPaymentView.as_view(),
        name="billing-payment-verify",
    ),
]
