from django.contrib import admin

from billing.models import Customer, DocumentCounter, Invoice, Payment


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("customer_code", "name", "company_name", "email", "phone", "is_active")
    search_fields = ("customer_code", "name", "company_name", "email", "phone")
    list_filter = ("is_active",)
    readonly_fields = ("customer_code",)


class PaymentInline(admin.TabularInline):
    model = Payment
    extra = 0
    can_delete = False
    fields = (
        "paid_at",
        "amount",
        "currency",
        "method",
        "bank_account",
        "amount_applied",
        "verification_status",
        "journal_entry",
    )
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "invoice_number",
        "direction",
        "status",
        "amount",
        "currency",
        "amount_paid",
        "customer",
        "agent",
        "created_at",
    )
    list_filter = ("status", "direction", "invoice_type", "currency")
    search_fields = ("invoice_number", "shipment_reference", "customer__name", "agent__email")
    readonly_fields = (
        "invoice_number",
        "direction",
        "amount",
        "currency",
        "exchange_rate",
        "amount_in_base",
        "amount_paid",
        "paid_at",
        "journal_entry",
    )
    inlines = [PaymentInline]

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("invoice", "amount", "currency", "method", "verification_status", "paid_at")
    list_filter = ("verification_status", "method", "currency")
    search_fields = ("invoice__invoice_number", "reference")

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


admin.site.register(DocumentCounter)
