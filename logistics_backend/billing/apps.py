from django.apps import AppConfig


class BillingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "billing"

    def ready(self):
        # Queued journal postings for invoices and settlements are retried
        # through handlers owned by this app.
        from billing.services.journal_hooks import register_outbox_handlers

        register_outbox_handlers()
