from django.apps import AppConfig


class ShopForMeConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "shopforme"
    verbose_name = "Shop For Me"
