# shopforme/api/urls.py

from django.urls import path

from shopforme.api.views import (
    ProductRateListCreateView,
    QuoteView,
    ShopForMeChargeListCreateView,
)

urlpatterns = [
    path("rates/", ProductRateListCreateView.as_view(), name="shopforme-rates"),
    path("charges/", ShopForMeChargeListCreateView.as_view(), name="shopforme-charges"),
    path("quote/", QuoteView.as_view(), name="shopforme-quote"),
]
