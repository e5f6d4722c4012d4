# currency/api/urls.py

from django.urls import path

from currency.api.views import (
    ConvertView,
    ExchangeRateDetailView,
    ExchangeRateListCreateView,
)

urlpatterns = [
    path("rates/", ExchangeRateListCreateView.as_view(), name="exchange-rates"),
    path(
        "rates/<str:currency_code>/",
        ExchangeRateDetailView.as_view(),
        name="exchange-rate-detail",
    ),
    path("convert/", ConvertView.as_view(), name="currency-convert"),
]
