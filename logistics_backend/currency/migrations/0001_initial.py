"""
======================================================
PATH: currency/migrations/0001_initial.py
======================================================
MIGRATION: CREATE ExchangeRate
"""

from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ExchangeRate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("currency_code", models.CharField(max_length=3, unique=True)),
                ("currency_name", models.CharField(blank=True, default="", max_length=64)),
                ("rate_to_base", models.DecimalField(decimal_places=6, max_digits=18)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "updated_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["currency_code"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("rate_to_base__gt", Decimal("0"))),
                        name="exchange_rate_positive",
                    )
                ],
            },
        ),
    ]
