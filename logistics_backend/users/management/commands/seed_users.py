# users/management/commands/seed_users.py

from __future__ import annotations

from dataclasses import dataclass

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from permissions.roles import (
    ROLE_ACCOUNTANT,
    ROLE_ADMIN,
    ROLE_AGENT,
    ROLE_EMPLOYEE,
    ROLE_MANAGER,
)
from users.models import User


@dataclass(frozen=True)
class SeedUser:
    label: str
    role: str
    email: str
    region: str = ""


SEED_USERS = [
    SeedUser("Admin", ROLE_ADMIN, "admin@example.com"),
    SeedUser("Manager", ROLE_MANAGER, "manager@example.com"),
    SeedUser("Accountant", ROLE_ACCOUNTANT, "accounts@example.com"),
    SeedUser("Employee", ROLE_EMPLOYEE, "ops@example.com"),
    SeedUser("China agent", ROLE_AGENT, "agent.china@example.com", "china"),
    SeedUser("Dubai agent", ROLE_AGENT, "agent.dubai@example.com", "dubai"),
]


class Command(BaseCommand):
    help = "Seed back-office staff and sample agents (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", type=str, default="Pass1234!")
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset the password of users that already exist.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        created_count = 0
        for seed in SEED_USERS:
            user = User.objects.filter(email=seed.email).first()
            if user is None:
                User.objects.create_user(
                    email=seed.email,
                    password=password,
                    role=seed.role,
                    region=seed.region,
                    is_superuser=seed.role == ROLE_ADMIN,
                )
                created_count += 1
                self.stdout.write(f"created: {seed.label} ({seed.role})")
                continue

            user.role = seed.role
            user.region = seed.region
            if force_password:
                user.set_password(password)
            user.save()
            self.stdout.write(f"exists:  {seed.label} ({seed.role})")

        self.stdout.write(self.style.SUCCESS(f"Seeded users. Created: {created_count}"))
