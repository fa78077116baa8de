# users/management/commands/seed_roles.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from users.models import User
from users.roles import assign_role_group, ensure_role_groups


class Command(BaseCommand):
    help = "Create role groups with ledger permissions and sync every user into their role group."

    def add_arguments(self, parser):
        parser.add_argument(
            "--skip-users",
            action="store_true",
            help="Only create/refresh the groups.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        try:
            groups = ensure_role_groups()
        except LookupError as exc:
            raise CommandError(str(exc)) from exc

        for role, group in groups.items():
            self.stdout.write(f"group {group.name}: {group.permissions.count()} permissions")

        if options.get("skip_users"):
            return

        synced = 0
        for user in User.objects.filter(is_active=True):
            assign_role_group(user)
            synced += 1

        self.stdout.write(self.style.SUCCESS(f"Synced {synced} users into role groups"))
