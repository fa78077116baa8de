# users/tests/test_roles.py

from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase

from users.roles import (
    ROLE_PERMISSIONS,
    assign_role_group,
    ensure_role_groups,
    group_name,
)

User = get_user_model()


def _fresh(user):
    # drop the cached permission sets
    return User.objects.get(pk=user.pk)


class RoleGroupTests(TestCase):
    def test_groups_carry_role_permissions(self):
        groups = ensure_role_groups()

        self.assertEqual(set(groups), set(ROLE_PERMISSIONS))
        accountant = groups[User.ROLE_ACCOUNTANT]
        codenames = set(accountant.permissions.values_list("codename", flat=True))
        self.assertIn("change_dailyconfirmation", codenames)
        self.assertNotIn("add_ledgerentry", codenames)

    def test_ensure_is_idempotent(self):
        ensure_role_groups()
        ensure_role_groups()
        self.assertEqual(Group.objects.filter(name__startswith="role:").count(), len(ROLE_PERMISSIONS))

    def test_assign_moves_user_between_groups(self):
        user = User.objects.create_user(email="kim@shop.test", password="x", role=User.ROLE_CASHIER)
        assign_role_group(user)
        self.assertTrue(_fresh(user).has_perm("ledger.add_ledgerentry"))

        user.role = User.ROLE_ACCOUNTANT
        user.save()
        assign_role_group(user)

        user = _fresh(user)
        self.assertEqual(list(user.groups.values_list("name", flat=True)), [group_name(User.ROLE_ACCOUNTANT)])
        self.assertFalse(user.has_perm("ledger.add_ledgerentry"))
        self.assertTrue(user.has_perm("ledger.view_closingbalancesnapshot"))

    def test_admin_gets_no_group(self):
        admin = User.objects.create_superuser(email="root@shop.test", password="x")
        assign_role_group(admin)
        self.assertFalse(admin.groups.exists())
        self.assertTrue(admin.has_perm("ledger.change_openingbalancesnapshot"))


class SeedRolesCommandTests(TestCase):
    def test_seed_roles_syncs_users(self):
        manager = User.objects.create_user(email="mgr@shop.test", password="x", role=User.ROLE_MANAGER)
        out = StringIO()

        call_command("seed_roles", stdout=out)

        self.assertIn("Synced", out.getvalue())
        self.assertTrue(_fresh(manager).has_perm("ledger.add_openingbalancesnapshot"))

    def test_skip_users(self):
        cashier = User.objects.create_user(email="c@shop.test", password="x")

        call_command("seed_roles", "--skip-users", stdout=StringIO())

        self.assertTrue(Group.objects.filter(name=group_name(User.ROLE_CASHIER)).exists())
        self.assertFalse(cashier.groups.exists())
