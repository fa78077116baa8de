# users/tests/test_auth.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from users.roles import assign_role_group

User = get_user_model()


class LoginTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email="Cashier@Example.com",
            username="till1",
            password="s3cret-pass",
            role=User.ROLE_CASHIER,
        )

    def test_login_with_email(self):
        res = self.client.post(
            reverse("users:login"),
            {"identifier": "cashier@example.com", "password": "s3cret-pass"},
            format="json",
        )

        self.assertEqual(res.status_code, 200, res.data)
        self.assertIn("access", res.data)
        self.assertIn("refresh", res.data)
        self.assertEqual(res.data["user"]["role"], "cashier")

    def test_login_with_username(self):
        res = self.client.post(
            reverse("users:login"),
            {"identifier": "TILL1", "password": "s3cret-pass"},
            format="json",
        )
        self.assertEqual(res.status_code, 200, res.data)

    def test_bad_password_is_401(self):
        res = self.client.post(
            reverse("users:login"),
            {"identifier": "till1", "password": "nope"},
            format="json",
        )
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data["detail"], "Invalid credentials")

    def test_inactive_user_cannot_login(self):
        self.user.is_active = False
        self.user.save()

        res = self.client.post(
            reverse("users:login"),
            {"identifier": "till1", "password": "s3cret-pass"},
            format="json",
        )
        self.assertEqual(res.status_code, 401)

    def test_access_token_authenticates_me(self):
        assign_role_group(self.user)
        login = self.client.post(
            reverse("users:login"),
            {"identifier": "till1", "password": "s3cret-pass"},
            format="json",
        )

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        res = self.client.get(reverse("users:me"))

        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["email"], "Cashier@example.com")
        self.assertIn("ledger.add_ledgerentry", res.data["permissions"])
        self.assertNotIn("ledger.add_openingbalancesnapshot", res.data["permissions"])

    def test_me_requires_authentication(self):
        res = self.client.get(reverse("users:me"))
        self.assertEqual(res.status_code, 401)


class UserManagerTests(TestCase):
    def test_username_only_gets_local_email(self):
        user = User.objects.create_user(username="Backoffice", password="x")
        self.assertEqual(user.email, "backoffice@local.test")

    def test_username_is_derived_and_unique(self):
        first = User.objects.create_user(email="sam@shop.test", password="x")
        second = User.objects.create_user(email="sam@other.test", password="x")

        self.assertEqual(first.username, "sam")
        self.assertEqual(second.username, "sam2")

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(email="root@shop.test", password="x")

        self.assertTrue(admin.is_superuser)
        self.assertTrue(admin.is_staff)
        self.assertEqual(admin.role, User.ROLE_ADMIN)
