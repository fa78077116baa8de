"""
PATH: users/auth_backends.py

AUTH BACKEND: email OR username login

- identifier containing "@" is looked up by email, otherwise by username
- inactive users never authenticate
"""

from __future__ import annotations

from django.contrib.auth.backends import ModelBackend

from users.models import User


class EmailOrUsernameBackend(ModelBackend):
    def authenticate(self, request, username=None, password=None, **kwargs):
        identifier = (username or kwargs.get("email") or "").strip()
        if not identifier or password is None:
            return None

        field = "email__iexact" if "@" in identifier else "username__iexact"
        try:
            user = User.objects.get(**{field: identifier})
        except User.DoesNotExist:
            # Equalize timing with the found-user path.
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
