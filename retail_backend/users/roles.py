# users/roles.py

"""
PATH: users/roles.py

ROLE -> LEDGER PERMISSIONS

Views protect Django model permissions, not raw roles. A role is mapped to
a Group carrying the permissions that job needs:

- admin       superuser, everything
- manager     view, post, record/adjust openings, closings, confirm day
- accountant  view, closings, confirm day
- cashier     view, post
"""

from __future__ import annotations

import logging

from django.contrib.auth.models import Group, Permission

from users.models import User

logger = logging.getLogger(__name__)

VIEW = ["ledger.view_ledgerentry", "ledger.view_channel", "ledger.view_openingbalancesnapshot"]
POST = ["ledger.add_ledgerentry"]
OPENING = ["ledger.add_openingbalancesnapshot", "ledger.change_openingbalancesnapshot"]
CLOSING = ["ledger.view_closingbalancesnapshot", "ledger.add_closingbalancesnapshot"]
CONFIRM = ["ledger.change_dailyconfirmation"]

ROLE_PERMISSIONS = {
    User.ROLE_MANAGER: VIEW + POST + OPENING + CLOSING + CONFIRM,
    User.ROLE_ACCOUNTANT: VIEW + CLOSING + CONFIRM,
    User.ROLE_CASHIER: VIEW + POST,
}


def group_name(role: str) -> str:
    return f"role:{role}"


def _permissions(labels: list[str]) -> list[Permission]:
    perms = []
    for label in labels:
        app_label, codename = label.split(".", 1)
        try:
            perms.append(
                Permission.objects.get(content_type__app_label=app_label, codename=codename)
            )
        except Permission.DoesNotExist as exc:
            raise LookupError(f"Permission {label} does not exist (run migrate first)") from exc
    return perms


def ensure_role_groups() -> dict[str, Group]:
    """
    Create/refresh one Group per role. Idempotent; permissions are replaced.
    """
    groups = {}
    for role, labels in ROLE_PERMISSIONS.items():
        group, _ = Group.objects.get_or_create(name=group_name(role))
        group.permissions.set(_permissions(labels))
        groups[role] = group
    logger.info("Role groups ensured", extra={"roles": sorted(groups)})
    return groups


def assign_role_group(user: User) -> None:
    """
    Put `user` in exactly the group matching their role.
    Admins are superusers and need no group.
    """
    role_groups = Group.objects.filter(name__startswith="role:")
    user.groups.remove(*role_groups)

    if user.role == User.ROLE_ADMIN:
        return

    group = Group.objects.filter(name=group_name(user.role)).first()
    if group is None:
        group = ensure_role_groups()[user.role]
    user.groups.add(group)
