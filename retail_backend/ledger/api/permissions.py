# ledger/api/permissions.py

"""
Permission matrix for the ledger API (Django model permissions, no role hardcoding).
"""

from rest_framework import status
from rest_framework.response import Response

VIEW_LEDGER_PERMISSION = "ledger.view_ledgerentry"
POST_LEDGER_PERMISSION = "ledger.add_ledgerentry"
RECORD_OPENING_PERMISSION = "ledger.add_openingbalancesnapshot"
ADJUST_OPENING_PERMISSION = "ledger.change_openingbalancesnapshot"
VIEW_CLOSING_PERMISSION = "ledger.view_closingbalancesnapshot"
COMPUTE_CLOSING_PERMISSION = "ledger.add_closingbalancesnapshot"
CONFIRM_DAY_PERMISSION = "ledger.change_dailyconfirmation"


def forbidden(message: str) -> Response:
    return Response({"detail": message}, status=status.HTTP_403_FORBIDDEN)
