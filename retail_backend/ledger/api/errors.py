# ledger/api/errors.py

"""
LEDGER ERROR -> HTTP MAPPING

- caller errors                -> 400
- ConcurrentModification       -> 409 (retry the business operation)
- LedgerInconsistency          -> 500 (diagnostic body, manual investigation)
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response

from ledger.services.exceptions import (
    ConcurrentModification,
    LedgerError,
    LedgerInconsistency,
)


def ledger_error_response(exc: LedgerError) -> Response:
    body = {"detail": str(exc), "code": type(exc).__name__}

    if isinstance(exc, ConcurrentModification):
        body["retryable"] = True
        return Response(body, status=status.HTTP_409_CONFLICT)

    if isinstance(exc, LedgerInconsistency):
        body["diagnostic"] = exc.as_dict()
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(body, status=status.HTTP_400_BAD_REQUEST)
