# ledger/api/views/reversals.py

"""
PATH: ledger/api/views/reversals.py

POST /api/ledger/reversals/
    - Called by sale / purchase cancellation flows
    - 201: all pending payments reversed
    - 207: partial reversal (per-channel failures listed)
    - 200: document had no payment entries
    - 400: AlreadyReversed and other caller errors
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ledger.api.errors import ledger_error_response
from ledger.api.permissions import POST_LEDGER_PERMISSION, forbidden
from ledger.api.serializers import ReversalRequestSerializer, ReversalResultSerializer
from ledger.services.exceptions import LedgerError
from ledger.services.reversal import reverse_document


class ReversalView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReversalRequestSerializer

    @extend_schema(
        tags=["ledger"],
        request=ReversalRequestSerializer,
        responses={200: ReversalResultSerializer, 201: ReversalResultSerializer, 207: ReversalResultSerializer, 400: dict},
    )
    def post(self, request, *args, **kwargs):
        if not request.user.has_perm(POST_LEDGER_PERMISSION):
            return forbidden("You do not have permission to reverse payments.")

        s = self.get_serializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            result = reverse_document(
                source_document_id=data["source_document_id"],
                channel=data.get("channel") or None,
                cancelled_at=data.get("cancelled_at"),
                recorded_by=request.user,
                reason=data.get("reason") or "",
            )
        except LedgerError as exc:
            return ledger_error_response(exc)

        if result.is_partial:
            code = status.HTTP_207_MULTI_STATUS
        elif result.entries:
            code = status.HTTP_201_CREATED
        else:
            code = status.HTTP_200_OK

        return Response(ReversalResultSerializer(result).data, status=code)
