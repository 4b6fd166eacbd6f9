"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import json
import logging

from django.http import StreamingHttpResponse
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from ticketing.conf import PurchasePolicy, ticketing_setting
from ticketing.domain.errors import (
    AlreadyCancelledError,
    DomainError,
    ErrorCode,
    InvalidQuantityError,
)
from ticketing.handlers.serializers import (
    PurchaseRequestSerializer,
    ResyncEntrySerializer,
    ResyncRequestSerializer,
    SalesStatsSerializer,
    StockLevelSerializer,
    TransactionSerializer,
)
from ticketing.services import (
    Subscription,
    get_broadcaster,
    get_event_service,
    get_purchase_service,
    get_resync_service,
)

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TIER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TRANSACTION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_QUANTITY: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TRANSACTION_REF: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_STOCK_VALUE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.OUT_OF_STOCK: status.HTTP_409_CONFLICT,
    ErrorCode.IDEMPOTENCY_CONFLICT: status.HTTP_409_CONFLICT,
}


def error_response(error: DomainError) -> Response:
    return Response(
        {"code": error.code.value, "message": error.message},
        status=STATUS_BY_CODE.get(error.code, status.HTTP_400_BAD_REQUEST),
    )


def purchaser_identity(request: Request) -> str:
    return request.user.get_username().strip().lower()


class EventStreamRenderer(BaseRenderer):
    """Lets text/event-stream requests through content negotiation."""

    media_type = "text/event-stream"
    format = "event-stream"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return format_event("error", data)


def format_event(name: str, data) -> str:
    return f"event: {name}\ndata: {json.dumps(data, separators=(',', ':'))}\n\n"


def stream_deltas(subscription: Subscription, keepalive: float):
    try:
        while True:
            delta = subscription.get(timeout=keepalive)
            if delta is None:
                if subscription.closed:
                    return
                yield ": keepalive\n\n"
                continue
            yield format_event("stock", delta.to_wire())
    finally:
        subscription.close()


class PurchaseView(APIView):
    """Handler for POST /api/stock/purchase"""

    permission_classes = [IsAuthenticated]

    def post(self, request: Request) -> Response:
        serializer = PurchaseRequestSerializer(data=request.data)
        if not serializer.is_valid():
            if "quantity" in serializer.errors:
                max_quantity = PurchasePolicy.from_settings().max_quantity
                return error_response(InvalidQuantityError(request.data.get("quantity"), max_quantity))
            return Response(
                {"code": "INVALID_REQUEST", "message": "Invalid request body", "fields": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )
        data = serializer.validated_data
        try:
            receipt = get_purchase_service().purchase(
                event_id=data["event_id"],
                tier_id=data["tier_id"],
                purchaser_identity=purchaser_identity(request),
                quantity=data["quantity"],
                client_transaction_ref=data["client_transaction_ref"],
            )
        except DomainError as exc:
            return error_response(exc)
        body = TransactionSerializer(receipt.transaction).data
        if receipt.replayed:
            return Response(
                {"code": ErrorCode.DUPLICATE_REQUEST.value, "transaction": body},
                status=status.HTTP_200_OK,
            )
        return Response({"transaction": body}, status=status.HTTP_201_CREATED)


class MyTicketsView(APIView):
    """Handler for GET /api/stock/my-tickets"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        transactions = get_purchase_service().transactions_for(purchaser_identity(request))
        return Response(TransactionSerializer(transactions, many=True).data)


class StockCountView(APIView):
    """Handler for GET /api/stock/count/{event_id}/{tier_id}"""

    permission_classes = [AllowAny]

    def get(self, request: Request, event_id: str, tier_id: str) -> Response:
        try:
            remaining = get_event_service().get_tier_stock(event_id, tier_id)
        except DomainError as exc:
            return error_response(exc)
        return Response({"tier_id": tier_id, "remaining": remaining})


class EventStockView(APIView):
    """Handler for GET /api/events/{event_id}/stock"""

    permission_classes = [AllowAny]

    def get(self, request: Request, event_id: str) -> Response:
        try:
            levels = get_event_service().get_stock(event_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(StockLevelSerializer(levels, many=True).data)


class EventStockStreamView(APIView):
    """Handler for GET /api/events/{event_id}/stock/stream

    Server-Sent Events: the event's current stock first, then one ``stock``
    message per committed change, with keepalive comments while idle.
    """

    permission_classes = [AllowAny]
    renderer_classes = [EventStreamRenderer, JSONRenderer]

    def get(self, request: Request, event_id: str):
        try:
            event = get_event_service().get_event(event_id)
        except DomainError as exc:
            return error_response(exc)
        subscription = get_broadcaster().subscribe(event.id)
        response = StreamingHttpResponse(
            stream_deltas(subscription, ticketing_setting("STREAM_KEEPALIVE_SECONDS")),
            content_type="text/event-stream",
        )
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response


class AdminResyncView(APIView):
    """Handler for POST /api/admin/sync-stock"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request) -> Response:
        serializer = ResyncRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            report = get_resync_service().resync_all(serializer.validated_data.get("event_id"))
        except DomainError as exc:
            return error_response(exc)
        logger.info("Stock resync requested by %s: %d corrections", request.user, len(report))
        return Response({"corrections": ResyncEntrySerializer(report, many=True).data})


class AdminRefundView(APIView):
    """Handler for POST /api/admin/transactions/{transaction_id}/refund"""

    permission_classes = [IsAdminUser]

    def post(self, request: Request, transaction_id: str) -> Response:
        try:
            transaction = get_purchase_service().refund(transaction_id)
        except AlreadyCancelledError as exc:
            return Response(
                {
                    "code": exc.code.value,
                    "transaction": TransactionSerializer(exc.transaction).data,
                },
                status=status.HTTP_200_OK,
            )
        except DomainError as exc:
            return error_response(exc)
        return Response({"transaction": TransactionSerializer(transaction).data})


class AdminTransactionView(APIView):
    """Handler for DELETE /api/admin/transactions/{transaction_id}"""

    permission_classes = [IsAdminUser]

    def delete(self, request: Request, transaction_id: str) -> Response:
        try:
            get_purchase_service().purge(transaction_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminStatsView(APIView):
    """Handler for GET /api/admin/stats"""

    permission_classes = [IsAdminUser]

    def get(self, request: Request) -> Response:
        return Response(SalesStatsSerializer(get_purchase_service().sales_stats()).data)
