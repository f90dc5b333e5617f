"""API viewset for renter orders."""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from listings.models import Listing
from payments.gateway import get_payment_gateway

from .domain import ListingWindow, default_rental_range
from .exceptions import ListingNotFound, OrderForbidden, OrderNotFound, PersistenceError
from .filters import OrderFilter
from .serializers import OrderCreateSerializer, OrderSerializer
from .services import OrderStateMachine
from .store import OrderStore

logger = logging.getLogger(__name__)
ORDERS_PATH = "/api/orders/"


def _order_id(pk) -> int | None:
    try:
        return int(pk)
    except (TypeError, ValueError):
        return None


def _see_other(location: str, data=None) -> Response:
    return Response(data, status=status.HTTP_303_SEE_OTHER, headers={"Location": location})


def _lookup_error_response(exc: Exception) -> Response:
    if isinstance(exc, OrderForbidden):
        return Response(
            {"detail": "You do not have access to this order."},
            status=status.HTTP_403_FORBIDDEN,
        )
    if isinstance(exc, PersistenceError):
        return Response(
            {"detail": "Unable to process the order right now."},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


class OrderViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Orders are visible and mutable only by the renter who placed them."""

    serializer_class = OrderSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_class = OrderFilter

    def get_state_machine(self) -> OrderStateMachine:
        return OrderStateMachine(store=OrderStore(), gateway=get_payment_gateway())

    def get_queryset(self):
        return self.get_state_machine().list(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            order = self.get_state_machine().create(
                listing_id=data["listing"],
                renter=request.user,
                quantity=data["quantity"],
                start_date=data["start_date"],
                end_date=data["end_date"],
            )
        except ListingNotFound:
            return Response({"detail": "Listing not found."}, status=status.HTTP_404_NOT_FOUND)
        except ValidationError as exc:
            return Response(exc.message_dict, status=status.HTTP_400_BAD_REQUEST)
        except PersistenceError as exc:
            return _lookup_error_response(exc)

        return _see_other(f"{ORDERS_PATH}{order.id}/confirm/", OrderSerializer(order).data)

    def retrieve(self, request, pk=None):
        order_id = _order_id(pk)
        if order_id is None:
            return _lookup_error_response(OrderNotFound(pk))
        try:
            order = self.get_state_machine().get(order_id, request.user)
        except (OrderNotFound, OrderForbidden, PersistenceError) as exc:
            return _lookup_error_response(exc)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get", "post"], url_path="confirm")
    def confirm(self, request, pk=None):
        """GET previews the charge; POST opens a checkout session for it."""
        order_id = _order_id(pk)
        if order_id is None:
            return _lookup_error_response(OrderNotFound(pk))
        machine = self.get_state_machine()

        if request.method == "GET":
            try:
                order = machine.get(order_id, request.user)
            except (OrderNotFound, OrderForbidden, PersistenceError) as exc:
                return _lookup_error_response(exc)
            preview = machine.price(order)
            return Response(
                {
                    "order": OrderSerializer(order).data,
                    "price": {
                        "unit_amount_cents": preview.unit_amount_cents,
                        "quantity_units": preview.quantity_units,
                        "days": preview.days,
                        "total_cents": preview.total_cents,
                        "currency": preview.currency,
                    },
                }
            )

        try:
            outcome = machine.confirm(order_id, request.user)
        except (OrderNotFound, OrderForbidden, PersistenceError) as exc:
            return _lookup_error_response(exc)

        if outcome.checkout_url:
            return _see_other(outcome.checkout_url)
        order = outcome.order
        pending = order.status == order.Status.SUBMITTED
        return Response(
            {
                "status": "pending" if pending else order.status,
                "detail": (
                    "Your request was received; payment details will follow."
                    if pending
                    else "This order is already closed."
                ),
                "order": OrderSerializer(order).data,
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        order_id = _order_id(pk)
        if order_id is None:
            return _lookup_error_response(OrderNotFound(pk))
        try:
            self.get_state_machine().cancel(order_id, request.user)
        except (OrderNotFound, OrderForbidden, PersistenceError) as exc:
            return _lookup_error_response(exc)
        return _see_other(ORDERS_PATH)

    @action(detail=False, methods=["get"], url_path="defaults")
    def defaults(self, request):
        """Prefill values for a new request on ``?listing=<id>``."""
        listing = Listing.objects.filter(
            pk=_order_id(request.query_params.get("listing")) or 0,
            is_visible=True,
        ).first()
        if listing is None:
            return Response({"detail": "Listing not found."}, status=status.HTTP_404_NOT_FOUND)
        suggested = default_rental_range(ListingWindow.for_listing(listing))
        user = request.user
        return Response(
            {
                "listing": listing.id,
                "listing_title": listing.title,
                "renter_name": user.get_full_name() or user.username,
                "renter_email": user.email,
                "start_date": suggested.start.isoformat(),
                "end_date": suggested.end.isoformat(),
                "quantity": 1,
            }
        )
