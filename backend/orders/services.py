"""Order lifecycle: creation, checkout confirmation, cancellation, scoped reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.conf import settings

from listings.models import Listing
from payments.gateway import CheckoutRequest, CheckoutSession, PaymentGateway, PaymentGatewayError

from .domain import (
    DateRange,
    ListingWindow,
    billable_units,
    parse_quantity,
    to_minor_units,
    validate_rental_request,
)
from .exceptions import ListingNotFound
from .models import Order
from .store import OrderStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricePreview:
    unit_amount_cents: int
    quantity_units: int
    days: int
    currency: str

    @property
    def total_cents(self) -> int:
        return self.unit_amount_cents * self.quantity_units


@dataclass(frozen=True)
class ConfirmOutcome:
    """
    Result of ``OrderStateMachine.confirm``.

    ``checkout_url`` is set only when this call moved the order to submitted with
    a live session; ``applied`` is False when the order was terminal or a
    concurrent transition won the guarded update.
    """

    order: Order
    checkout_url: str | None = None
    applied: bool = True


class OrderStateMachine:
    """
    Drives orders through pending_review -> submitted -> paid, with cancelled
    reachable from either open state. Paid and cancelled are terminal.
    """

    def __init__(
        self,
        *,
        store: OrderStore,
        gateway: PaymentGateway,
        base_url: str | None = None,
        currency: str | None = None,
    ):
        self.store = store
        self.gateway = gateway
        self.base_url = (base_url or getattr(settings, "APP_BASE_URL", "")).rstrip("/")
        self.currency = (currency or getattr(settings, "PAYMENTS_CURRENCY", "usd")).lower()

    def create(self, *, listing_id, renter, quantity, start_date, end_date) -> Order:
        listing = Listing.objects.filter(pk=listing_id, is_visible=True).first()
        if listing is None:
            raise ListingNotFound(listing_id)
        date_range = validate_rental_request(
            start_date,
            end_date,
            quantity,
            ListingWindow.for_listing(listing),
        )
        order = self.store.create(
            listing=listing,
            renter=renter,
            quantity=parse_quantity(quantity),
            start_date=date_range.start,
            end_date=date_range.end,
        )
        logger.info(
            "orders: created order",
            extra={"order_id": order.id, "listing_id": listing.id, "renter_id": renter.pk},
        )
        return order

    def get(self, order_id: int, renter) -> Order:
        return self.store.get_for_renter(order_id, renter)

    def list(self, renter, *, status: str | None = None):
        return self.store.list_for_renter(renter, status=status)

    def price(self, order: Order) -> PricePreview:
        date_range = DateRange(order.start_date, order.end_date)
        return PricePreview(
            unit_amount_cents=to_minor_units(order.listing.price_per_unit),
            quantity_units=billable_units(order.quantity, date_range),
            days=date_range.days,
            currency=self.currency,
        )

    def _checkout_request(self, order: Order) -> CheckoutRequest:
        preview = self.price(order)
        return CheckoutRequest(
            unit_amount_cents=preview.unit_amount_cents,
            currency=preview.currency,
            label=order.listing.title,
            quantity_units=preview.quantity_units,
            buyer_email=order.renter_email or order.renter.email or "",
            buyer_customer_id=(getattr(order.renter, "stripe_customer_id", "") or "").strip(),
            order_id=order.id,
            success_url=f"{self.base_url}/orders",
            cancel_url=f"{self.base_url}/orders/{order.id}/confirm",
        )

    def _open_session(self, order: Order) -> CheckoutSession | None:
        try:
            session = self.gateway.create_checkout_session(self._checkout_request(order))
        except PaymentGatewayError as exc:
            logger.warning(
                "orders: checkout session failed: %s",
                exc,
                extra={"order_id": order.id, "gateway": self.gateway.name},
            )
            return None
        except Exception:
            logger.exception(
                "orders: unexpected gateway failure",
                extra={"order_id": order.id, "gateway": self.gateway.name},
            )
            return None
        if session is not None and not (
            isinstance(session, CheckoutSession) and session.session_id and session.checkout_url
        ):
            logger.warning(
                "orders: gateway returned an unusable session",
                extra={"order_id": order.id, "gateway": self.gateway.name},
            )
            return None
        return session

    def confirm(self, order_id: int, renter) -> ConfirmOutcome:
        order = self.store.get_for_renter(order_id, renter)
        if order.is_terminal():
            logger.info(
                "orders: confirm ignored for terminal order",
                extra={"order_id": order.id, "status": order.status},
            )
            return ConfirmOutcome(order=order, applied=False)

        session = self._open_session(order)
        updated = self.store.mark_submitted(
            order.id,
            renter,
            session_id=session.session_id if session else None,
            checkout_url=session.checkout_url if session else None,
        )
        order = self.store.get(order.id)
        if not updated:
            # Lost to a concurrent cancel or payment; the late session is dropped.
            return ConfirmOutcome(order=order, applied=False)
        logger.info(
            "orders: order submitted",
            extra={"order_id": order.id, "has_checkout": session is not None},
        )
        return ConfirmOutcome(order=order, checkout_url=session.checkout_url if session else None)

    def cancel(self, order_id: int, renter) -> bool:
        """Cancel an open order; returns False when it had already settled or closed."""
        order = self.store.get_for_renter(order_id, renter)
        updated = self.store.mark_cancelled(order.id, renter)
        if updated:
            logger.info("orders: order cancelled", extra={"order_id": order.id})
        return bool(updated)
