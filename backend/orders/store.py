"""Persistence boundary for orders: inserts, guarded transitions, scoped reads."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date

from django.db import DatabaseError
from django.utils import timezone

from .exceptions import OrderForbidden, OrderNotFound, PersistenceError
from .models import OPEN_STATUSES, Order

logger = logging.getLogger(__name__)


@contextmanager
def _wrap_database_errors(operation: str, order_id: int | None = None):
    try:
        yield
    except DatabaseError as exc:
        logger.exception(
            "orders: %s failed",
            operation,
            extra={"order_id": order_id, "operation": operation},
        )
        raise PersistenceError(str(exc), order_id=order_id, operation=operation) from exc


class OrderStore:
    """
    Every transition is one conditional UPDATE whose WHERE clause carries the
    legal predecessor states (and the renter, where ownership matters). The
    returned row count tells the caller whether it won; zero is not an error.
    """

    def create(
        self,
        *,
        listing,
        renter,
        quantity: int,
        start_date: date,
        end_date: date,
    ) -> Order:
        with _wrap_database_errors("create"):
            return Order.objects.create(
                listing=listing,
                renter=renter,
                renter_name=renter.get_full_name() or renter.username,
                renter_email=renter.email or "",
                quantity=quantity,
                start_date=start_date,
                end_date=end_date,
                status=Order.Status.PENDING_REVIEW,
            )

    def get(self, order_id: int) -> Order:
        with _wrap_database_errors("get", order_id):
            order = Order.objects.select_related("listing", "renter").filter(pk=order_id).first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    def get_for_renter(self, order_id: int, renter) -> Order:
        order = self.get(order_id)
        if order.renter_id != renter.pk:
            raise OrderForbidden(order_id)
        return order

    def list_for_renter(self, renter, *, status: str | None = None):
        qs = Order.objects.filter(renter=renter).select_related("listing")
        if status:
            qs = qs.filter(status=status)
        return qs

    def _guarded_update(self, operation: str, order_id: int, queryset, **fields) -> int:
        with _wrap_database_errors(operation, order_id):
            updated = queryset.update(updated_at=timezone.now(), **fields)
        if not updated:
            logger.info(
                "orders: %s matched no rows",
                operation,
                extra={"order_id": order_id, "operation": operation},
            )
        return updated

    def mark_submitted(
        self,
        order_id: int,
        renter,
        *,
        session_id: str | None = None,
        checkout_url: str | None = None,
    ) -> int:
        # A confirm without a session clears any earlier checkout link.
        has_session = bool(session_id and checkout_url)
        fields = {
            "status": Order.Status.SUBMITTED,
            "external_session_id": session_id if has_session else None,
            "external_checkout_url": checkout_url if has_session else None,
        }
        queryset = Order.objects.filter(pk=order_id, renter=renter, status__in=OPEN_STATUSES)
        return self._guarded_update("mark_submitted", order_id, queryset, **fields)

    def mark_cancelled(self, order_id: int, renter) -> int:
        queryset = Order.objects.filter(pk=order_id, renter=renter, status__in=OPEN_STATUSES)
        return self._guarded_update(
            "mark_cancelled", order_id, queryset, status=Order.Status.CANCELLED
        )

    def mark_paid(self, order_id: int) -> int:
        queryset = Order.objects.filter(pk=order_id).exclude(status=Order.Status.CANCELLED)
        return self._guarded_update("mark_paid", order_id, queryset, status=Order.Status.PAID)
