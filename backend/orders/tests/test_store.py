"""Tests for guarded order transitions in the store."""

from __future__ import annotations

import pytest
from django.db import DatabaseError
from django.db.models import QuerySet

from orders.exceptions import OrderForbidden, OrderNotFound, PersistenceError
from orders.models import Order
from orders.store import OrderStore

pytestmark = pytest.mark.django_db


def test_create_snapshots_renter_contact(listing, renter_user):
    order = OrderStore().create(
        listing=listing,
        renter=renter_user,
        quantity=3,
        start_date=listing.available_from,
        end_date=listing.available_from,
    )

    assert order.status == Order.Status.PENDING_REVIEW
    assert order.renter_name == "Rita Renter"
    assert order.renter_email == "renter@example.com"
    assert order.external_session_id is None
    assert order.external_checkout_url is None


def test_get_for_renter_enforces_ownership(order_factory, other_renter):
    order = order_factory()
    store = OrderStore()

    with pytest.raises(OrderForbidden):
        store.get_for_renter(order.id, other_renter)
    with pytest.raises(OrderNotFound):
        store.get_for_renter(order.id + 999, other_renter)


def test_mark_submitted_only_from_open_states(order_factory, renter_user):
    store = OrderStore()
    open_order = order_factory()
    paid_order = order_factory(status=Order.Status.PAID)

    updated = store.mark_submitted(
        open_order.id,
        renter_user,
        session_id="cs_1",
        checkout_url="https://checkout.example/1",
    )

    assert updated == 1
    assert store.mark_submitted(paid_order.id, renter_user) == 0

    open_order.refresh_from_db()
    paid_order.refresh_from_db()
    assert open_order.status == Order.Status.SUBMITTED
    assert open_order.external_session_id == "cs_1"
    assert paid_order.status == Order.Status.PAID


def test_mark_submitted_requires_matching_renter(order_factory, other_renter):
    order = order_factory()

    assert OrderStore().mark_submitted(order.id, other_renter) == 0
    order.refresh_from_db()
    assert order.status == Order.Status.PENDING_REVIEW


def test_mark_cancelled_never_overrides_paid(order_factory, renter_user):
    store = OrderStore()
    order = order_factory(status=Order.Status.PAID)

    assert store.mark_cancelled(order.id, renter_user) == 0
    order.refresh_from_db()
    assert order.status == Order.Status.PAID


def test_mark_paid_is_idempotent_and_skips_cancelled(order_factory):
    store = OrderStore()
    submitted = order_factory(status=Order.Status.SUBMITTED)
    cancelled = order_factory(status=Order.Status.CANCELLED)

    assert store.mark_paid(submitted.id) == 1
    assert store.mark_paid(submitted.id) == 1
    assert store.mark_paid(cancelled.id) == 0

    submitted.refresh_from_db()
    cancelled.refresh_from_db()
    assert submitted.status == Order.Status.PAID
    assert cancelled.status == Order.Status.CANCELLED


def test_list_for_renter_is_scoped_and_filterable(order_factory, renter_user, other_renter):
    mine = order_factory()
    order_factory(status=Order.Status.PAID)
    order_factory(renter=other_renter)
    store = OrderStore()

    assert store.list_for_renter(renter_user).count() == 2
    assert list(store.list_for_renter(renter_user, status=Order.Status.PENDING_REVIEW)) == [mine]


def test_database_errors_surface_as_persistence_error(order_factory, renter_user, monkeypatch):
    order = order_factory()

    def _boom(self, **kwargs):
        raise DatabaseError("disk I/O error")

    monkeypatch.setattr(QuerySet, "update", _boom)

    with pytest.raises(PersistenceError) as excinfo:
        OrderStore().mark_cancelled(order.id, renter_user)

    assert excinfo.value.order_id == order.id
    assert excinfo.value.operation == "mark_cancelled"
