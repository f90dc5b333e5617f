"""Shared fixtures for orders and payments tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Callable

import pytest
from django.apps import apps
from django.contrib.auth import get_user_model
from django.utils import timezone

from listings.models import Listing
from orders.models import Order
from payments.gateway import CheckoutSession, StubGateway
from payments.models import SellerAccount

User = get_user_model()

WINDOW_START = date(2025, 1, 1)
WINDOW_END = date(2025, 3, 1)


class RecordingGateway(StubGateway):
    """Stub that records checkout requests and returns a fixed session or error."""

    name = "recording"

    def __init__(self, *, session: CheckoutSession | None = None, error: Exception | None = None):
        super().__init__()
        self.session = session
        self.error = error
        self.requests = []

    def create_checkout_session(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.session


def _create_user(*, username: str, email: str, **extra) -> User:
    return User.objects.create_user(
        username=username,
        password="testpass",
        email=email,
        **extra,
    )


def _mark_verified(user: User, suffix: str) -> SellerAccount:
    return SellerAccount.objects.create(
        user=user,
        external_account_id=f"acct_test_{suffix}",
        verified=True,
        charges_enabled=True,
        payouts_enabled=True,
        requirements_due={
            "currently_due": [],
            "eventually_due": [],
            "past_due": [],
            "disabled_reason": None,
        },
        last_synced_at=timezone.now(),
    )


@pytest.fixture
def seller_user():
    user = _create_user(username="seller", email="seller@example.com")
    _mark_verified(user, "seller")
    return user


@pytest.fixture
def unverified_seller():
    return _create_user(username="new-seller", email="new-seller@example.com")


@pytest.fixture
def renter_user():
    return _create_user(
        username="renter",
        email="renter@example.com",
        first_name="Rita",
        last_name="Renter",
    )


@pytest.fixture
def other_renter():
    return _create_user(username="other", email="other@example.com")


@pytest.fixture
def listing(seller_user):
    return Listing.objects.create(
        owner=seller_user,
        title="Dry warehouse racking",
        description="Ground-floor pallet racking near the ring road.",
        price_per_unit=Decimal("12.50"),
        available_from=WINDOW_START,
        available_until=WINDOW_END,
        is_visible=True,
    )


@pytest.fixture
def order_factory(listing, renter_user) -> Callable[..., Order]:
    def _create_order(
        *,
        renter=None,
        listing_override: Listing | None = None,
        quantity: int = 2,
        start_date: date = date(2025, 1, 5),
        end_date: date = date(2025, 1, 10),
        status=Order.Status.PENDING_REVIEW,
        **extra_fields,
    ) -> Order:
        owner = renter or renter_user
        return Order.objects.create(
            listing=listing_override or listing,
            renter=owner,
            renter_name=owner.get_full_name() or owner.username,
            renter_email=owner.email,
            quantity=quantity,
            start_date=start_date,
            end_date=end_date,
            status=status,
            **extra_fields,
        )

    return _create_order


@pytest.fixture
def use_gateway(monkeypatch):
    """Install a gateway on the payments app config for the duration of a test."""

    def _install(gateway):
        monkeypatch.setattr(apps.get_app_config("payments"), "gateway", gateway)
        return gateway

    return _install


@pytest.fixture
def live_session_gateway(use_gateway):
    return use_gateway(
        RecordingGateway(
            session=CheckoutSession(
                session_id="cs_test_123",
                checkout_url="https://checkout.stripe.com/c/pay/cs_test_123",
            )
        )
    )
