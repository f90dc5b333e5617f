"""Tests for gateway selection and the Stripe adapter."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
import stripe
from django.core.exceptions import ImproperlyConfigured

from payments.gateway import (
    STUB_SESSION_ID,
    CheckoutRequest,
    GatewayUnavailable,
    PaymentGatewayError,
    StripeGateway,
    StubGateway,
    account_status_from_payload,
    build_payment_gateway,
    get_payment_gateway,
)


def checkout_request(**overrides) -> CheckoutRequest:
    params = {
        "unit_amount_cents": 1250,
        "currency": "usd",
        "label": "Dry warehouse racking",
        "quantity_units": 10,
        "buyer_email": "renter@example.com",
        "order_id": 7,
        "success_url": "https://app.test/orders",
        "cancel_url": "https://app.test/orders/7/confirm",
    }
    params.update(overrides)
    return CheckoutRequest(**params)


@pytest.fixture
def stripe_gateway(monkeypatch):
    monkeypatch.setattr(stripe, "api_key", None)
    monkeypatch.setattr(stripe, "default_http_client", None)
    return StripeGateway(secret_key="sk_test_123", timeout=4.0)


def test_checkout_session_params(stripe_gateway, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    session = stripe_gateway.create_checkout_session(checkout_request())

    assert session.session_id == "cs_test_1"
    assert session.checkout_url.endswith("cs_test_1")
    assert stripe.api_key == "sk_test_123"
    assert captured["mode"] == "payment"
    assert captured["metadata"] == {"order_id": "7"}
    assert captured["customer_email"] == "renter@example.com"
    assert "customer" not in captured
    [line_item] = captured["line_items"]
    assert line_item["quantity"] == 10
    assert line_item["price_data"]["unit_amount"] == 1250
    assert line_item["price_data"]["product_data"] == {"name": "Dry warehouse racking"}


def test_http_client_is_reused_across_calls(stripe_gateway, monkeypatch):
    monkeypatch.setattr(
        stripe.checkout.Session,
        "create",
        lambda **kwargs: {"id": "cs_1", "url": "https://checkout.stripe.com/c/pay/cs_1"},
    )

    stripe_gateway.create_checkout_session(checkout_request())
    first_client = stripe.default_http_client
    stripe_gateway.create_checkout_session(checkout_request())

    assert first_client is stripe_gateway.http_client
    assert stripe.default_http_client is first_client


def test_checkout_prefers_customer_id(stripe_gateway, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(id="cs_test_2", url="https://checkout.stripe.com/c/pay/cs_test_2")

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    stripe_gateway.create_checkout_session(checkout_request(buyer_customer_id="cus_42"))

    assert captured["customer"] == "cus_42"
    assert "customer_email" not in captured


def test_checkout_ignores_malformed_customer_id(stripe_gateway, monkeypatch):
    captured = {}

    def fake_create(**kwargs):
        captured.update(kwargs)
        return {"id": "cs_test_3", "url": "https://checkout.stripe.com/c/pay/cs_test_3"}

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    stripe_gateway.create_checkout_session(checkout_request(buyer_customer_id="legacy-42"))

    assert captured["customer_email"] == "renter@example.com"


@pytest.mark.parametrize(
    "error,expected",
    [
        (stripe.APIConnectionError("network down"), GatewayUnavailable),
        (stripe.RateLimitError("slow down"), GatewayUnavailable),
        (stripe.AuthenticationError("bad key"), PaymentGatewayError),
        (stripe.InvalidRequestError("bad param", param="line_items"), PaymentGatewayError),
    ],
)
def test_stripe_errors_are_mapped(stripe_gateway, monkeypatch, error, expected):
    def fake_create(**kwargs):
        raise error

    monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)

    with pytest.raises(expected):
        stripe_gateway.create_checkout_session(checkout_request())


def test_session_without_url_is_an_error(stripe_gateway, monkeypatch):
    monkeypatch.setattr(stripe.checkout.Session, "create", lambda **kwargs: {"id": "cs_1"})

    with pytest.raises(PaymentGatewayError):
        stripe_gateway.create_checkout_session(checkout_request())


def test_connected_account_and_link(stripe_gateway, monkeypatch):
    created = {}
    monkeypatch.setattr(
        stripe.Account,
        "create",
        lambda **kwargs: created.update(kwargs) or {"id": "acct_1"},
    )
    monkeypatch.setattr(
        stripe.AccountLink,
        "create",
        lambda **kwargs: {
            "url": f"https://connect.stripe.com/{kwargs['account']}/{kwargs['type']}"
        },
    )

    account_id = stripe_gateway.create_connected_account(email="s@example.com", user_id=5)
    link = stripe_gateway.create_onboarding_link(
        account_id=account_id,
        return_url="https://app.test/me",
        refresh_url="https://app.test/me/verify",
    )

    assert account_id == "acct_1"
    assert created["type"] == "express"
    assert created["email"] == "s@example.com"
    assert created["metadata"] == {"user_id": "5"}
    assert link == "https://connect.stripe.com/acct_1/account_onboarding"


def test_find_and_create_customer(stripe_gateway, monkeypatch):
    monkeypatch.setattr(stripe.Customer, "list", lambda **kwargs: {"data": []})
    monkeypatch.setattr(stripe.Customer, "create", lambda **kwargs: {"id": "cus_new"})

    assert stripe_gateway.find_customer("r@example.com") is None
    assert stripe_gateway.create_customer(email="r@example.com", name="R", user_id=1) == "cus_new"


def test_account_status_from_payload_normalizes_requirements():
    status = account_status_from_payload(
        {
            "id": "acct_1",
            "charges_enabled": True,
            "payouts_enabled": False,
            "requirements": {"currently_due": ["external_account"], "disabled_reason": ""},
        }
    )

    assert status.account_id == "acct_1"
    assert status.currently_due == ["external_account"]
    assert status.requirements == {
        "currently_due": ["external_account"],
        "eventually_due": [],
        "past_due": [],
        "disabled_reason": None,
    }
    assert account_status_from_payload({"id": "acct_2"}).currently_due is None


def test_stub_gateway_returns_nothing_by_default():
    gateway = StubGateway()

    assert gateway.create_checkout_session(checkout_request()) is None
    assert gateway.create_connected_account(email="a@example.com", user_id=1) is None
    assert gateway.retrieve_account("acct_1") is None


def test_stub_gateway_canned_checkout_url():
    session = StubGateway(checkout_url="https://stripe.test/checkout").create_checkout_session(
        checkout_request()
    )

    assert session.session_id == STUB_SESSION_ID
    assert session.checkout_url == "https://stripe.test/checkout"


def test_build_payment_gateway_choices():
    live = build_payment_gateway(
        SimpleNamespace(PAYMENTS_GATEWAY="stripe", STRIPE_SECRET_KEY="sk_test_1")
    )
    missing_key = build_payment_gateway(
        SimpleNamespace(PAYMENTS_GATEWAY="stripe", STRIPE_SECRET_KEY="")
    )
    stub = build_payment_gateway(
        SimpleNamespace(
            PAYMENTS_GATEWAY="stub",
            STRIPE_SECRET_KEY="sk_test_1",
            PAYMENTS_STUB_CHECKOUT_URL="https://stripe.test/checkout",
        )
    )

    assert isinstance(live, StripeGateway)
    assert isinstance(missing_key, StubGateway)
    assert isinstance(stub, StubGateway)
    assert stub.checkout_url == "https://stripe.test/checkout"

    with pytest.raises(ImproperlyConfigured):
        build_payment_gateway(SimpleNamespace(PAYMENTS_GATEWAY="paypal", STRIPE_SECRET_KEY=""))


def test_app_config_gateway_uses_test_settings():
    assert isinstance(get_payment_gateway(), StubGateway)
