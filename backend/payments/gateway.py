"""
Payment gateway abstraction used by orders and seller verification.

The concrete gateway is chosen once when the payments app loads
(``PaymentsConfig.ready``) and handed to services explicitly:

    gateway = get_payment_gateway()
    machine = OrderStateMachine(store=OrderStore(), gateway=gateway)

``StripeGateway`` talks to the Stripe API with a bounded timeout and maps SDK
failures onto ``PaymentGatewayError``. ``StubGateway`` never leaves the
process; it returns ``None`` from every call unless a canned checkout URL is
configured for test environments.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.apps import apps
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)
STUB_SESSION_ID = "cs_test_stub"


class PaymentGatewayError(Exception):
    """The gateway failed or returned something unusable."""


class GatewayUnavailable(PaymentGatewayError):
    """Temporary provider/API issue that may succeed on retry."""


@dataclass(frozen=True)
class CheckoutRequest:
    """
    Parameters for a hosted checkout session.

    Attributes:
        unit_amount_cents: Price of one unit-day in minor currency units
        currency: ISO 4217 code, lower case
        label: Line item name shown on the hosted page
        quantity_units: Units multiplied by billable days
        buyer_email: Renter email used when no customer id is known
        order_id: Local order reference echoed back in event metadata
        success_url / cancel_url: Where the hosted page sends the buyer
        buyer_customer_id: Stripe Customer id, preferred over the email
    """

    unit_amount_cents: int
    currency: str
    label: str
    quantity_units: int
    buyer_email: str
    order_id: int
    success_url: str
    cancel_url: str
    buyer_customer_id: str = ""

    @property
    def total_cents(self) -> int:
        return self.unit_amount_cents * self.quantity_units

    @property
    def metadata(self) -> dict[str, str]:
        return {"order_id": str(self.order_id)}


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    checkout_url: str


@dataclass(frozen=True)
class AccountStatus:
    """Payout capability snapshot for a connected seller account."""

    account_id: str
    charges_enabled: bool
    payouts_enabled: bool
    currently_due: list[str] | None = None
    requirements: dict[str, Any] = field(default_factory=dict)


class PaymentGateway:
    """Interface every gateway implements."""

    name = "base"

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession | None:
        raise NotImplementedError

    def create_connected_account(self, *, email: str, user_id: int) -> str | None:
        raise NotImplementedError

    def create_onboarding_link(
        self, *, account_id: str, return_url: str, refresh_url: str
    ) -> str | None:
        raise NotImplementedError

    def retrieve_account(self, account_id: str) -> AccountStatus | None:
        raise NotImplementedError

    def find_customer(self, email: str) -> str | None:
        raise NotImplementedError

    def create_customer(self, *, email: str, name: str, user_id: int) -> str | None:
        raise NotImplementedError


def _object_value(payload: Any, key: str, default: Any = None) -> Any:
    """Safely fetch a field from a Stripe object or dict payload."""
    if isinstance(payload, dict):
        return payload.get(key, default)
    try:
        return payload[key]
    except (KeyError, TypeError, AttributeError):
        return getattr(payload, key, default)


def _listify(value: Any) -> list[Any]:
    if value in (None, "", ()):
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def account_status_from_payload(payload: Any) -> AccountStatus:
    """Build an AccountStatus from an account object or ``account.updated`` data."""
    requirements = _object_value(payload, "requirements", None) or {}
    raw_currently_due = _object_value(requirements, "currently_due", None)
    # A missing list is "unknown", not "nothing due".
    currently_due = list(raw_currently_due) if isinstance(raw_currently_due, list) else None
    return AccountStatus(
        account_id=_object_value(payload, "id", "") or "",
        charges_enabled=bool(_object_value(payload, "charges_enabled", False)),
        payouts_enabled=bool(_object_value(payload, "payouts_enabled", False)),
        currently_due=currently_due,
        requirements={
            "currently_due": _listify(raw_currently_due),
            "eventually_due": _listify(_object_value(requirements, "eventually_due", None)),
            "past_due": _listify(_object_value(requirements, "past_due", None)),
            "disabled_reason": _object_value(requirements, "disabled_reason", None) or None,
        },
    )


class StripeGateway(PaymentGateway):
    """Stripe Checkout + Connect Express gateway."""

    name = "stripe"

    def __init__(self, *, secret_key: str, timeout: float = 10.0, connect_country: str = "US"):
        if not secret_key:
            raise ImproperlyConfigured("Stripe secret key not configured.")
        self.secret_key = secret_key
        self.timeout = timeout
        self.connect_country = connect_country
        self.http_client = stripe.RequestsClient(timeout=timeout)

    def _configure_stripe(self) -> None:
        stripe.api_key = self.secret_key
        stripe.default_http_client = self.http_client

    def _handle_stripe_error(self, exc: stripe.StripeError, operation: str) -> None:
        """Map Stripe SDK errors onto gateway exception types."""
        logger.warning(
            "payments: stripe %s failed: %s",
            operation,
            exc,
            extra={"operation": operation, "stripe_code": getattr(exc, "code", None)},
        )
        if isinstance(exc, (stripe.RateLimitError, stripe.APIConnectionError, stripe.APIError)):
            raise GatewayUnavailable("Temporary Stripe error, please retry.") from exc
        if isinstance(exc, (stripe.AuthenticationError, stripe.PermissionError)):
            raise PaymentGatewayError("Stripe credentials are invalid or unauthorized.") from exc
        raise PaymentGatewayError(getattr(exc, "user_message", None) or str(exc)) from exc

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession | None:
        self._configure_stripe()
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency,
                        "unit_amount": request.unit_amount_cents,
                        "product_data": {"name": request.label},
                    },
                    "quantity": request.quantity_units,
                }
            ],
            "metadata": request.metadata,
            "success_url": request.success_url,
            "cancel_url": request.cancel_url,
        }
        if request.buyer_customer_id.startswith("cus_"):
            params["customer"] = request.buyer_customer_id
        elif request.buyer_email:
            params["customer_email"] = request.buyer_email

        started = time.monotonic()
        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "checkout_session_create")

        session_id = _object_value(session, "id", "")
        checkout_url = _object_value(session, "url", "")
        logger.info(
            "payments: checkout session created",
            extra={
                "order_id": request.order_id,
                "session_id": session_id,
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        if not session_id or not checkout_url:
            raise PaymentGatewayError("Stripe did not return a checkout session URL.")
        return CheckoutSession(session_id=session_id, checkout_url=checkout_url)

    def create_connected_account(self, *, email: str, user_id: int) -> str | None:
        self._configure_stripe()
        params: dict[str, Any] = {
            "type": "express",
            "country": self.connect_country,
            "capabilities": {
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            "metadata": {"user_id": str(user_id)},
        }
        if email:
            params["email"] = email
        try:
            account = stripe.Account.create(**params)
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "account_create")
        account_id = _object_value(account, "id", "")
        if not account_id:
            raise PaymentGatewayError("Stripe did not return an account id.")
        return account_id

    def create_onboarding_link(
        self, *, account_id: str, return_url: str, refresh_url: str
    ) -> str | None:
        self._configure_stripe()
        try:
            link = stripe.AccountLink.create(
                account=account_id,
                type="account_onboarding",
                refresh_url=refresh_url,
                return_url=return_url,
            )
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "account_link_create")
        link_url = _object_value(link, "url", "")
        if not link_url:
            raise PaymentGatewayError("Stripe did not return an onboarding link.")
        return link_url

    def retrieve_account(self, account_id: str) -> AccountStatus | None:
        self._configure_stripe()
        try:
            account = stripe.Account.retrieve(account_id)
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "account_retrieve")
        return account_status_from_payload(account)

    def find_customer(self, email: str) -> str | None:
        self._configure_stripe()
        try:
            result = stripe.Customer.list(email=email, limit=1)
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "customer_list")
        data = _object_value(result, "data", []) or []
        if not data:
            return None
        return _object_value(data[0], "id", None) or None

    def create_customer(self, *, email: str, name: str, user_id: int) -> str | None:
        self._configure_stripe()
        try:
            customer = stripe.Customer.create(
                email=email or None,
                name=name or None,
                metadata={"user_id": str(user_id)},
            )
        except stripe.StripeError as exc:
            self._handle_stripe_error(exc, "customer_create")
        return _object_value(customer, "id", None) or None


class StubGateway(PaymentGateway):
    """In-process gateway for environments without payment credentials."""

    name = "stub"

    def __init__(self, *, checkout_url: str = ""):
        self.checkout_url = checkout_url

    def create_checkout_session(self, request: CheckoutRequest) -> CheckoutSession | None:
        if not self.checkout_url:
            logger.info(
                "payments: stub gateway skipped checkout",
                extra={"order_id": request.order_id},
            )
            return None
        return CheckoutSession(session_id=STUB_SESSION_ID, checkout_url=self.checkout_url)

    def create_connected_account(self, *, email: str, user_id: int) -> str | None:
        return None

    def create_onboarding_link(
        self, *, account_id: str, return_url: str, refresh_url: str
    ) -> str | None:
        return None

    def retrieve_account(self, account_id: str) -> AccountStatus | None:
        return None

    def find_customer(self, email: str) -> str | None:
        return None

    def create_customer(self, *, email: str, name: str, user_id: int) -> str | None:
        return None


def build_payment_gateway(settings) -> PaymentGateway:
    """Pick the gateway implementation from settings."""
    choice = (getattr(settings, "PAYMENTS_GATEWAY", "") or "stripe").strip().lower()
    secret_key = getattr(settings, "STRIPE_SECRET_KEY", "") or ""
    if choice == "stripe" and secret_key:
        return StripeGateway(
            secret_key=secret_key,
            timeout=float(getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)),
            connect_country=getattr(settings, "STRIPE_CONNECT_COUNTRY", "US"),
        )
    if choice == "stripe":
        logger.warning("payments: STRIPE_SECRET_KEY missing; falling back to stub gateway")
    elif choice != "stub":
        raise ImproperlyConfigured(f"Unknown PAYMENTS_GATEWAY {choice!r}.")
    return StubGateway(checkout_url=getattr(settings, "PAYMENTS_STUB_CHECKOUT_URL", "") or "")


def get_payment_gateway() -> PaymentGateway:
    """Return the gateway selected when the payments app loaded."""
    return apps.get_app_config("payments").gateway
