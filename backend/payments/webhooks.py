"""Verification and reconciliation of payment provider webhook events."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

import stripe
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import (
    api_view,
    authentication_classes,
    permission_classes,
    throttle_classes,
)
from rest_framework.response import Response

from orders.exceptions import PersistenceError
from orders.store import OrderStore

from .gateway import account_status_from_payload
from .verification import apply_account_status

logger = logging.getLogger(__name__)
SIGNATURE_TOLERANCE_SECONDS = 300
SETTLED_PAYMENT_STATUSES = {"paid", "no_payment_required"}


class SignatureInvalid(Exception):
    """The webhook payload was not signed with the shared secret."""


def _parse_order_id(metadata: Any) -> int | None:
    if not isinstance(metadata, dict):
        return None
    raw = metadata.get("order_id")
    try:
        order_id = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return order_id if order_id > 0 else None


class WebhookReconciler:
    """
    Apply provider events as idempotent target-state writes.

    Duplicate or reordered deliveries are safe: payment events only ever move an
    order to ``paid`` (never out of ``cancelled``) and account events overwrite
    the seller's capability snapshot.
    """

    def __init__(self, store: OrderStore | None = None):
        self.store = store or OrderStore()
        self.handlers: dict[str, Callable[[dict], None]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "checkout.session.async_payment_succeeded": self._handle_payment_succeeded,
            "account.updated": self._handle_account_updated,
        }

    def verify(self, raw_body: bytes | str, signature_header: str, shared_secret: str) -> str:
        if not shared_secret:
            raise SignatureInvalid("Webhook secret not configured.")
        if not signature_header:
            raise SignatureInvalid("Missing signature header.")
        if isinstance(raw_body, bytes):
            try:
                payload = raw_body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise SignatureInvalid("Payload is not valid UTF-8.") from exc
        else:
            payload = raw_body
        try:
            stripe.WebhookSignature.verify_header(
                payload,
                signature_header,
                shared_secret,
                tolerance=SIGNATURE_TOLERANCE_SECONDS,
            )
        except stripe.SignatureVerificationError as exc:
            raise SignatureInvalid(str(exc)) from exc
        return payload

    def handle(self, raw_body: bytes | str, signature_header: str, shared_secret: str) -> int:
        """Verify and apply one delivery; return the HTTP status for the provider."""
        try:
            payload = self.verify(raw_body, signature_header, shared_secret)
        except SignatureInvalid as exc:
            logger.warning("payments: webhook rejected: %s", exc)
            return status.HTTP_400_BAD_REQUEST

        try:
            event = json.loads(payload)
        except ValueError:
            logger.warning("payments: webhook body is not valid JSON")
            return status.HTTP_200_OK
        if not isinstance(event, dict):
            logger.warning("payments: webhook body is not an event object")
            return status.HTTP_200_OK

        event_type = event.get("type")
        if not isinstance(event_type, str):
            logger.warning(
                "payments: webhook event without a usable type",
                extra={"event_id": event.get("id")},
            )
            return status.HTTP_200_OK
        handler = self.handlers.get(event_type)
        if handler is None:
            logger.debug("payments: ignoring webhook event %s", event_type)
            return status.HTTP_200_OK

        data = event.get("data")
        data_object = data.get("object") if isinstance(data, dict) else None
        if not isinstance(data_object, dict):
            logger.warning(
                "payments: webhook event without data object",
                extra={"event_type": event_type, "event_id": event.get("id")},
            )
            return status.HTTP_200_OK

        handler(data_object)
        return status.HTTP_200_OK

    def _handle_checkout_completed(self, session: dict) -> None:
        payment_status = session.get("payment_status")
        if payment_status is not None and payment_status not in SETTLED_PAYMENT_STATUSES:
            logger.info(
                "payments: checkout completed without settlement",
                extra={"session_id": session.get("id"), "payment_status": payment_status},
            )
            return
        self._handle_payment_succeeded(session)

    def _handle_payment_succeeded(self, session: dict) -> None:
        order_id = _parse_order_id(session.get("metadata"))
        if order_id is None:
            logger.warning(
                "payments: payment event missing order reference",
                extra={"session_id": session.get("id")},
            )
            return
        updated = self.store.mark_paid(order_id)
        logger.info(
            "payments: payment event applied",
            extra={"order_id": order_id, "session_id": session.get("id"), "rows": updated},
        )

    def _handle_account_updated(self, account: dict) -> None:
        account_status = account_status_from_payload(account)
        if not account_status.account_id:
            logger.warning("payments: account.updated without account id")
            return
        apply_account_status(account_status)


@api_view(["POST"])
@authentication_classes([])
@permission_classes([])
@throttle_classes([])
def payment_webhook(request):
    """Receive signed provider events."""
    reconciler = WebhookReconciler()
    try:
        status_code = reconciler.handle(
            request.body,
            request.META.get("HTTP_STRIPE_SIGNATURE", ""),
            getattr(settings, "STRIPE_WEBHOOK_SECRET", ""),
        )
    except PersistenceError:
        # Non-2xx makes the provider redeliver later.
        return Response(status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(status=status_code)
