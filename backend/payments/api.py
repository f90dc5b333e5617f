"""Seller payout onboarding and payment admin endpoints."""

from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response

from .customers import backfill_customers, clamp_backfill_limit
from .gateway import PaymentGatewayError, get_payment_gateway
from .models import SellerAccount
from .verification import VerificationGate

logger = logging.getLogger(__name__)
ONBOARDING_ERROR_MESSAGE = "Payout onboarding is temporarily unavailable. Please try again later."


def _onboarding_urls() -> tuple[str, str]:
    base = (getattr(settings, "APP_BASE_URL", "") or "").rstrip("/")
    return f"{base}/me", f"{base}/me/verify"


def _account_payload(account: SellerAccount | None) -> dict:
    if account is None:
        return {
            "external_account_id": None,
            "verified": False,
            "charges_enabled": False,
            "payouts_enabled": False,
            "requirements_due": {},
            "last_synced_at": None,
        }
    return {
        "external_account_id": account.external_account_id,
        "verified": account.verified,
        "charges_enabled": account.charges_enabled,
        "payouts_enabled": account.payouts_enabled,
        "requirements_due": account.requirements_due or {},
        "last_synced_at": account.last_synced_at.isoformat() if account.last_synced_at else None,
    }


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def connect_onboarding(request):
    """Return an onboarding link for the seller's connected payout account."""
    user = request.user
    return_url, refresh_url = _onboarding_urls()
    gate = VerificationGate(get_payment_gateway())
    try:
        onboarding_url = gate.ensure_linked_account(
            user,
            return_url=return_url,
            refresh_url=refresh_url,
        )
    except PaymentGatewayError as exc:
        logger.warning("payments: onboarding link failure for user %s: %s", user.id, exc)
        return Response(
            {"detail": ONBOARDING_ERROR_MESSAGE},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    account = SellerAccount.objects.filter(user=user).first()
    payload = {
        "onboarding_url": onboarding_url,
        "external_account_id": account.external_account_id if account else None,
    }
    if onboarding_url is None:
        payload["detail"] = "Payouts are not configured in this environment."
    return Response(payload)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
def connect_refresh(request):
    """Re-read the seller's capabilities from the provider."""
    gate = VerificationGate(get_payment_gateway())
    try:
        account = gate.refresh_status(request.user)
    except PaymentGatewayError as exc:
        logger.warning(
            "payments: connect refresh failure for user %s: %s", request.user.id, exc
        )
        return Response(
            {"detail": ONBOARDING_ERROR_MESSAGE},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return Response(_account_payload(account))


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def connect_status(request):
    account = SellerAccount.objects.filter(user=request.user).first()
    return Response(_account_payload(account))


@api_view(["POST"])
@permission_classes([IsAdminUser])
def admin_backfill_customers(request):
    """Link Stripe customers for one batch of users missing them."""
    limit = clamp_backfill_limit(request.query_params.get("limit", request.data.get("limit")))
    raw_cursor = request.query_params.get("cursor", request.data.get("cursor"))
    try:
        cursor = max(int(raw_cursor), 0) if raw_cursor not in (None, "") else 0
    except (TypeError, ValueError):
        return Response({"cursor": ["Must be an integer."]}, status=status.HTTP_400_BAD_REQUEST)

    summary = backfill_customers(get_payment_gateway(), limit=limit, cursor=cursor)
    logger.info(
        "payments: customer backfill batch",
        extra={"processed": summary.processed, "cursor": cursor, "done": summary.done},
    )
    return Response(summary.as_dict())
