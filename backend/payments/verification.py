"""Seller payout verification: account linking, status refresh, listing gate."""

from __future__ import annotations

import logging

from django.utils import timezone

from .gateway import AccountStatus, PaymentGateway
from .models import SellerAccount

logger = logging.getLogger(__name__)


class SellerNotVerified(Exception):
    """The user has no verified payout account and may not list space."""


def is_payout_ready(
    *, charges_enabled: bool, payouts_enabled: bool, currently_due: list | None
) -> bool:
    """Return True when the account can take charges and receive payouts."""
    if charges_enabled and payouts_enabled:
        return True
    return isinstance(currently_due, list) and not currently_due


def apply_account_status(status: AccountStatus) -> int:
    """Persist a capability snapshot onto the seller holding ``status.account_id``."""
    if not status.account_id:
        return 0
    verified = is_payout_ready(
        charges_enabled=status.charges_enabled,
        payouts_enabled=status.payouts_enabled,
        currently_due=status.currently_due,
    )
    now = timezone.now()
    updated = SellerAccount.objects.filter(external_account_id=status.account_id).update(
        verified=verified,
        charges_enabled=status.charges_enabled,
        payouts_enabled=status.payouts_enabled,
        requirements_due=status.requirements,
        last_synced_at=now,
        updated_at=now,
    )
    logger.info(
        "payments: seller account status applied",
        extra={"account_id": status.account_id, "verified": verified, "rows": updated},
    )
    return updated


class VerificationGate:
    """Links sellers to payout accounts and decides whether they may list space."""

    def __init__(self, gateway: PaymentGateway):
        self.gateway = gateway

    def ensure_linked_account(self, user, *, return_url: str, refresh_url: str) -> str | None:
        """
        Return an onboarding URL for the seller, creating the external account first
        when none is linked. Returns None when the gateway is not configured.
        """
        account, _ = SellerAccount.objects.get_or_create(user=user)
        account_id = account.external_account_id
        if not account_id:
            created_id = self.gateway.create_connected_account(email=user.email, user_id=user.id)
            if not created_id:
                logger.info(
                    "payments: gateway returned no connected account",
                    extra={"user_id": user.id, "gateway": self.gateway.name},
                )
                return None
            SellerAccount.objects.filter(
                pk=account.pk,
                external_account_id__isnull=True,
            ).update(external_account_id=created_id, updated_at=timezone.now())
            account.refresh_from_db(fields=["external_account_id"])
            account_id = account.external_account_id
            if account_id != created_id:
                logger.warning(
                    "payments: concurrent onboarding linked another account; reusing it",
                    extra={
                        "user_id": user.id,
                        "account_id": account_id,
                        "orphan_account_id": created_id,
                    },
                )
            else:
                logger.info(
                    "payments: linked connected account",
                    extra={"user_id": user.id, "account_id": account_id},
                )

        return self.gateway.create_onboarding_link(
            account_id=account_id,
            return_url=return_url,
            refresh_url=refresh_url,
        )

    def refresh_status(self, user) -> SellerAccount | None:
        """Re-fetch the seller's capabilities and persist the verification flag."""
        account = SellerAccount.objects.filter(user=user).first()
        if account is None or not account.external_account_id:
            return account
        status = self.gateway.retrieve_account(account.external_account_id)
        if status is None:
            return account
        if not status.account_id:
            status = AccountStatus(
                account_id=account.external_account_id,
                charges_enabled=status.charges_enabled,
                payouts_enabled=status.payouts_enabled,
                currently_due=status.currently_due,
                requirements=status.requirements,
            )
        apply_account_status(status)
        account.refresh_from_db()
        return account

    def is_verified(self, user) -> bool:
        if not getattr(user, "is_authenticated", False):
            return False
        return SellerAccount.objects.filter(user=user, verified=True).exists()

    def assert_can_list(self, user) -> None:
        """Raise SellerNotVerified unless the user may create listings."""
        if not self.is_verified(user):
            raise SellerNotVerified("Connect and verify a payout account before listing space.")
