"""Stripe Customer linkage for renters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.contrib.auth import get_user_model

from .gateway import PaymentGateway, PaymentGatewayError

logger = logging.getLogger(__name__)
User = get_user_model()

DEFAULT_BACKFILL_LIMIT = 200
MAX_BACKFILL_LIMIT = 1000


@dataclass(frozen=True)
class CustomerLink:
    customer_id: str | None
    created: bool = False


@dataclass
class BackfillSummary:
    processed: int = 0
    created: int = 0
    existing: int = 0
    errors: list[list] = field(default_factory=list)
    done: bool = True
    next_cursor: int | None = None

    def as_dict(self) -> dict:
        return {
            "processed": self.processed,
            "created": self.created,
            "existing": self.existing,
            "errors": self.errors,
            "done": self.done,
            "next_cursor": self.next_cursor,
        }


def ensure_stripe_customer(user, gateway: PaymentGateway) -> CustomerLink:
    """
    Return the user's Stripe Customer id, reusing a customer with the same email
    before creating a new one. Raises PaymentGatewayError on provider failures.
    """
    stored_id = (user.stripe_customer_id or "").strip()
    if stored_id:
        return CustomerLink(customer_id=stored_id)

    customer_id = gateway.find_customer(user.email) if user.email else None
    created = False
    if not customer_id:
        customer_id = gateway.create_customer(
            email=user.email,
            name=user.get_full_name() or user.username,
            user_id=user.id,
        )
        created = bool(customer_id)
    if not customer_id:
        return CustomerLink(customer_id=None)

    User.objects.filter(pk=user.pk).update(stripe_customer_id=customer_id)
    user.stripe_customer_id = customer_id
    logger.info(
        "payments: linked stripe customer",
        extra={"user_id": user.id, "customer_id": customer_id, "customer_created": created},
    )
    return CustomerLink(customer_id=customer_id, created=created)


def clamp_backfill_limit(raw_limit) -> int:
    try:
        limit = int(raw_limit)
    except (TypeError, ValueError):
        return DEFAULT_BACKFILL_LIMIT
    return max(1, min(limit, MAX_BACKFILL_LIMIT))


def backfill_customers(
    gateway: PaymentGateway, *, limit: int = DEFAULT_BACKFILL_LIMIT, cursor: int = 0
) -> BackfillSummary:
    """Link Stripe customers for users missing one, in id order after ``cursor``."""
    limit = clamp_backfill_limit(limit)
    users = list(
        User.objects.filter(stripe_customer_id="", pk__gt=cursor)
        .order_by("pk")[:limit]
    )
    summary = BackfillSummary(processed=len(users))
    last_id = cursor
    for user in users:
        last_id = max(last_id, user.pk)
        try:
            link = ensure_stripe_customer(user, gateway)
        except PaymentGatewayError as exc:
            logger.warning(
                "payments: customer backfill failed for user %s: %s",
                user.pk,
                exc,
                extra={"user_id": user.pk},
            )
            summary.errors.append([user.pk, str(exc)])
            continue
        if link.created:
            summary.created += 1
        else:
            summary.existing += 1

    summary.done = len(users) < limit
    summary.next_cursor = None if summary.done else last_id
    return summary
