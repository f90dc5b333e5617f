from __future__ import annotations

import logging

from celery import shared_task

from payments.customers import DEFAULT_BACKFILL_LIMIT, backfill_customers
from payments.gateway import get_payment_gateway

logger = logging.getLogger(__name__)
MAX_BATCHES_PER_RUN = 50


@shared_task(name="payments.backfill_stripe_customers")
def backfill_stripe_customers(
    limit: int = DEFAULT_BACKFILL_LIMIT, max_batches: int = MAX_BATCHES_PER_RUN
):
    """
    Link Stripe customers for users missing one, batch by batch.
    Safe to run repeatedly; users that already have a customer id are skipped.
    """
    gateway = get_payment_gateway()
    cursor = 0
    totals = {"processed": 0, "created": 0, "existing": 0, "errors": 0, "batches": 0}
    while totals["batches"] < max_batches:
        summary = backfill_customers(gateway, limit=limit, cursor=cursor)
        totals["batches"] += 1
        totals["processed"] += summary.processed
        totals["created"] += summary.created
        totals["existing"] += summary.existing
        totals["errors"] += len(summary.errors)
        if summary.done or summary.next_cursor is None:
            break
        cursor = summary.next_cursor
    logger.info(
        "payments: customer backfill finished",
        extra={f"backfill_{key}": value for key, value in totals.items()},
    )
    return totals
