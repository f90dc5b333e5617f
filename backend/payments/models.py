"""Seller payout account records."""

from __future__ import annotations

from django.conf import settings
from django.db import models


class SellerAccount(models.Model):
    """Connected payout account linking a seller to the payment provider."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="seller_account",
    )
    external_account_id = models.CharField(max_length=255, unique=True, null=True, blank=True)
    verified = models.BooleanField(
        default=False,
        help_text="Charges and payouts enabled, or nothing currently due.",
    )
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    requirements_due = models.JSONField(default=dict, blank=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-last_synced_at", "user_id"]

    def __str__(self) -> str:
        return f"{self.user} - {self.external_account_id or 'unlinked'}"
