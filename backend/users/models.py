from __future__ import annotations

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Marketplace account; the same user may rent space and list it."""

    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Customer used as the buyer reference at checkout.",
    )

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
