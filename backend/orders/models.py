"""Database models for pallet space orders."""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from listings.models import Listing


class Order(models.Model):
    """A renter's reservation request for space on a listing."""

    class Status(models.TextChoices):
        PENDING_REVIEW = "pending_review", "pending review"
        SUBMITTED = "submitted", "submitted"
        PAID = "paid", "paid"
        CANCELLED = "cancelled", "cancelled"

    listing = models.ForeignKey(
        Listing,
        related_name="orders",
        on_delete=models.PROTECT,
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="orders",
        on_delete=models.PROTECT,
    )
    renter_name = models.CharField(max_length=255, blank=True, default="")
    renter_email = models.EmailField(blank=True, default="")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    start_date = models.DateField()
    end_date = models.DateField(help_text="Inclusive; on or after start_date.")
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING_REVIEW,
    )
    external_session_id = models.CharField(max_length=255, null=True, blank=True)
    external_checkout_url = models.URLField(max_length=2048, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["renter", "status"], name="order_renter_status_idx"),
            models.Index(fields=["listing", "start_date"], name="order_listing_start_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="order_end_on_or_after_start",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_quantity_positive",
            ),
        ]

    def __str__(self) -> str:
        """Return a human-readable representation."""
        return f"Order #{self.pk} for {self.listing_id} ({self.status})"

    @property
    def days(self) -> int:
        """Billable days; at least one."""
        if not self.start_date or not self.end_date:
            return 0
        return max((self.end_date - self.start_date).days, 1)

    def is_terminal(self) -> bool:
        return self.status in {self.Status.PAID, self.Status.CANCELLED}


OPEN_STATUSES = (Order.Status.PENDING_REVIEW, Order.Status.SUBMITTED)
