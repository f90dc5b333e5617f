from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


class Listing(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    title = models.CharField(max_length=140)
    description = models.TextField(blank=True)
    price_per_unit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text="Price per pallet unit per day.",
    )
    available_from = models.DateField()
    available_until = models.DateField()
    is_visible = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["is_visible", "available_from", "available_until"],
                name="listing_visible_window_idx",
            ),
        ]

    def clean(self):
        if not self.title or len(self.title.strip()) < 3:
            raise ValidationError({"title": ["Title too short."]})
        if (
            self.available_from
            and self.available_until
            and self.available_until < self.available_from
        ):
            raise ValidationError(
                {"available_until": ["Availability must end on or after it starts."]}
            )

    def __str__(self) -> str:
        return f"{self.title} ({self.owner_id})"
