"""Initial migration for the orders app."""

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("renter_name", models.CharField(blank=True, default="", max_length=255)),
                ("renter_email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("start_date", models.DateField()),
                (
                    "end_date",
                    models.DateField(help_text="Inclusive; on or after start_date."),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending_review", "pending review"),
                            ("submitted", "submitted"),
                            ("paid", "paid"),
                            ("cancelled", "cancelled"),
                        ],
                        default="pending_review",
                        max_length=16,
                    ),
                ),
                (
                    "external_session_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                (
                    "external_checkout_url",
                    models.URLField(blank=True, max_length=2048, null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="listings.listing",
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["renter", "status"], name="order_renter_status_idx"),
                    models.Index(fields=["listing", "start_date"], name="order_listing_start_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gte=models.F("start_date")),
                        name="order_end_on_or_after_start",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity__gt=0),
                        name="order_quantity_positive",
                    ),
                ],
            },
        ),
    ]
