"""App configuration for the orders domain."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Register the orders app with sane defaults."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
