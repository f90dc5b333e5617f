"""App configuration for payments."""

import logging

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class PaymentsConfig(AppConfig):
    """Register the payments app and resolve the payment gateway once."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    gateway = None

    def ready(self) -> None:
        from .gateway import build_payment_gateway

        self.gateway = build_payment_gateway(settings)
        logger.info("payments: using %s gateway", self.gateway.name)
