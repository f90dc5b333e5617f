from django.urls import path

from . import api

app_name = "payments"

urlpatterns = [
    path("connect/onboarding/", api.connect_onboarding, name="connect_onboarding"),
    path("connect/refresh/", api.connect_refresh, name="connect_refresh"),
    path("connect/status/", api.connect_status, name="connect_status"),
    path(
        "admin/backfill-customers/",
        api.admin_backfill_customers,
        name="admin_backfill_customers",
    ),
]
