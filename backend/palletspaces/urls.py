from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from payments.webhooks import payment_webhook

urlpatterns = [
    path("api/users/", include("users.urls")),
    path("api/listings/", include("listings.urls")),
    path("api/orders/", include(("orders.urls", "orders"), namespace="orders")),
    path("api/payments/", include("payments.urls")),
    path("api/webhooks/payment/", payment_webhook, name="payment_webhook"),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))
