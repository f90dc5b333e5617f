from django.contrib import admin

from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "listing",
        "renter",
        "quantity",
        "start_date",
        "end_date",
        "status",
        "created_at",
    )
    list_filter = ("status",)
    search_fields = ("renter__username", "renter_email", "external_session_id")
    readonly_fields = ("external_session_id", "external_checkout_url", "created_at", "updated_at")
