from django.contrib import admin

from .models import SellerAccount


@admin.register(SellerAccount)
class SellerAccountAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "external_account_id",
        "verified",
        "charges_enabled",
        "payouts_enabled",
        "last_synced_at",
    )
    list_filter = ("verified",)
    search_fields = ("user__username", "user__email", "external_account_id")
    readonly_fields = ("requirements_due", "last_synced_at", "created_at", "updated_at")
