from django.contrib import admin

from .models import Listing


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "title",
        "owner",
        "price_per_unit",
        "available_from",
        "available_until",
        "is_visible",
    )
    list_filter = ("is_visible",)
    search_fields = ("title", "owner__username")
