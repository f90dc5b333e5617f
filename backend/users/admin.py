from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "stripe_customer_id", "is_staff", "is_active")
    search_fields = ("username", "email", "stripe_customer_id")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Payments", {"fields": ("stripe_customer_id",)}),
    )
