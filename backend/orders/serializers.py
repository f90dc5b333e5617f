"""Serializers for order API endpoints."""

from __future__ import annotations

from rest_framework import serializers

from .models import Order


class OrderCreateSerializer(serializers.Serializer):
    """Raw rental request; range and quantity checks happen in the domain layer."""

    listing = serializers.IntegerField()
    quantity = serializers.CharField()
    start_date = serializers.CharField()
    end_date = serializers.CharField()


class OrderSerializer(serializers.ModelSerializer):
    listing_title = serializers.ReadOnlyField(source="listing.title")
    days = serializers.ReadOnlyField()

    class Meta:
        model = Order
        fields = [
            "id",
            "listing",
            "listing_title",
            "renter",
            "renter_name",
            "renter_email",
            "quantity",
            "start_date",
            "end_date",
            "days",
            "status",
            "external_checkout_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
