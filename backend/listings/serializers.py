from rest_framework import serializers

from .models import Listing


class ListingSerializer(serializers.ModelSerializer):
    owner = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Listing
        fields = [
            "id",
            "owner",
            "title",
            "description",
            "price_per_unit",
            "available_from",
            "available_until",
            "is_visible",
            "created_at",
        ]
        read_only_fields = ["id", "owner", "created_at"]

    def validate_title(self, value: str) -> str:
        if len(value.strip()) < 3:
            raise serializers.ValidationError("Title too short.")
        return value.strip()

    def validate(self, attrs):
        start = attrs.get("available_from", getattr(self.instance, "available_from", None))
        end = attrs.get("available_until", getattr(self.instance, "available_until", None))
        if start and end and end < start:
            raise serializers.ValidationError(
                {"available_until": ["Availability must end on or after it starts."]}
            )
        return attrs
