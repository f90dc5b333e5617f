"""Listing endpoints; creation is gated on a verified seller payout account."""

from __future__ import annotations

import logging

from rest_framework import mixins, permissions, viewsets
from rest_framework.pagination import PageNumberPagination

from payments.gateway import get_payment_gateway
from payments.verification import SellerNotVerified, VerificationGate

from .models import Listing
from .serializers import ListingSerializer

logger = logging.getLogger(__name__)
PUBLIC_ACTIONS = {"list", "retrieve"}


class ListingPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"
    max_page_size = 100


class CanListSpace(permissions.BasePermission):
    message = "Connect and verify a payout account before listing space."

    def has_permission(self, request, view):
        if request.method != "POST":
            return True
        user = request.user
        if not (user and user.is_authenticated):
            return False
        try:
            VerificationGate(get_payment_gateway()).assert_can_list(user)
        except SellerNotVerified:
            return False
        return True


class ListingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ListingSerializer
    pagination_class = ListingPagination
    permission_classes = [permissions.IsAuthenticated, CanListSpace]

    def get_permissions(self):
        if getattr(self, "action", None) in PUBLIC_ACTIONS:
            return [permissions.AllowAny()]
        return [permission() for permission in self.permission_classes]

    def get_queryset(self):
        return Listing.objects.filter(is_visible=True).select_related("owner")

    def perform_create(self, serializer):
        listing = serializer.save(owner=self.request.user)
        logger.info(
            "listings: created listing",
            extra={"listing_id": listing.id, "owner_id": listing.owner_id},
        )
