"""Domain errors raised by the order lifecycle."""

from __future__ import annotations

from django.core.exceptions import ValidationError


class OrderValidationError(ValidationError):
    """Rental request rejected before any row is written."""

    code = "invalid"
    field = "non_field_errors"

    def __init__(self, message: str):
        super().__init__({self.field: [message]})


class InvalidRange(OrderValidationError):
    code = "invalid_range"
    field = "end_date"


class OutOfWindow(OrderValidationError):
    code = "out_of_window"
    field = "start_date"


class InvalidQuantity(OrderValidationError):
    code = "invalid_quantity"
    field = "quantity"


class ListingNotFound(Exception):
    """Listing missing or hidden."""


class OrderNotFound(Exception):
    pass


class OrderForbidden(Exception):
    """The order belongs to another renter."""


class PersistenceError(Exception):
    """The relational store failed while reading or writing an order."""

    def __init__(self, message: str, *, order_id: int | None = None, operation: str = ""):
        super().__init__(message)
        self.order_id = order_id
        self.operation = operation
