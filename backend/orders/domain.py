"""Domain helpers for rental request validation and pricing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from .exceptions import InvalidQuantity, InvalidRange, OutOfWindow

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_RENTAL_DAYS = 30


@dataclass(frozen=True)
class ListingWindow:
    """Published availability of a listing, inclusive on both ends."""

    available_from: date
    available_until: date

    @classmethod
    def for_listing(cls, listing) -> "ListingWindow":
        return cls(listing.available_from, listing.available_until)


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    @property
    def days(self) -> int:
        """Billable days; a same-day rental still bills one day."""
        return max((self.end - self.start).days, 1)


def _parse_date(value: date | str | None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidRange("Start and end dates are required (YYYY-MM-DD).")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise InvalidRange(f"Invalid date {value!r}; expected YYYY-MM-DD.") from exc


def parse_quantity(value) -> int:
    if isinstance(value, bool):
        raise InvalidQuantity("Quantity must be a whole number.")
    try:
        quantity = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidQuantity("Quantity must be a whole number.") from exc
    if quantity <= 0:
        raise InvalidQuantity("Quantity must be greater than zero.")
    return quantity


def validate_rental_request(
    start: date | str | None,
    end: date | str | None,
    quantity,
    window: ListingWindow,
) -> DateRange:
    """
    Check a requested range and quantity against a listing window.

    Checks run in order: date parsing and ordering, window containment, quantity.
    Raises an OrderValidationError subclass on the first failed check.
    """
    start_date = _parse_date(start)
    end_date = _parse_date(end)
    if end_date < start_date:
        raise InvalidRange("End date must be on or after start date.")
    if start_date < window.available_from or end_date > window.available_until:
        raise OutOfWindow(
            "Requested dates must fall within "
            f"{window.available_from.isoformat()} to {window.available_until.isoformat()}."
        )
    parse_quantity(quantity)
    return DateRange(start_date, end_date)


def default_rental_range(window: ListingWindow) -> DateRange:
    """Suggested request range: the window start plus up to 30 days."""
    start = window.available_from
    end = min(start + timedelta(days=DEFAULT_RENTAL_DAYS), window.available_until)
    return DateRange(start, end)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit Decimal to integer cents, rounding half up."""
    cents = (Decimal(amount) * Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


def billable_units(quantity: int, date_range: DateRange) -> int:
    return quantity * date_range.days
