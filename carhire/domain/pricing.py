"""Rental pricing.

All amounts are integers in the smallest currency unit (cents). Rounding
happens once, when a decimal rate is converted at listing creation, and never
here.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime

from carhire.config import settings
from carhire.core.exceptions import InvalidAddon, InvalidDateRange, ValidationError

SECONDS_PER_DAY = 24 * 60 * 60


@dataclass(frozen=True)
class Addon:
    """A linear extra charged on top of the daily rate (e.g. chauffeur by km)."""

    units: int
    rate_per_unit: int
    label: str = "chauffeur"

    @property
    def amount(self) -> int:
        return self.units * self.rate_per_unit


@dataclass(frozen=True)
class PriceBreakdown:
    """Result of a price calculation."""

    days: int
    daily_rate: int
    base_amount: int
    addon_units: int
    addon_rate: int
    addon_amount: int

    @property
    def total(self) -> int:
        return self.base_amount + self.addon_amount


def rental_days(start: date | datetime, end: date | datetime) -> int:
    """Number of billable days in [start, end), rounded up to whole days."""
    if isinstance(start, datetime) != isinstance(end, datetime):
        raise InvalidDateRange("start and end must both be dates or both be datetimes")
    if isinstance(start, datetime):
        seconds = (end - start).total_seconds()
        return math.ceil(seconds / SECONDS_PER_DAY)
    return (end - start).days


def validate_addon(addon: Addon, max_units: int | None = None) -> None:
    max_units = settings.max_addon_units if max_units is None else max_units
    if isinstance(addon.units, bool) or not isinstance(addon.units, int):
        raise InvalidAddon("Addon units must be a whole number")
    if addon.units < 0 or addon.units > max_units:
        raise InvalidAddon(f"Addon units must be between 0 and {max_units}")
    if addon.rate_per_unit < 0:
        raise InvalidAddon("Addon rate cannot be negative")


def calculate_price(
    daily_rate: int,
    start: date | datetime,
    end: date | datetime,
    addon: Addon | None = None,
    max_days: int | None = None,
) -> PriceBreakdown:
    """Price a rental.

    Args:
        daily_rate: Listing rate per day in cents
        start: First day of the rental (inclusive)
        end: Return day (exclusive)
        addon: Optional linear extra
        max_days: Longest allowed rental, defaults to ``settings.max_rental_days``

    Returns:
        PriceBreakdown with the total folded in

    Raises:
        InvalidDateRange: If the range is empty or longer than ``max_days``
        InvalidAddon: If the addon is out of bounds
    """
    max_days = settings.max_rental_days if max_days is None else max_days
    if daily_rate < 0:
        raise ValidationError("Daily rate cannot be negative")

    days = rental_days(start, end)
    if days <= 0:
        raise InvalidDateRange("End date must be after start date")
    if days > max_days:
        raise InvalidDateRange(f"Bookings are limited to {max_days} days")

    addon_units = addon_rate = addon_amount = 0
    if addon is not None:
        validate_addon(addon)
        addon_units, addon_rate, addon_amount = addon.units, addon.rate_per_unit, addon.amount

    return PriceBreakdown(
        days=days,
        daily_rate=daily_rate,
        base_amount=days * daily_rate,
        addon_units=addon_units,
        addon_rate=addon_rate,
        addon_amount=addon_amount,
    )


def price(
    daily_rate: int,
    start: date | datetime,
    end: date | datetime,
    addon: Addon | None = None,
) -> int:
    """Total price in cents."""
    return calculate_price(daily_rate, start, end, addon).total

