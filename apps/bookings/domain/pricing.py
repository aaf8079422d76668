"""
Pricing Calculator

Stay length and price for a date range and a nightly rate.

Nights are counted on calendar dates: any time of day or timezone on the
inputs is discarded first, so a DST switch inside the stay can never add
or remove a night.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from shared.domain.exceptions import InvalidRange
from shared.domain.value_objects import DateRange, Money


@dataclass(frozen=True)
class StayPrice:
    nights: int
    total: Money


def stay_dates(start_date: date, end_date: date) -> DateRange:
    """Build the stay range, translating an empty or inverted range into InvalidRange."""
    try:
        return DateRange(start_date, end_date)
    except ValueError:
        raise InvalidRange(
            "End date must be after start date.",
            start_date=str(start_date),
            end_date=str(end_date),
        )


def price_stay(start_date: date, end_date: date, nightly_rate, currency: str = 'USD') -> StayPrice:
    """
    nights = whole days between the calendar dates, total = nights x rate

    Example: 2024-06-01 -> 2024-06-04 at 50 gives 3 nights, 150.00.
    """
    dates = stay_dates(start_date, end_date)
    rate = Money(nightly_rate, currency)
    nights = len(dates)
    return StayPrice(nights=nights, total=rate * nights)


def cheapest_rate(rates: Iterable) -> Optional[Decimal]:
    """Lowest nightly rate among the given campsite prices, or None for no campsites."""
    rates = [Decimal(str(rate)) for rate in rates]
    if not rates:
        return None
    return min(rates)
