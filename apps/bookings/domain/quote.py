"""
Booking Quote

An unpersisted, priced proposal for a stay. The quote travels to the
payment provider as checkout session metadata and comes back on
confirmation, so the booking is rebuilt from server-issued values only.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from shared.domain.exceptions import InvalidRange
from shared.domain.value_objects import DateRange, Money


@dataclass(frozen=True)
class BookingQuote:
    user_id: int
    campground_id: int
    campsite_id: Optional[int]
    start_date: date
    end_date: date
    nights: int
    total: Money
    guest_count: int
    effective_rate: Money

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    @property
    def currency(self) -> str:
        return self.total.currency

    def to_metadata(self) -> Dict[str, str]:
        """Flat string map, the only shape provider metadata accepts."""
        return {
            'userId': str(self.user_id),
            'campgroundId': str(self.campground_id),
            'campsiteId': '' if self.campsite_id is None else str(self.campsite_id),
            'startDate': self.start_date.isoformat(),
            'endDate': self.end_date.isoformat(),
            'totalDays': str(self.nights),
            'totalPrice': str(self.total.amount),
            'nightlyRate': str(self.effective_rate.amount),
            'currency': self.currency,
            'guestCount': str(self.guest_count),
        }

    @classmethod
    def from_metadata(cls, metadata: Dict[str, str]) -> 'BookingQuote':
        """
        Rebuild a quote from session metadata

        Raises:
            InvalidRange: if the metadata is incomplete or malformed
        """
        try:
            currency = metadata.get('currency') or 'USD'
            campsite_id = metadata.get('campsiteId') or None
            return cls(
                user_id=int(metadata['userId']),
                campground_id=int(metadata['campgroundId']),
                campsite_id=int(campsite_id) if campsite_id else None,
                start_date=date.fromisoformat(metadata['startDate']),
                end_date=date.fromisoformat(metadata['endDate']),
                nights=int(metadata['totalDays']),
                total=Money(Decimal(metadata['totalPrice']), currency),
                guest_count=int(metadata.get('guestCount') or 1),
                effective_rate=Money(Decimal(metadata.get('nightlyRate') or '0'), currency),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise InvalidRange(f"Checkout session metadata is incomplete: {exc}")

    def to_dict(self) -> dict:
        return {
            'user_id': self.user_id,
            'campground_id': self.campground_id,
            'campsite_id': self.campsite_id,
            'start_date': self.start_date.isoformat(),
            'end_date': self.end_date.isoformat(),
            'nights': self.nights,
            'total': str(self.total.amount),
            'currency': self.currency,
            'guest_count': self.guest_count,
            'effective_rate': str(self.effective_rate.amount),
            'status': 'pending',
        }
