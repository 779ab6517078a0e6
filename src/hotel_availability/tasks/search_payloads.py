"""Utilities for building upstream availability search payloads."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Sequence

from hotel_availability.hotels.rooms import RoomSpec

DEFAULT_RESPONSE_TIME = 23.0

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: object, label: str) -> date:
    """Accept a ``date`` (a ``datetime`` is truncated) or a strict ``YYYY-MM-DD`` string.

    Raises ``ValueError`` with a caller-facing message otherwise.
    """
    if value in (None, ""):
        raise ValueError(f"{label.capitalize()} date is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _ISO_DATE.match(value.strip()):
        raise ValueError(f"Invalid {label} date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid {label} date format. Use YYYY-MM-DD") from exc


@dataclass(frozen=True)
class SearchFilters:
    """Upstream filter block; the defaults mean "no filter"."""

    refundable: bool = False
    no_of_rooms: int = 0
    meal_type: int = 0
    order_by: int = 0
    star_rating: int = 0
    hotel_name: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "Refundable": self.refundable,
            "NoOfRooms": self.no_of_rooms,
            "MealType": self.meal_type,
            "OrderBy": self.order_by,
            "StarRating": self.star_rating,
            "HotelName": self.hotel_name,
        }


@dataclass(frozen=True)
class AvailabilityQuery:
    hotel_codes: Sequence[str]
    check_in: date
    check_out: date
    rooms: Sequence[RoomSpec]
    nationality: str
    response_time: float = DEFAULT_RESPONSE_TIME
    detailed_response: bool = True
    filters: SearchFilters = field(default_factory=SearchFilters)

    def to_payload(self) -> dict[str, Any]:
        return {
            "CheckIn": parse_iso_date(self.check_in, "check-in").isoformat(),
            "CheckOut": parse_iso_date(self.check_out, "check-out").isoformat(),
            "HotelCodes": ",".join(self.hotel_codes),
            "GuestNationality": self.nationality,
            "PaxRooms": [room.to_payload() for room in self.rooms],
            "ResponseTime": self.response_time,
            "IsDetailedResponse": self.detailed_response,
            "Filters": self.filters.to_payload(),
        }
