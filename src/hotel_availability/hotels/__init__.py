"""Hotel domain models, room normalisation and result formatting helpers."""

from .formatter import build_hotel_summaries, build_hotel_summary
from .keys import normalize_lookup_key
from .models import HotelDetails, HotelSummary, RoomOffer
from .rooms import RoomSpec, normalize_room, normalize_rooms

__all__ = [
    "HotelDetails",
    "HotelSummary",
    "RoomOffer",
    "RoomSpec",
    "build_hotel_summaries",
    "build_hotel_summary",
    "normalize_lookup_key",
    "normalize_room",
    "normalize_rooms",
]
