"""Utilities to transform raw upstream hotel results into API-ready summaries."""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from .models import HotelDetails, HotelSummary, RoomOffer

logger = logging.getLogger(__name__)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _join(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, Iterable):
        text = ", ".join(str(item).strip() for item in value if item)
        return text or None
    return str(value)


def build_room_offers(rooms: Optional[Iterable[dict[str, Any]]]) -> List[RoomOffer]:
    offers: List[RoomOffer] = []
    for room in rooms or []:
        if not isinstance(room, dict):
            continue
        offers.append(
            RoomOffer(
                name=_join(room.get("Name")),
                booking_code=room.get("BookingCode"),
                inclusion=_join(room.get("Inclusion")),
                meal_type=room.get("MealType"),
                total_fare=_to_float(room.get("TotalFare")),
                total_tax=_to_float(room.get("TotalTax")),
                refundable=room.get("IsRefundable"),
            )
        )
    return offers


def _lowest_price(hotel: dict[str, Any], offers: List[RoomOffer]) -> Optional[float]:
    fares = [offer.total_fare for offer in offers if offer.total_fare is not None]
    if fares:
        return min(fares)
    price: dict[str, Any] = hotel.get("Price") or {}
    offered = _to_float(price.get("OfferedPrice"))
    if offered is not None:
        return offered
    return _to_float(price.get("PublishedPrice"))


def _as_list(value: Any) -> List[Any]:
    if value in (None, ""):
        return []
    if isinstance(value, (str, dict)):
        return [value]
    if isinstance(value, Iterable):
        return [item for item in value if item not in (None, "")]
    return [value]


def _cancellation_policies(hotel: dict[str, Any]) -> List[dict[str, Any]]:
    policies = _as_list(hotel.get("CancellationPolicies"))
    if not policies:
        # Per-room policies are the only ones some responses carry.
        for room in hotel.get("Rooms") or []:
            if isinstance(room, dict):
                policies.extend(_as_list(room.get("CancelPolicies")))
    return [policy for policy in policies if isinstance(policy, dict)]


def build_hotel_summary(
    hotel: dict[str, Any], details: Optional[HotelDetails] = None
) -> Optional[HotelSummary]:
    hotel_code = hotel.get("HotelCode")
    if hotel_code in (None, ""):
        return None
    offers = build_room_offers(hotel.get("Rooms"))
    price_info: dict[str, Any] = hotel.get("Price") or {}
    summary = HotelSummary(
        hotel_code=str(hotel_code),
        currency=hotel.get("Currency") or price_info.get("CurrencyCode"),
        price=_lowest_price(hotel, offers),
        rooms=offers,
        hotel_name=_join(hotel.get("HotelName")),
        rating=_to_float(hotel.get("HotelRating") or hotel.get("Rating")),
        address=_join(hotel.get("HotelAddress") or hotel.get("Address")),
        city=_join(hotel.get("CityName")),
        country=_join(hotel.get("CountryName")),
        latitude=_to_float(hotel.get("Latitude")),
        longitude=_to_float(hotel.get("Longitude")),
        amenities=[str(item) for item in _as_list(hotel.get("HotelFacilities"))],
        images=[str(item) for item in _as_list(hotel.get("HotelPicture") or hotel.get("Images"))],
        cancellation_policies=_cancellation_policies(hotel),
    )
    if details is not None:
        summary.fill_from(details)
    return summary


def build_hotel_summaries(
    results: Iterable[dict[str, Any]],
    details: Optional[Mapping[str, HotelDetails]] = None,
) -> List[HotelSummary]:
    """Summarise every hotel result, skipping entries without a hotel code.

    ``details`` maps hotel codes to stored master records and fills in
    whatever the upstream result omitted.
    """
    details = details or {}
    summaries: List[HotelSummary] = []
    skipped = 0
    for hotel in results:
        if not isinstance(hotel, dict):
            skipped += 1
            continue
        summary = build_hotel_summary(hotel, details.get(str(hotel.get("HotelCode"))))
        if summary is None:
            skipped += 1
            continue
        summaries.append(summary)
    if skipped:
        logger.debug("Skipped %s hotel results without a hotel code", skipped)
    return summaries
