"""Dataclasses for hotel master records and formatted availability results."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional


def _first(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        value = raw.get(name)
        if value not in (None, ""):
            return value
    return None


def _optional_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class HotelDetails:
    """One row of the hotel master table the identifier store is built from."""

    hotel_code: str
    hotel_name: str
    city_name: str
    country_name: Optional[str] = None
    country_code: Optional[str] = None
    city_code: Optional[str] = None
    address: Optional[str] = None
    star_rating: Optional[float] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    description: Optional[str] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "HotelDetails":
        """Build a record from either master-file (snake_case) or upstream (PascalCase) names."""
        hotel_code = _optional_str(_first(raw, "hotel_code", "HotelCode"))
        hotel_name = _optional_str(_first(raw, "hotel_name", "HotelName"))
        city_name = _optional_str(_first(raw, "city_name", "CityName"))
        missing = [
            label
            for label, value in (
                ("hotel_code", hotel_code),
                ("hotel_name", hotel_name),
                ("city_name", city_name),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Hotel record is missing required fields: {', '.join(missing)}")
        return cls(
            hotel_code=hotel_code,
            hotel_name=hotel_name,
            city_name=city_name,
            country_name=_optional_str(_first(raw, "country_name", "CountryName")),
            country_code=_optional_str(_first(raw, "country_code", "CountryCode")),
            city_code=_optional_str(_first(raw, "city_code", "CityCode", "CityId")),
            address=_optional_str(_first(raw, "address", "Address", "HotelAddress")),
            star_rating=_optional_float(_first(raw, "star_rating", "HotelRating", "StarRating")),
            latitude=_optional_float(_first(raw, "latitude", "Latitude")),
            longitude=_optional_float(_first(raw, "longitude", "Longitude")),
            description=_optional_str(_first(raw, "hotel_desc", "description", "Description")),
        )


@dataclass(slots=True)
class RoomOffer:
    """A bookable room option returned for one hotel."""

    name: Optional[str]
    booking_code: Optional[str]
    inclusion: Optional[str] = None
    meal_type: Optional[str] = None
    total_fare: Optional[float] = None
    total_tax: Optional[float] = None
    refundable: Optional[bool] = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "bookingCode": self.booking_code,
            "inclusion": self.inclusion,
            "mealType": self.meal_type,
            "totalFare": self.total_fare,
            "totalTax": self.total_tax,
            "refundable": self.refundable,
        }


@dataclass(slots=True)
class HotelSummary:
    """Flattened availability for one hotel, shaped for API consumers."""

    hotel_code: str
    currency: Optional[str]
    price: Optional[float]
    rooms: List[RoomOffer] = field(default_factory=list)
    hotel_name: Optional[str] = None
    rating: Optional[float] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    amenities: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    cancellation_policies: List[dict[str, Any]] = field(default_factory=list)

    def fill_from(self, details: HotelDetails) -> None:
        """Fill attributes the upstream result left empty from the stored master record."""
        self.hotel_name = self.hotel_name or details.hotel_name
        self.address = self.address or details.address
        self.city = self.city or details.city_name
        self.country = self.country or details.country_name
        if self.rating is None:
            self.rating = details.star_rating
        if self.latitude is None:
            self.latitude = details.latitude
        if self.longitude is None:
            self.longitude = details.longitude

    def to_dict(self) -> dict[str, object]:
        return {
            "hotelCode": self.hotel_code,
            "hotelName": self.hotel_name,
            "rating": self.rating,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "currency": self.currency,
            "price": self.price,
            "rooms": [room.to_dict() for room in self.rooms],
            "amenities": list(self.amenities),
            "images": list(self.images),
            "cancellationPolicies": list(self.cancellation_policies),
        }
