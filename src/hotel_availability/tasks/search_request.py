"""Validation of inbound hotel search requests."""
from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from hotel_availability.core.errors import SearchValidationError
from hotel_availability.hotels.rooms import RoomSpec, normalize_rooms
from hotel_availability.tasks.search_payloads import parse_iso_date


class SearchRequest(BaseModel):
    """A hotel search as received from a caller, validated before any I/O."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    city_name: str = Field(default=None, alias="cityName", validate_default=True)
    check_in_date: date = Field(default=None, alias="checkInDate", validate_default=True)
    check_out_date: date = Field(default=None, alias="checkOutDate", validate_default=True)
    rooms: list[RoomSpec] = Field(default=None, validate_default=True)
    nationality: Optional[str] = None

    @field_validator("city_name", mode="before")
    @classmethod
    def _validate_city(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("City name is required")
        return " ".join(value.split())

    @field_validator("check_in_date", mode="before")
    @classmethod
    def _parse_check_in(cls, value: object) -> date:
        return parse_iso_date(value, "check-in")

    @field_validator("check_out_date", mode="before")
    @classmethod
    def _parse_check_out(cls, value: object) -> date:
        return parse_iso_date(value, "check-out")

    @field_validator("rooms", mode="before")
    @classmethod
    def _normalise_rooms(cls, value: object) -> list[RoomSpec]:
        return normalize_rooms(value)  # type: ignore[arg-type]

    @field_validator("nationality", mode="before")
    @classmethod
    def _validate_nationality(cls, value: object) -> Optional[str]:
        if value in (None, ""):
            return None
        code = str(value).strip().upper()
        if len(code) != 2 or not code.isalpha():
            raise ValueError("Nationality must be a two-letter country code")
        return code

    @model_validator(mode="after")
    def _validate_stay(self) -> "SearchRequest":
        if self.check_out_date <= self.check_in_date:
            raise ValueError("Check-out date must be after check-in date")
        return self

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @classmethod
    def parse(cls, data: Mapping[str, Any], *, today: Optional[date] = None) -> "SearchRequest":
        """Validate ``data`` and raise :class:`SearchValidationError` listing every problem."""
        try:
            request = cls.model_validate(dict(data))
        except ValidationError as exc:
            errors = [_format_error(error) for error in exc.errors()]
            raise SearchValidationError("Invalid search parameters", errors) from exc
        today = today or date.today()
        if request.check_in_date < today:
            raise SearchValidationError("Invalid search parameters", ["Check-in date cannot be in the past"])
        return request


def _format_error(error: Mapping[str, Any]) -> str:
    message = str(error.get("msg", "Invalid value"))
    # pydantic prefixes messages raised from validators with "Value error, ".
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if error.get("type") == "missing":
        field_name = ".".join(str(part) for part in error.get("loc", ()))
        return f"{field_name} is required"
    return message
