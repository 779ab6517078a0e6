"""Reconcile caller-supplied room occupancy shapes into one canonical form.

Callers send rooms either in the upstream-style convention (``Adults`` /
``Children`` / ``ChildrenAges``, also spelled ``NoOfAdults`` / ``NoOfChild`` /
``ChildAge``) or in camelCase (``adults`` / ``children`` / ``childrenAges``).
The first convention wins when an element carries both.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from hotel_availability.core.errors import InvalidRoomSpec, SearchValidationError

MIN_CHILD_AGE = 0
MAX_CHILD_AGE = 17

_INTEGER = re.compile(r"-?\d+")

_ADULT_FIELDS = (("Adults", "NoOfAdults"), ("adults",))
_CHILD_FIELDS = (("Children", "NoOfChild"), ("children",))
_AGE_FIELDS = (("ChildrenAges", "ChildAge"), ("childrenAges",))


@dataclass(frozen=True, slots=True)
class RoomSpec:
    """Canonical occupancy for one room."""

    adults: int
    children: int = 0
    children_ages: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        counts = (self.adults, self.children, *self.children_ages)
        if any(isinstance(value, bool) or not isinstance(value, int) for value in counts):
            raise ValueError("room occupancy values must be integers")
        if self.adults < 1:
            raise ValueError("a room needs at least one adult")
        if self.children < 0:
            raise ValueError("child count cannot be negative")
        if len(self.children_ages) != self.children:
            raise ValueError(
                f"number of child ages ({len(self.children_ages)}) must match number of children ({self.children})"
            )
        if any(not MIN_CHILD_AGE <= age <= MAX_CHILD_AGE for age in self.children_ages):
            raise ValueError(f"child ages must be between {MIN_CHILD_AGE} and {MAX_CHILD_AGE}")

    def to_payload(self) -> dict[str, object]:
        return {
            "Adults": self.adults,
            "Children": self.children,
            "ChildrenAges": list(self.children_ages) if self.children else None,
        }


def _candidates(raw: Mapping[str, Any], conventions: Sequence[Sequence[str]]) -> List[Any]:
    values: List[Any] = []
    for names in conventions:
        for name in names:
            if raw.get(name) is not None:
                values.append(raw[name])
                break
    return values


def _as_int(value: Any, index: int, label: str) -> int:
    if isinstance(value, bool):
        raise InvalidRoomSpec(index, f"{label} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and _INTEGER.fullmatch(value.strip()):
        return int(value.strip())
    raise InvalidRoomSpec(index, f"{label} must be an integer")


def _resolve_adults(raw: Mapping[str, Any], index: int) -> int:
    for value in _candidates(raw, _ADULT_FIELDS):
        adults = _as_int(value, index, "adult count")
        if adults > 0:
            return adults
    return 1


def _resolve_children(raw: Mapping[str, Any], index: int) -> int:
    values = _candidates(raw, _CHILD_FIELDS)
    if not values:
        return 0
    children = _as_int(values[0], index, "child count")
    if children < 0:
        raise InvalidRoomSpec(index, "child count cannot be negative")
    return children


def _resolve_ages(raw: Mapping[str, Any], index: int) -> tuple[int, ...]:
    values = _candidates(raw, _AGE_FIELDS)
    if not values:
        return ()
    ages_raw = values[0]
    if isinstance(ages_raw, (str, bytes)) or not isinstance(ages_raw, Iterable):
        raise InvalidRoomSpec(index, "child ages must be a list")
    ages: List[int] = []
    for position, age_value in enumerate(ages_raw, start=1):
        age = _as_int(age_value, index, f"child {position} age")
        if not MIN_CHILD_AGE <= age <= MAX_CHILD_AGE:
            raise InvalidRoomSpec(
                index,
                f"child {position} age must be between {MIN_CHILD_AGE} and {MAX_CHILD_AGE}",
            )
        ages.append(age)
    return tuple(ages)


def normalize_room(raw: Mapping[str, Any] | RoomSpec, index: int = 0) -> RoomSpec:
    if isinstance(raw, RoomSpec):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidRoomSpec(index, "room must be an object")
    adults = _resolve_adults(raw, index)
    children = _resolve_children(raw, index)
    ages = _resolve_ages(raw, index)
    if len(ages) != children:
        raise InvalidRoomSpec(
            index,
            f"number of child ages ({len(ages)}) must match number of children ({children})",
        )
    return RoomSpec(adults=adults, children=children, children_ages=ages)


def normalize_rooms(raw_rooms: Optional[Sequence[Mapping[str, Any]]]) -> List[RoomSpec]:
    """Normalise every room, failing on the first invalid element."""
    if raw_rooms is None or isinstance(raw_rooms, (str, bytes, Mapping)):
        raise SearchValidationError("At least one room is required")
    rooms = [normalize_room(raw, index) for index, raw in enumerate(raw_rooms)]
    if not rooms:
        raise SearchValidationError("At least one room is required")
    return rooms
