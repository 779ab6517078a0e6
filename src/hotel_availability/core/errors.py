"""Exception taxonomy for identifier resolution and availability search."""
from __future__ import annotations

from typing import Iterable, Optional


class AvailabilityError(Exception):
    """Base class for every error raised by this package."""


class SearchValidationError(AvailabilityError, ValueError):
    """Raised when a search request is malformed; no I/O has happened yet."""

    def __init__(self, message: str, errors: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.errors: tuple[str, ...] = tuple(errors) or (message,)


class InvalidRoomSpec(SearchValidationError):
    """Raised when one room of the request fails occupancy validation."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"Room {index + 1}: {reason}")
        self.index = index
        self.reason = reason


class IdentifiersNotFound(AvailabilityError):
    """Raised when a lookup key has no hotel codes in the store."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No hotel codes found for '{key}'")
        self.key = key


class CacheUnavailable(AvailabilityError):
    """Soft failure of the identifier cache; callers treat it as a miss."""


class StoreUnavailable(AvailabilityError):
    """The durable identifier store could not be reached."""


class UpstreamError(AvailabilityError):
    """Base class for failures of a single upstream availability call."""


class UpstreamTimeout(UpstreamError):
    """The upstream call exceeded its request timeout."""


class UpstreamUnreachable(UpstreamError):
    """Transport-level failure talking to the upstream provider."""


class UpstreamRejected(UpstreamError):
    """The upstream answered with an error status or an unusable body."""

    def __init__(self, status_code: Optional[int], description: str) -> None:
        super().__init__(f"Upstream rejected request ({status_code}): {description}")
        self.status_code = status_code
        self.description = description
