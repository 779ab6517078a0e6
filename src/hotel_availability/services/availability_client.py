"""Client for the upstream hotel availability search API."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx

from hotel_availability.core.errors import (
    UpstreamRejected,
    UpstreamTimeout,
    UpstreamUnreachable,
)
from hotel_availability.hotels.rooms import RoomSpec
from hotel_availability.tasks.search_payloads import DEFAULT_RESPONSE_TIME, AvailabilityQuery

logger = logging.getLogger(__name__)

STATUS_OK = 200
STATUS_NO_AVAILABILITY = 201

_NO_ROOMS = re.compile(r"\bno\s+(available\s+)?rooms?\b", re.IGNORECASE)


@dataclass(frozen=True)
class AvailabilityPayload:
    """Validated upstream answer for one chunk of hotel codes."""

    status_code: int
    description: Optional[str]
    results: tuple[dict[str, Any], ...]
    raw: dict[str, Any]

    @property
    def is_empty(self) -> bool:
        return not self.results


class AvailabilityGateway(Protocol):
    async def fetch_availability(
        self,
        chunk: Sequence[str],
        check_in: date,
        check_out: date,
        rooms: Sequence[RoomSpec],
        nationality: str,
    ) -> AvailabilityPayload:
        ...


def _status_description(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        status = body.get("Status")
        if isinstance(status, dict) and status.get("Description"):
            return str(status["Description"])
    return None


class AvailabilityClient:
    """Issues one availability request per call; never retries."""

    def __init__(
        self,
        *,
        base_url: str,
        username: str,
        password: str,
        timeout: float = 30.0,
        response_time: float = DEFAULT_RESPONSE_TIME,
        results_key: str = "HotelResult",
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        default_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": "hotel-availability/0.1.0",
        }
        if headers:
            default_headers.update(headers)
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=default_headers,
            auth=httpx.BasicAuth(username, password),
            transport=transport,
        )
        self._base_url = base_url
        self._response_time = response_time
        self._results_key = results_key

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "AvailabilityClient":
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def fetch_availability(
        self,
        chunk: Sequence[str],
        check_in: date,
        check_out: date,
        rooms: Sequence[RoomSpec],
        nationality: str,
    ) -> AvailabilityPayload:
        query = AvailabilityQuery(
            hotel_codes=tuple(chunk),
            check_in=check_in,
            check_out=check_out,
            rooms=tuple(rooms),
            nationality=nationality,
            response_time=self._response_time,
        )
        payload = query.to_payload()
        logger.debug("Availability request payload: %s", payload)

        started = time.monotonic()
        try:
            response = await self._client.post(self._base_url, json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(f"Availability request timed out for {len(chunk)} hotel codes") from exc
        except httpx.TransportError as exc:
            raise UpstreamUnreachable(f"Unable to reach availability API: {exc}") from exc
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(
            "Availability API answered HTTP %s in %.0fms for %s hotel codes",
            response.status_code,
            elapsed_ms,
            len(chunk),
        )
        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response) -> AvailabilityPayload:
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            description = _status_description(body) or response.reason_phrase or "Unknown API error"
            raise UpstreamRejected(response.status_code, description)

        if not isinstance(body, dict):
            raise UpstreamRejected(response.status_code, "Availability API returned a non-JSON body")
        status = body.get("Status")
        if not isinstance(status, dict) or "Code" not in status:
            logger.error("Availability response missing Status field: %s", str(body)[:512])
            raise UpstreamRejected(response.status_code, "Invalid availability response format")

        try:
            code = int(status["Code"])
        except (TypeError, ValueError) as exc:
            raise UpstreamRejected(response.status_code, f"Invalid status code {status['Code']!r}") from exc
        description = status.get("Description")

        if code == STATUS_NO_AVAILABILITY or (
            code != STATUS_OK and description and _NO_ROOMS.search(str(description))
        ):
            logger.info("Availability API reported no rooms (%s): %s", code, description)
            return AvailabilityPayload(status_code=code, description=description, results=(), raw=body)
        if code != STATUS_OK:
            raise UpstreamRejected(code, str(description or "Unknown API error"))

        results = body.get(self._results_key) or []
        if not isinstance(results, list):
            raise UpstreamRejected(code, f"Expected a list under '{self._results_key}'")
        return AvailabilityPayload(
            status_code=code,
            description=description,
            results=tuple(item for item in results if isinstance(item, dict)),
            raw=body,
        )
