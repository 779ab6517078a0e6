"""Resolve hotel codes for a city or hotel name and fan availability requests out in waves."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Sequence

from hotel_availability.core.errors import (
    CacheUnavailable,
    IdentifiersNotFound,
    SearchValidationError,
    UpstreamError,
)
from hotel_availability.hotels.keys import normalize_lookup_key
from hotel_availability.hotels.rooms import RoomSpec, normalize_rooms
from hotel_availability.tasks.batching import Chunk, Wave, plan_waves
from hotel_availability.tasks.search_payloads import parse_iso_date

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from hotel_availability.cache.identifier_cache import IdentifierCache
    from hotel_availability.config.settings import Settings
    from hotel_availability.services.availability_client import AvailabilityGateway
    from hotel_availability.storage.sqlite_store import IdentifierStore

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class SearchState(str, Enum):
    RESOLVING_IDENTIFIERS = "resolving_identifiers"
    PLANNING = "planning"
    DISPATCHING_WAVE = "dispatching_wave"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one chunk: either ``results`` (success) or ``error`` (failure), never both."""

    chunk_index: int
    hotel_count: int
    results: Optional[tuple[dict[str, Any], ...]] = None
    error: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.results is None) == (self.error is None):
            raise ValueError("BatchOutcome requires exactly one of results or error")

    @classmethod
    def success(cls, chunk: Chunk, results: Sequence[dict[str, Any]]) -> "BatchOutcome":
        return cls(chunk_index=chunk.index, hotel_count=len(chunk), results=tuple(results))

    @classmethod
    def failure(cls, chunk: Chunk, error: str) -> "BatchOutcome":
        return cls(chunk_index=chunk.index, hotel_count=len(chunk), error=error)

    @property
    def ok(self) -> bool:
        return self.results is not None


@dataclass
class SearchResult:
    """Merged outcome of one search call."""

    key: str
    success: bool
    message: str
    results: list[dict[str, Any]] = field(default_factory=list)
    failed_chunk_count: int = 0
    total_chunks: int = 0

    @property
    def total_results(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, object]:
        if not self.success:
            return {"success": False, "message": self.message}
        return {
            "success": True,
            "message": self.message,
            "results": list(self.results),
            "totalResults": self.total_results,
            "failedChunkCount": self.failed_chunk_count,
        }


def merge_outcomes(key: str, outcomes: Sequence[BatchOutcome]) -> SearchResult:
    """Concatenate successful chunk results in wave-then-chunk order and count failures."""
    results: list[dict[str, Any]] = []
    failed = 0
    for outcome in outcomes:
        if outcome.ok:
            results.extend(outcome.results or ())
        else:
            failed += 1

    total = len(outcomes)
    if total and failed == total:
        return SearchResult(
            key=key,
            success=False,
            message=f"Availability search failed for all {total} hotel batches in {key}",
            failed_chunk_count=failed,
            total_chunks=total,
        )
    if results:
        message = "Hotel search completed successfully"
    else:
        message = f"No available hotels found in {key} for the given dates and room configuration"
    return SearchResult(
        key=key,
        success=True,
        message=message,
        results=results,
        failed_chunk_count=failed,
        total_chunks=total,
    )


def _coerce_date(value: date | str, label: str) -> date:
    try:
        return parse_iso_date(value, label)
    except ValueError as exc:
        raise SearchValidationError(str(exc)) from exc


class SearchOrchestrator:
    """Cache-aside identifier resolution plus wave-by-wave availability fan-out."""

    def __init__(
        self,
        *,
        cache: "IdentifierCache",
        store: "IdentifierStore",
        gateway: "AvailabilityGateway",
        chunk_size: int = 10,
        max_parallel: int = 10,
        wave_delay_s: float = 1.0,
        cache_ttl_s: int = 86_400,
        default_nationality: str = "IN",
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if chunk_size <= 0 or max_parallel <= 0:
            raise ValueError("chunk_size and max_parallel must be positive")
        self._cache = cache
        self._store = store
        self._gateway = gateway
        self._chunk_size = chunk_size
        self._max_parallel = max_parallel
        self._wave_delay_s = wave_delay_s
        self._cache_ttl_s = cache_ttl_s
        self._default_nationality = default_nationality
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        *,
        cache: "IdentifierCache",
        store: "IdentifierStore",
        gateway: "AvailabilityGateway",
    ) -> "SearchOrchestrator":
        return cls(
            cache=cache,
            store=store,
            gateway=gateway,
            chunk_size=settings.chunk_size,
            max_parallel=settings.max_parallel,
            wave_delay_s=settings.wave_delay_s,
            cache_ttl_s=settings.cache_ttl_s,
            default_nationality=settings.guest_nationality,
        )

    # ------------------------------------------------------------------
    # identifier resolution

    async def resolve_identifiers(self, key: str) -> tuple[str, ...]:
        """Return hotel codes for ``key`` from the cache, else the store (populating the cache).

        Raises :class:`IdentifiersNotFound` or :class:`StoreUnavailable` from the store.
        """
        lookup_key = normalize_lookup_key(key)
        try:
            cached = await self._cache.get(lookup_key)
        except CacheUnavailable as exc:
            logger.warning("Identifier cache unavailable for '%s'; using store: %s", lookup_key, exc)
            cached = None
        if cached:
            logger.info("Retrieved %s hotel codes for '%s' from cache", len(cached), lookup_key)
            return tuple(cached)

        logger.info("Hotel codes for '%s' not cached; querying store", lookup_key)
        identifiers = tuple(await self._store.lookup(lookup_key))
        try:
            await self._cache.set(lookup_key, identifiers, self._cache_ttl_s)
        except CacheUnavailable as exc:
            logger.warning("Failed to cache hotel codes for '%s': %s", lookup_key, exc)
        return identifiers

    # ------------------------------------------------------------------
    # search

    async def search(
        self,
        key: str,
        check_in: date | str,
        check_out: date | str,
        rooms: Sequence[Mapping[str, Any] | RoomSpec],
        nationality: Optional[str] = None,
    ) -> SearchResult:
        """Run one availability search for a city or hotel name.

        Raises :class:`SearchValidationError` for malformed input and
        :class:`StoreUnavailable` when identifiers cannot be resolved. Upstream
        failures of individual chunks are reported through ``failed_chunk_count``.
        """
        display_key = " ".join(str(key or "").split())
        normalize_lookup_key(key)
        check_in_date = _coerce_date(check_in, "check-in")
        check_out_date = _coerce_date(check_out, "check-out")
        if check_out_date <= check_in_date:
            raise SearchValidationError("Check-out date must be after check-in date")
        room_specs = normalize_rooms(rooms)
        guest_nationality = (nationality or self._default_nationality).strip().upper()

        self._transition(display_key, SearchState.RESOLVING_IDENTIFIERS)
        try:
            identifiers = await self.resolve_identifiers(key)
        except IdentifiersNotFound:
            logger.warning("No hotels found for '%s'", display_key)
            self._transition(display_key, SearchState.DONE)
            return SearchResult(key=display_key, success=False, message=f"No hotels found in {display_key}")
        except Exception:
            self._transition(display_key, SearchState.FAILED)
            raise

        self._transition(display_key, SearchState.PLANNING)
        waves = plan_waves(identifiers, self._chunk_size, self._max_parallel)
        total_chunks = sum(len(wave) for wave in waves)
        logger.info(
            "Planned %s hotel codes for '%s' into %s chunks across %s waves "
            "(chunk_size=%s, max_parallel=%s)",
            len(identifiers),
            display_key,
            total_chunks,
            len(waves),
            self._chunk_size,
            self._max_parallel,
        )
        if not waves:
            self._transition(display_key, SearchState.DONE)
            return merge_outcomes(display_key, ())

        outcomes: list[BatchOutcome] = []
        for wave in waves:
            self._transition(display_key, SearchState.DISPATCHING_WAVE, wave.index)
            wave_outcomes = await self._dispatch_wave(
                wave,
                check_in=check_in_date,
                check_out=check_out_date,
                rooms=room_specs,
                nationality=guest_nationality,
            )
            outcomes.extend(wave_outcomes)
            succeeded = sum(1 for outcome in wave_outcomes if outcome.ok)
            logger.info(
                "Wave %s/%s completed: %s succeeded, %s failed",
                wave.index + 1,
                len(waves),
                succeeded,
                len(wave_outcomes) - succeeded,
            )
            if wave.index + 1 < len(waves) and self._wave_delay_s > 0:
                logger.debug("Waiting %.2fs before next wave", self._wave_delay_s)
                await self._sleep(self._wave_delay_s)

        self._transition(display_key, SearchState.MERGING)
        result = merge_outcomes(display_key, outcomes)
        self._transition(display_key, SearchState.DONE)
        logger.info(
            "Search for '%s' finished: success=%s results=%s failed_chunks=%s/%s",
            display_key,
            result.success,
            result.total_results,
            result.failed_chunk_count,
            result.total_chunks,
        )
        return result

    async def _dispatch_wave(
        self,
        wave: Wave,
        *,
        check_in: date,
        check_out: date,
        rooms: Sequence[RoomSpec],
        nationality: str,
    ) -> list[BatchOutcome]:
        settled = await asyncio.gather(
            *(
                self._dispatch_chunk(
                    chunk,
                    check_in=check_in,
                    check_out=check_out,
                    rooms=rooms,
                    nationality=nationality,
                )
                for chunk in wave.chunks
            ),
            return_exceptions=True,
        )
        outcomes: list[BatchOutcome] = []
        for chunk, outcome in zip(wave.chunks, settled):
            if isinstance(outcome, BatchOutcome):
                outcomes.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error(
                "Unexpected error in chunk %s",
                chunk.index,
                exc_info=(type(outcome), outcome, outcome.__traceback__),
            )
            outcomes.append(BatchOutcome.failure(chunk, f"{type(outcome).__name__}: {outcome}"))
        return outcomes

    async def _dispatch_chunk(
        self,
        chunk: Chunk,
        *,
        check_in: date,
        check_out: date,
        rooms: Sequence[RoomSpec],
        nationality: str,
    ) -> BatchOutcome:
        logger.debug(
            "Dispatching chunk %s with %s hotel codes (first: %s)",
            chunk.index,
            len(chunk),
            ", ".join(chunk.identifiers[:3]),
        )
        try:
            payload = await self._gateway.fetch_availability(
                chunk.identifiers, check_in, check_out, rooms, nationality
            )
        except UpstreamError as exc:
            logger.warning("Chunk %s (%s hotel codes) failed: %s", chunk.index, len(chunk), exc)
            return BatchOutcome.failure(chunk, str(exc))
        logger.debug("Chunk %s returned %s results", chunk.index, len(payload.results))
        return BatchOutcome.success(chunk, payload.results)

    @staticmethod
    def _transition(key: str, state: SearchState, wave_index: Optional[int] = None) -> None:
        if wave_index is None:
            logger.debug("Search '%s' -> %s", key, state.value)
        else:
            logger.debug("Search '%s' -> %s(%s)", key, state.value, wave_index)
