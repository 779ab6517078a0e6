"""Search planning, payload building and orchestration."""

from .batching import Chunk, Wave, chunk_identifiers, plan_waves
from .search import BatchOutcome, SearchOrchestrator, SearchResult, SearchState, merge_outcomes
from .search_payloads import AvailabilityQuery, SearchFilters
from .search_request import SearchRequest

__all__ = [
    "AvailabilityQuery",
    "BatchOutcome",
    "Chunk",
    "SearchFilters",
    "SearchOrchestrator",
    "SearchRequest",
    "SearchResult",
    "SearchState",
    "Wave",
    "chunk_identifiers",
    "merge_outcomes",
    "plan_waves",
]
