"""Split identifier sets into upstream-sized chunks and bounded-parallel waves."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence


@dataclass(frozen=True, slots=True)
class Chunk:
    """Hotel codes sent together in one upstream request."""

    index: int
    identifiers: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.identifiers)


@dataclass(frozen=True, slots=True)
class Wave:
    """Chunks dispatched concurrently; waves of one request run one after another."""

    index: int
    chunks: tuple[Chunk, ...]

    def __len__(self) -> int:
        return len(self.chunks)


def chunk_identifiers(identifiers: Sequence[str], chunk_size: int) -> List[Chunk]:
    """Slice ``identifiers`` into consecutive chunks of at most ``chunk_size``.

    Order is preserved and duplicates are kept as-is.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [
        Chunk(index=position, identifiers=tuple(identifiers[start : start + chunk_size]))
        for position, start in enumerate(range(0, len(identifiers), chunk_size))
    ]


def plan_waves(identifiers: Sequence[str], chunk_size: int, max_parallel: int) -> List[Wave]:
    """Group consecutive chunks into waves of at most ``max_parallel`` chunks.

    An empty identifier list yields no waves.
    """
    if max_parallel <= 0:
        raise ValueError("max_parallel must be positive")
    chunks = chunk_identifiers(identifiers, chunk_size)
    return [
        Wave(index=position, chunks=tuple(chunks[start : start + max_parallel]))
        for position, start in enumerate(range(0, len(chunks), max_parallel))
    ]
