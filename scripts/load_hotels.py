"""Load hotel master records into the SQLite store and optionally warm the identifier cache."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from hotel_availability.cache import create_identifier_cache
from hotel_availability.config.settings import Settings
from hotel_availability.core.errors import CacheUnavailable, StoreUnavailable
from hotel_availability.core.logging import configure_logging
from hotel_availability.hotels import HotelDetails
from hotel_availability.storage import SqliteStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import hotel master data for identifier lookup")
    parser.add_argument("source", type=Path, help="JSON file: a list of hotel records or {\"hotels\": [...]}")
    parser.add_argument("--db", type=Path, help="Override the SQLite path from settings")
    parser.add_argument(
        "--warm-cache",
        action="store_true",
        help="Write every city and hotel-name group into the identifier cache after importing",
    )
    parser.add_argument("--ttl", type=int, help="Cache TTL in seconds (defaults to settings)")
    return parser


def load_records(path: Path) -> List[HotelDetails]:
    """Parse ``path`` into hotel records, skipping entries missing required fields."""
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("hotels")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of hotels or an object with a 'hotels' list")

    records: List[HotelDetails] = []
    for position, raw in enumerate(data):
        if not isinstance(raw, dict):
            logger.warning("Skipping entry %s: not an object", position)
            continue
        try:
            records.append(HotelDetails.from_mapping(raw))
        except ValueError as exc:
            logger.warning("Skipping entry %s: %s", position, exc)
    return records


async def warm_cache(settings: Settings, store: SqliteStore, ttl: Optional[int]) -> int:
    groups = await store.lookup_groups()
    cache = create_identifier_cache(settings)
    written = 0
    try:
        for key, codes in groups.items():
            try:
                await cache.set(key, codes, ttl or settings.cache_ttl_s)
            except CacheUnavailable as exc:
                logger.error("Stopping cache warm-up after %s keys: %s", written, exc)
                break
            written += 1
    finally:
        await cache.close()
    logger.info("Cached hotel codes for %s of %s lookup keys", written, len(groups))
    return written


async def run(settings: Settings, source: Path, *, warm: bool, ttl: Optional[int]) -> int:
    records = load_records(source)
    logger.info("Parsed %s hotel records from %s", len(records), source)
    store = SqliteStore(settings.sqlite_path, **settings.sqlite_options())
    try:
        await store.initialize()
        saved = await store.save_hotels(records)
        if warm:
            await warm_cache(settings, store, ttl)
    finally:
        await store.close()
    return saved


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()
    if args.db:
        settings.sqlite_path = args.db.expanduser()

    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()

    try:
        saved = asyncio.run(run(settings, args.source, warm=args.warm_cache, ttl=args.ttl))
    except (OSError, ValueError, StoreUnavailable) as exc:
        logger.error("Hotel import failed: %s", exc)
        sys.exit(1)
    print(f"Saved {saved} hotel records to {settings.sqlite_path}")


if __name__ == "__main__":
    main()
