"""Entry point for manual availability searches."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import re
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Optional

from hotel_availability.cache import create_identifier_cache
from hotel_availability.config.settings import Settings
from hotel_availability.core.errors import SearchValidationError, StoreUnavailable
from hotel_availability.core.logging import configure_logging
from hotel_availability.hotels import build_hotel_summaries
from hotel_availability.services import AvailabilityClient
from hotel_availability.storage import JsonStore, SqliteStore
from hotel_availability.tasks import SearchOrchestrator, SearchRequest

logger = logging.getLogger(__name__)

_ROOM_PATTERN = re.compile(r"^(?P<adults>\d+)(?::(?P<ages>\d+(?:,\d+)*))?$")


def _parse_room(value: str) -> dict[str, Any]:
    """Parse ``ADULTS[:AGE,AGE...]`` into a camelCase room object."""
    match = _ROOM_PATTERN.match(value.strip())
    if not match:
        raise argparse.ArgumentTypeError(
            f"Room must look like ADULTS or ADULTS:AGE,AGE (got '{value}')"
        )
    ages = [int(age) for age in (match.group("ages") or "").split(",") if age]
    return {"adults": int(match.group("adults")), "children": len(ages), "childrenAges": ages}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Search live hotel availability for a city or hotel name")
    parser.add_argument("--city", required=True, help="City or hotel name to resolve into hotel codes")
    parser.add_argument("--check-in", help="Check-in date (YYYY-MM-DD); defaults to 14 days from today")
    parser.add_argument("--check-out", help="Check-out date (YYYY-MM-DD); defaults to --nights after check-in")
    parser.add_argument("--nights", type=int, default=1, help="Stay length when --check-out is omitted")
    parser.add_argument(
        "--room",
        action="append",
        type=_parse_room,
        dest="rooms",
        help="Room occupancy as ADULTS[:AGE,AGE...] (repeatable); defaults to one room with 2 adults",
    )
    parser.add_argument("--nationality", help="Guest nationality code (defaults to settings)")
    parser.add_argument("--save", action="store_true", help="Write the JSON response under the download dir")
    parser.add_argument(
        "--output",
        type=Path,
        help="Output file for the response; relative paths resolve under the download dir "
        "(defaults to <city>_<timestamp>.json)",
    )
    parser.add_argument("--summaries", action="store_true", help="Replace raw results with hotel summaries")
    parser.add_argument(
        "--override",
        action="append",
        metavar="KEY=VALUE",
        help="Override a Settings attribute (repeatable). Values accept JSON literals.",
    )
    return parser


def _decode_override(value: str) -> object:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _apply_overrides(settings: Settings, overrides: dict[str, object]) -> None:
    for key, raw in overrides.items():
        if key not in Settings.model_fields:
            logger.warning("Ignoring unknown override '%s'", key)
            continue
        setattr(settings, key, raw)
        logger.info("Override: set %s=%r", key, raw)


async def run(
    settings: Settings,
    request: SearchRequest,
    *,
    save: bool,
    output: Optional[Path],
    summaries: bool,
) -> dict[str, Any]:
    username, password = settings.upstream_credentials()
    cache = create_identifier_cache(settings)
    store = SqliteStore(settings.sqlite_path, **settings.sqlite_options())
    try:
        await store.initialize()
        async with AvailabilityClient(
            base_url=settings.upstream_url,
            username=username,
            password=password,
            timeout=settings.upstream_timeout_s,
            response_time=settings.upstream_response_time,
            results_key=settings.upstream_results_key,
        ) as gateway:
            orchestrator = SearchOrchestrator.from_settings(
                settings, cache=cache, store=store, gateway=gateway
            )
            result = await orchestrator.search(
                request.city_name,
                request.check_in_date,
                request.check_out_date,
                request.rooms,
                request.nationality,
            )
        details = {}
        if summaries and result.success:
            details = await store.hotel_details(hotel.get("HotelCode") for hotel in result.results)
    finally:
        await store.close()
        await cache.close()

    response = result.to_dict()
    if summaries and result.success:
        response["results"] = [
            summary.to_dict() for summary in build_hotel_summaries(result.results, details)
        ]
    if save or output:
        path = await JsonStore(settings.download_dir).write(
            response, key=request.city_name, filename=str(output) if output else None
        )
        logger.info("Wrote search response to %s", path)
    return response


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    settings = Settings()

    if args.override:
        overrides: dict[str, object] = {}
        for entry in args.override:
            if "=" not in entry:
                parser.error(f"Override must be in KEY=VALUE form (got '{entry}')")
            key, value = entry.split("=", 1)
            overrides[key.strip()] = _decode_override(value.strip())
        _apply_overrides(settings, overrides)

    configure_logging(settings.log_level, settings.log_dir)
    settings.ensure_directories()

    check_in = args.check_in or (date.today() + timedelta(days=14)).isoformat()
    check_out = args.check_out
    if not check_out:
        try:
            check_out = (date.fromisoformat(check_in) + timedelta(days=args.nights)).isoformat()
        except ValueError:
            check_out = None
    try:
        request = SearchRequest.parse(
            {
                "cityName": args.city,
                "checkInDate": check_in,
                "checkOutDate": check_out,
                "rooms": args.rooms or [{"adults": 2}],
                "nationality": args.nationality,
            }
        )
    except SearchValidationError as exc:
        for error in exc.errors:
            logger.error("Invalid search parameter: %s", error)
        sys.exit(2)

    try:
        response = asyncio.run(run(settings, request, save=args.save, output=args.output, summaries=args.summaries))
    except StoreUnavailable as exc:
        logger.error("Hotel store unavailable: %s", exc)
        sys.exit(1)
    except RuntimeError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    print(json.dumps(response, indent=2, default=str))
    if not response.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
