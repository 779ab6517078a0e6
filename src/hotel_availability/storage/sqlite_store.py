"""SQLite-backed hotel master table and identifier lookup."""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterable, Protocol, TypeVar

from hotel_availability.core.errors import IdentifiersNotFound, StoreUnavailable
from hotel_availability.hotels.keys import normalize_lookup_key
from hotel_availability.hotels.models import HotelDetails

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
SCHEMA_VERSION = 1

VALID_JOURNAL_MODES = frozenset({"delete", "truncate", "persist", "memory", "wal", "off"})
VALID_SYNCHRONOUS_MODES = frozenset({"off", "normal", "full", "extra"})

T = TypeVar("T")

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_FORMAT)


def _name_key(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return normalize_lookup_key(value)


class IdentifierStore(Protocol):
    async def lookup(self, key: str) -> tuple[str, ...]:
        ...


class SqliteStore:
    """Thin async wrapper over sqlite3 holding hotel master records."""

    def __init__(
        self,
        db_path: Path,
        *,
        busy_timeout_ms: int = 2000,
        journal_mode: str | None = "wal",
        synchronous: str | None = "normal",
    ) -> None:
        self._path = db_path
        self._busy_timeout_ms = busy_timeout_ms
        self._journal_mode = self._normalize_journal_mode(journal_mode)
        self._synchronous = self._normalize_synchronous(synchronous)
        self._connection: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # lifecycle

    async def initialize(self) -> None:
        if self._connection is not None:
            return
        async with self._lock:
            if self._connection is None:
                try:
                    conn = await asyncio.to_thread(self._open_connection)
                except sqlite3.Error as exc:
                    raise StoreUnavailable(f"Unable to open hotel store at {self._path}: {exc}") from exc
                self._connection = conn

    async def close(self) -> None:
        if self._connection is None:
            return
        conn = self._connection
        self._connection = None
        await asyncio.to_thread(conn.close)

    def _open_connection(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.execute(f"PRAGMA busy_timeout = {int(max(self._busy_timeout_ms, 0))};")
        if self._journal_mode:
            conn.execute(f"PRAGMA journal_mode = {self._journal_mode.upper()};")
        if self._synchronous:
            conn.execute(f"PRAGMA synchronous = {self._synchronous.upper()};")
        try:
            self._apply_migrations(conn)
        except sqlite3.OperationalError as exc:
            conn.close()
            logger.error(
                "SQLite migration failed (path=%s, timeout_ms=%s): %s",
                self._path,
                self._busy_timeout_ms,
                exc,
            )
            raise
        return conn

    @staticmethod
    def _normalize_journal_mode(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_JOURNAL_MODES:
            raise ValueError(
                f"Unsupported SQLite journal_mode '{value}'. Expected one of: {sorted(VALID_JOURNAL_MODES)}"
            )
        return mode

    @staticmethod
    def _normalize_synchronous(value: str | None) -> str | None:
        if value is None:
            return None
        mode = value.strip().lower()
        if not mode:
            return None
        if mode not in VALID_SYNCHRONOUS_MODES:
            raise ValueError(
                f"Unsupported SQLite synchronous mode '{value}'. Expected one of: {sorted(VALID_SYNCHRONOUS_MODES)}"
            )
        return mode

    def _apply_migrations(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        current = self._get_schema_version(conn)
        if current >= SCHEMA_VERSION:
            return
        for version in range(current + 1, SCHEMA_VERSION + 1):
            script = MIGRATIONS.get(version)
            if not script:
                raise RuntimeError(f"Missing migration script for version {version}")
            conn.executescript(script)
            conn.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)\n"
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (str(version),),
            )
        conn.commit()

    def _get_schema_version(self, conn: sqlite3.Connection) -> int:
        cursor = conn.execute("SELECT value FROM meta WHERE key='schema_version'")
        row = cursor.fetchone()
        if not row:
            return 0
        try:
            return int(row[0])
        except (TypeError, ValueError):
            return 0

    def _require_connection(self) -> sqlite3.Connection:
        if not self._connection:
            raise StoreUnavailable("SQLite store has not been initialised")
        return self._connection

    async def _run(self, op: Callable[[], T]) -> T:
        async with self._lock:
            try:
                return await asyncio.to_thread(op)
            except sqlite3.Error as exc:
                raise StoreUnavailable(f"SQLite error on {self._path}: {exc}") from exc

    # ------------------------------------------------------------------
    # identifier lookup

    async def lookup(self, key: str) -> tuple[str, ...]:
        """Return hotel codes whose city or hotel name normalises to ``key``."""
        lookup_key = normalize_lookup_key(key)

        def _op() -> tuple[str, ...]:
            conn = self._require_connection()
            cursor = conn.execute(
                """
                SELECT hotel_code
                FROM hotels
                WHERE city_key = ? OR hotel_name_key = ?
                ORDER BY id
                """,
                (lookup_key, lookup_key),
            )
            return tuple(row[0] for row in cursor.fetchall())

        codes = await self._run(_op)
        if not codes:
            raise IdentifiersNotFound(key)
        logger.info("Retrieved %s hotel codes for '%s' from store", len(codes), lookup_key)
        return codes

    async def lookup_groups(self) -> dict[str, tuple[str, ...]]:
        """Map every city key and hotel-name key to its ordered hotel codes."""

        def _op() -> dict[str, tuple[str, ...]]:
            conn = self._require_connection()
            groups: dict[str, list[str]] = {}
            cursor = conn.execute(
                "SELECT hotel_code, city_key, hotel_name_key FROM hotels ORDER BY id"
            )
            for hotel_code, city_key, hotel_name_key in cursor.fetchall():
                for group_key in {city_key, hotel_name_key}:
                    if group_key:
                        groups.setdefault(group_key, []).append(hotel_code)
            return {group_key: tuple(codes) for group_key, codes in groups.items()}

        return await self._run(_op)

    # ------------------------------------------------------------------
    # master data

    async def save_hotels(self, records: Iterable[HotelDetails]) -> int:
        """Upsert hotel master records keyed by hotel code; return the number written."""
        rows = [self._hotel_row(record) for record in records]
        if not rows:
            return 0

        def _op() -> int:
            conn = self._require_connection()
            with conn:
                conn.executemany(
                    """
                    INSERT INTO hotels(
                        hotel_code,
                        hotel_name,
                        hotel_name_key,
                        city_name,
                        city_key,
                        city_code,
                        country_name,
                        country_code,
                        address,
                        star_rating,
                        latitude,
                        longitude,
                        description,
                        created_at,
                        updated_at
                    ) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(hotel_code) DO UPDATE SET
                        hotel_name=excluded.hotel_name,
                        hotel_name_key=excluded.hotel_name_key,
                        city_name=excluded.city_name,
                        city_key=excluded.city_key,
                        city_code=excluded.city_code,
                        country_name=excluded.country_name,
                        country_code=excluded.country_code,
                        address=excluded.address,
                        star_rating=excluded.star_rating,
                        latitude=excluded.latitude,
                        longitude=excluded.longitude,
                        description=excluded.description,
                        updated_at=excluded.updated_at
                    """,
                    rows,
                )
            return len(rows)

        written = await self._run(_op)
        logger.info("Saved %s hotel records", written)
        return written

    async def hotel_details(self, codes: Iterable[str]) -> dict[str, HotelDetails]:
        """Return stored master records for ``codes``; unknown codes are left out."""
        wanted = list(dict.fromkeys(str(code) for code in codes if code not in (None, "")))
        if not wanted:
            return {}

        def _op() -> dict[str, HotelDetails]:
            conn = self._require_connection()
            placeholders = ", ".join("?" for _ in wanted)
            cursor = conn.execute(
                f"""
                SELECT
                    hotel_code,
                    hotel_name,
                    city_name,
                    country_name,
                    country_code,
                    city_code,
                    address,
                    star_rating,
                    latitude,
                    longitude,
                    description
                FROM hotels
                WHERE hotel_code IN ({placeholders})
                """,
                wanted,
            )
            return {row[0]: HotelDetails(*row) for row in cursor.fetchall()}

        return await self._run(_op)

    @staticmethod
    def _hotel_row(record: HotelDetails) -> tuple[Any, ...]:
        now = _utc_now()
        return (
            record.hotel_code,
            record.hotel_name,
            _name_key(record.hotel_name),
            record.city_name,
            normalize_lookup_key(record.city_name),
            record.city_code,
            record.country_name,
            record.country_code,
            record.address,
            record.star_rating,
            record.latitude,
            record.longitude,
            record.description,
            now,
            now,
        )


MIGRATIONS: dict[int, str] = {
    1: """
        CREATE TABLE IF NOT EXISTS hotels (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            hotel_code TEXT NOT NULL UNIQUE,
            hotel_name TEXT NOT NULL,
            hotel_name_key TEXT,
            city_name TEXT NOT NULL,
            city_key TEXT NOT NULL,
            city_code TEXT,
            country_name TEXT,
            country_code TEXT,
            address TEXT,
            star_rating REAL,
            latitude REAL,
            longitude REAL,
            description TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_hotels_city_key ON hotels(city_key);
        CREATE INDEX IF NOT EXISTS idx_hotels_hotel_name_key ON hotels(hotel_name_key);
    """,
}
