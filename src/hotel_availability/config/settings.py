"""Runtime configuration for the availability service.

Relies on pydantic-settings so that environment variables (prefixed with ``AVAILABILITY_``)
can override defaults. A local ``.env`` file is read when present.
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_UPSTREAM_URL = "https://affiliate.tektravels.com/HotelAPI/Search"


class Settings(BaseSettings):
    """Captures runtime configuration for identifier lookup and availability search."""

    upstream_url: str = Field(
        default=DEFAULT_UPSTREAM_URL,
        description="Availability search endpoint of the upstream provider",
    )
    upstream_username: Optional[str] = Field(default=None, description="HTTP Basic username")
    upstream_password: Optional[str] = Field(default=None, description="HTTP Basic password")
    upstream_timeout_s: float = Field(default=30.0, description="Per-request timeout in seconds")
    upstream_response_time: float = Field(
        default=23.0, description="ResponseTime hint sent with every availability request"
    )
    upstream_results_key: str = Field(
        default="HotelResult", description="Response key holding the hotel result list"
    )
    guest_nationality: str = Field(default="IN", description="Default guest nationality code")

    chunk_size: int = Field(default=10, description="Hotel codes per upstream request")
    max_parallel: int = Field(default=10, description="Upstream requests dispatched concurrently per wave")
    wave_delay_s: float = Field(default=1.0, description="Pause between waves in seconds")

    cache_backend: Literal["redis", "memory"] = Field(
        default="redis", description="Identifier cache implementation"
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout_s: float = Field(
        default=2.0, description="Socket timeout applied to every Redis command"
    )
    cache_prefix: str = Field(default="hotel_codes", description="Namespace for identifier cache keys")
    cache_ttl_s: int = Field(default=86_400, description="Identifier cache entry lifetime in seconds")

    sqlite_path: Path = Field(default=Path("data/hotels.sqlite3"))
    sqlite_busy_timeout_ms: int = Field(default=2000)
    sqlite_journal_mode: Optional[str] = Field(default="wal")
    sqlite_synchronous: Optional[str] = Field(default="normal")

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))
    download_dir: Path = Field(default=Path("data/downloads"))

    model_config = SettingsConfigDict(
        env_prefix="AVAILABILITY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("sqlite_path", "log_dir", "download_dir", mode="before")
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        return Path(value).expanduser()

    @field_validator("chunk_size", "max_parallel")
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("chunk_size and max_parallel must be positive")
        return value

    @field_validator("wave_delay_s", "upstream_timeout_s")
    def _validate_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("delays and timeouts cannot be negative")
        return value

    @field_validator("cache_ttl_s")
    def _validate_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("cache_ttl_s must be positive")
        return value

    @field_validator("guest_nationality")
    def _normalise_nationality(cls, value: str) -> str:
        code = value.strip().upper()
        if len(code) != 2 or not code.isalpha():
            raise ValueError("guest_nationality must be a two-letter country code")
        return code

    def ensure_directories(self) -> None:
        """Create directories that must exist at runtime."""
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.download_dir.mkdir(parents=True, exist_ok=True)

    def upstream_credentials(self) -> tuple[str, str]:
        if not self.upstream_username or not self.upstream_password:
            raise RuntimeError(
                "Upstream credentials are not configured; set AVAILABILITY_UPSTREAM_USERNAME "
                "and AVAILABILITY_UPSTREAM_PASSWORD"
            )
        return self.upstream_username, self.upstream_password

    def sqlite_options(self) -> dict[str, object]:
        return {
            "busy_timeout_ms": self.sqlite_busy_timeout_ms,
            "journal_mode": self.sqlite_journal_mode,
            "synchronous": self.sqlite_synchronous,
        }
