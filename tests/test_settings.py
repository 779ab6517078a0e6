from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from hotel_availability.cache import MemoryIdentifierCache, create_identifier_cache
from hotel_availability.config.settings import Settings
from hotel_availability.core.logging import configure_logging
from hotel_availability.storage import SqliteStore
from hotel_availability.tasks import SearchOrchestrator


def test_settings_defaults_and_directories(tmp_path):
    settings = Settings(
        sqlite_path=tmp_path / "db" / "hotels.sqlite3",
        log_dir=tmp_path / "logs",
        download_dir=tmp_path / "downloads",
    )

    assert settings.chunk_size == 10
    assert settings.max_parallel == 10
    assert settings.wave_delay_s == 1.0
    assert settings.cache_ttl_s == 86_400
    assert settings.upstream_timeout_s == 30.0
    settings.ensure_directories()
    assert settings.sqlite_path.parent.exists()
    assert settings.log_dir.exists()
    assert settings.download_dir.exists()


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("AVAILABILITY_CHUNK_SIZE", "5")
    monkeypatch.setenv("AVAILABILITY_CACHE_BACKEND", "memory")
    monkeypatch.setenv("AVAILABILITY_GUEST_NATIONALITY", "ae")

    settings = Settings()

    assert settings.chunk_size == 5
    assert settings.cache_backend == "memory"
    assert settings.guest_nationality == "AE"


@pytest.mark.parametrize(
    "overrides",
    [
        {"chunk_size": 0},
        {"max_parallel": -1},
        {"wave_delay_s": -0.5},
        {"cache_ttl_s": 0},
        {"guest_nationality": "IND"},
        {"cache_backend": "memcached"},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_upstream_credentials_required():
    with pytest.raises(RuntimeError):
        Settings(upstream_username=None, upstream_password=None).upstream_credentials()
    assert Settings(upstream_username="u", upstream_password="p").upstream_credentials() == ("u", "p")


def test_components_built_from_settings(tmp_path):
    settings = Settings(cache_backend="memory", chunk_size=4, max_parallel=2, cache_ttl_s=60)

    cache = create_identifier_cache(settings)
    store = SqliteStore(tmp_path / "hotels.sqlite3", **settings.sqlite_options())
    orchestrator = SearchOrchestrator.from_settings(settings, cache=cache, store=store, gateway=object())

    assert isinstance(cache, MemoryIdentifierCache)
    assert orchestrator._chunk_size == 4
    assert orchestrator._max_parallel == 2
    assert orchestrator._cache_ttl_s == 60


def test_configure_logging_prepares_log_dir_and_quiets_httpx(tmp_path):
    log_dir = tmp_path / "logs"

    configure_logging("info", log_dir)

    assert log_dir.exists()
    assert logging.getLogger("httpx").level == logging.WARNING
