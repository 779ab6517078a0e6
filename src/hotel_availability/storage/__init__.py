"""Persistence backends."""

from .json_writer import JsonStore
from .sqlite_store import IdentifierStore, SqliteStore

__all__ = [
    "IdentifierStore",
    "JsonStore",
    "SqliteStore",
]
