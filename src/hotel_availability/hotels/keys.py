"""Lookup key normalisation shared by the cache and the store."""
from __future__ import annotations

from hotel_availability.core.errors import SearchValidationError


def normalize_lookup_key(name: str) -> str:
    """Lower-case ``name`` and collapse surrounding/internal whitespace.

    ``"  New   Delhi "`` and ``"new delhi"`` normalise to the same key.
    """
    if not isinstance(name, str):
        raise SearchValidationError("City or hotel name must be a string")
    key = " ".join(name.split()).lower()
    if not key:
        raise SearchValidationError("City or hotel name is required")
    return key
