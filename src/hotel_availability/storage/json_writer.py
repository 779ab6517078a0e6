"""JSON persistence helpers."""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

_SLUG = re.compile(r"[^a-z0-9]+")


def search_filename(key: str, generated_at: Optional[datetime] = None) -> str:
    """``"New Delhi"`` -> ``new-delhi_20300501T101500Z.json``."""
    stamp = (generated_at or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
    slug = _SLUG.sub("-", key.lower()).strip("-") or "search"
    return f"{slug}_{stamp}.json"


class JsonStore:
    """Write search responses to timestamped JSON documents."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    async def write(
        self,
        response: Mapping[str, Any],
        *,
        key: str,
        filename: str | None = None,
        subdir: str | None = None,
    ) -> Path:
        generated_at = datetime.now(timezone.utc)
        target_dir = self.root / subdir if subdir else self.root
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / (filename or search_filename(key, generated_at))
        path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "generated_at": generated_at.isoformat().replace("+00:00", "Z"),
            "key": key,
            **response,
        }
        path.write_text(json.dumps(document, indent=2, default=str))
        return path
