"""Disk-backed fallback store for form drafts.

When a save to the backend fails, the editing session writes the current
snapshot here so nothing typed is lost if the process dies before the next
successful save.

- Default directory: `PROCINTAKE_DRAFT_DIR` setting or `artifacts/drafts/`
- Filename pattern:  `{key}.json` (key sanitized to `[A-Za-z0-9_-]`)
- Content:           `{"key": ..., "saved_at": "...Z", "data": {...}}`

Timestamp format
----------------
`saved_at` is UTC, ISO-8601 with millisecond precision and a trailing `"Z"`,
e.g. `"2025-11-12T02:02:37.104Z"`.

Usage
-----
>>> store = DraftStore()
>>> path = store.save("form-123", snapshot)
>>> store.load("form-123")
"""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from procintake.core.errors import DraftStoreError
from procintake.core.settings import load_settings

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


def _default_dir() -> Path:
    """Return the configured base directory for drafts."""
    return load_settings().draft_dir


def _utc_stamp() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class DraftStore:
    """Persist draft snapshots to disk as JSON files, one per form key."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self.base_dir: Path = base_dir if base_dir is not None else _default_dir()

    def path_for(self, key: str) -> Path:
        safe = _UNSAFE.sub("_", key).strip("_")
        if not safe:
            raise DraftStoreError(f"invalid draft key: {key!r}")
        return self.base_dir / f"{safe}.json"

    def save(self, key: str, data: dict[str, Any]) -> Path:
        """Write `data` under `key` and return the file path."""
        path = self.path_for(key)
        payload = {"key": key, "saved_at": _utc_stamp(), "data": data}
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.write("\n")
            tmp.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise DraftStoreError(f"could not write draft {key!r}: {exc}") from exc
        return path

    def load(self, key: str) -> dict[str, Any] | None:
        """Return the stored draft data for `key`, or None if there is none."""
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise DraftStoreError(f"could not read draft {key!r}: {exc}") from exc
        data = payload.get("data")
        return data if isinstance(data, dict) else None

    def delete(self, key: str) -> bool:
        """Remove the draft for `key`; returns whether one existed."""
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def list_keys(self) -> list[str]:
        """Sanitized keys of all stored drafts, sorted."""
        if not self.base_dir.exists():
            return []
        return sorted(p.stem for p in self.base_dir.glob("*.json"))


__all__ = ["DraftStore"]
