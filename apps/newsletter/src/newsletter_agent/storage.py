"""JSON key-value persistence for newsletter state.

Each key is stored as ``<data_dir>/<key>.json``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DOCUMENT_KEY = "document"
HISTORY_KEY = "history"
SOURCES_KEY = "sources"
USED_CONTENT_KEY = "used_content"
GAME_KEY = "game"

STORAGE_KEYS = (DOCUMENT_KEY, HISTORY_KEY, SOURCES_KEY, USED_CONTENT_KEY, GAME_KEY)


class JsonFileStore:
    """Stores JSON-serializable values under stable names."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or key.startswith("."):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Load a value; missing or unreadable files return ``default``."""
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring corrupt state file {path}: {e}")
            return default

    def set(self, key: str, value: Any) -> Path:
        """Write a value. Returns the file path."""
        path = self._path(key)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, indent=2))
        tmp.replace(path)
        return path

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()
