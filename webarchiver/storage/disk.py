"""JSON file page backend.

Each page is one file, ``<directory>/<store>-<page>.json``. Writes go to a
temporary file in the same directory and are renamed into place, so a page
file is either the old or the new version, never a partial one.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any

from ..exceptions import StorageError
from .base import PagePayload

logger = logging.getLogger(__name__)


class JsonPageBackend:
    """Page backend spilling pages to JSON files.

    Args:
        directory: Directory holding the page files. Created if missing.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                "Cannot create page directory",
                details={"path": str(self.directory), "error": str(e)},
            ) from e
        self._saves = 0
        self._loads = 0

    def _page_path(self, store: str, page: int) -> Path:
        return self.directory / f"{store}-{page}.json"

    def load(self, store: str, page: int) -> PagePayload | None:
        path = self._page_path(store, page)
        try:
            with open(path, encoding="utf-8") as f:
                payload: PagePayload = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(
                "Failed to read page", details={"path": str(path), "error": str(e)}
            ) from e
        self._loads += 1
        return payload

    def save(self, store: str, page: int, payload: PagePayload) -> None:
        path = self._page_path(store, page)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".page_", suffix=".tmp")
            try:
                with open(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, separators=(",", ":"))
                Path(tmp_path).replace(path)
            except Exception:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(
                "Failed to write page", details={"path": str(path), "error": str(e)}
            ) from e
        self._saves += 1
        logger.debug("Spilled page %s-%d to %s", store, page, path)

    def delete(self, store: str, page: int) -> bool:
        path = self._page_path(store, page)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(
                "Failed to delete page", details={"path": str(path), "error": str(e)}
            ) from e
        return True

    def clear(self) -> None:
        for path in self.directory.glob("*-*.json"):
            path.unlink(missing_ok=True)

    def get_stats(self) -> dict[str, Any]:
        paths = list(self.directory.glob("*-*.json"))
        return {
            "backend_type": "disk",
            "directory": str(self.directory),
            "page_count": len(paths),
            "saves": self._saves,
            "loads": self._loads,
            "bytes_used": sum(p.stat().st_size for p in paths),
        }
