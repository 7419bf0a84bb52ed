"""In-memory page backend.

Pages are stored as JSON strings so a flushed page is fully detached from
the record objects that produced it, exactly like a disk spill.
"""

from __future__ import annotations

import json
from typing import Any

from .base import PagePayload


class InMemoryPageBackend:
    """Page backend keeping serialized pages in a dict.

    Characteristics:
    - Fast: no file system I/O
    - Volatile: pages are lost on process exit
    - Does not bound memory; use JsonPageBackend for large sites

    Usage:
        backend = InMemoryPageBackend()
        backend.save("matches", 0, {"records": []})
        payload = backend.load("matches", 0)
    """

    def __init__(self) -> None:
        self._pages: dict[tuple[str, int], str] = {}
        self._saves = 0
        self._loads = 0

    def load(self, store: str, page: int) -> PagePayload | None:
        raw = self._pages.get((store, page))
        if raw is None:
            return None
        self._loads += 1
        payload: PagePayload = json.loads(raw)
        return payload

    def save(self, store: str, page: int, payload: PagePayload) -> None:
        self._pages[(store, page)] = json.dumps(payload)
        self._saves += 1

    def delete(self, store: str, page: int) -> bool:
        return self._pages.pop((store, page), None) is not None

    def clear(self) -> None:
        self._pages.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "backend_type": "memory",
            "page_count": len(self._pages),
            "saves": self._saves,
            "loads": self._loads,
            "bytes_used": sum(len(raw) for raw in self._pages.values()),
        }
