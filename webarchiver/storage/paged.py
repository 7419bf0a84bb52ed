"""Bounded-memory record store with page spill.

A PagedStore holds records (FileRecord, MatchRecord) in fixed-size pages.
Only one page is resident at a time; every other page lives in the page
backend. Access during archiving is dominated by sequential discovery order,
so most reads and all inserts hit the resident (tail) page.

Two indexes stay in memory:
- key -> page number, so a keyed read loads exactly one page
- optionally, a digest of one record property -> key (e.g. MatchRecord.string),
  so content lookups avoid scanning every page without keeping every value
  resident. The candidate record is read back to confirm the match.

Lookups by any other property scan the resident page first, then the
remaining pages in order, wrapping around once.

Usage:
    store = PagedStore("matches", MatchRecord, backend, page_size=500, index_on="string")
    key = store.insert(MatchRecord(string="<div class=x>"))
    match = store.read_by_property("string", "<div class=x>")
    match.replacements += 1
    store.update(key, match)

    for match in store:  # terminal: flushes and leaves no page resident
        ...
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from typing import Any

from ..exceptions import StorageError
from .base import PageBackend
from .memory import InMemoryPageBackend

logger = logging.getLogger(__name__)


def _digest(value: Any) -> bytes:
    return hashlib.sha256(str(value).encode("utf-8")).digest()[:16]


class PagedStore:
    """Record collection partitioned into pages with one page resident.

    Args:
        name: Store name, used to name pages in the backend.
        record_type: Class with ``to_dict()`` and ``from_dict()``.
        backend: Page backend. Defaults to InMemoryPageBackend.
        page_size: Maximum number of records per page.
        index_on: Record attribute to keep a digest -> key index for.
    """

    def __init__(
        self,
        name: str,
        record_type: Any,
        backend: PageBackend | None = None,
        page_size: int = 1000,
        index_on: str | None = None,
    ) -> None:
        if page_size < 1:
            raise StorageError("page_size must be at least 1", details={"page_size": page_size})
        self.name = name
        self._record_type = record_type
        self._backend: PageBackend = backend or InMemoryPageBackend()
        self._page_size = page_size
        self._index_on = index_on

        self._page_sizes: list[int] = []
        self._resident_page: int | None = None
        self._resident: dict[int, Any] = {}
        self._dirty = False

        self._locations: dict[int, int] = {}
        self._index: dict[bytes, int] = {}
        self._digests: dict[int, bytes] = {}
        self._next_key = 0

        self.page_loads = 0
        self.page_flushes = 0

    # --- Page management ---

    @property
    def page_count(self) -> int:
        return len(self._page_sizes)

    @property
    def resident_page(self) -> int | None:
        return self._resident_page

    def _flush(self) -> None:
        """Write the resident page to the backend if it changed."""
        if self._resident_page is None or not self._dirty:
            return
        payload = {
            "records": [[key, record.to_dict()] for key, record in self._resident.items()]
        }
        self._backend.save(self.name, self._resident_page, payload)
        self._dirty = False
        self.page_flushes += 1

    def _load(self, page: int) -> dict[int, Any]:
        payload = self._backend.load(self.name, page)
        self.page_loads += 1
        if payload is None:
            return {}
        return {int(key): self._record_type.from_dict(data) for key, data in payload["records"]}

    def _make_resident(self, page: int) -> None:
        if page == self._resident_page:
            return
        self._flush()
        self._resident = self._load(page)
        self._resident_page = page
        logger.debug("Store %s: page %d now resident", self.name, page)

    def _start_page(self) -> None:
        self._flush()
        self._page_sizes.append(0)
        self._resident_page = len(self._page_sizes) - 1
        self._resident = {}

    # --- Secondary index ---

    def _reindex(self, key: int, record: Any) -> None:
        if self._index_on is None:
            return
        old = self._digests.pop(key, None)
        if old is not None and self._index.get(old) == key:
            del self._index[old]
        digest = _digest(getattr(record, self._index_on))
        self._index[digest] = key
        self._digests[key] = digest

    # --- Public API ---

    def insert(self, value: Any, key: int | None = None) -> int:
        """Add a record, returning its key.

        Records always go to the tail page. When the tail page is full it is
        flushed and a new page becomes the sole resident page.

        Args:
            value: The record.
            key: Explicit key; defaults to the next auto key.

        Raises:
            StorageError: If the key is already present.
        """
        if key is None:
            key = self._next_key
        elif key in self._locations:
            raise StorageError(
                "Duplicate key", details={"store": self.name, "key": key}
            )
        self._next_key = max(self._next_key, key + 1)

        tail = len(self._page_sizes) - 1
        if tail < 0 or self._page_sizes[tail] + 1 > self._page_size:
            self._start_page()
            tail = len(self._page_sizes) - 1
        else:
            self._make_resident(tail)

        self._resident[key] = value
        self._page_sizes[tail] += 1
        self._dirty = True
        self._locations[key] = tail
        self._reindex(key, value)
        return key

    def update(self, key: int, value: Any) -> None:
        """Replace the record stored under key, inserting it if absent."""
        page = self._locations.get(key)
        if page is None:
            self.insert(value, key)
            return
        self._make_resident(page)
        self._resident[key] = value
        self._dirty = True
        self._reindex(key, value)

    def read(self, key: int) -> Any | None:
        """Return the record stored under key, or None."""
        page = self._locations.get(key)
        if page is None:
            return None
        self._make_resident(page)
        return self._resident.get(key)

    def key_for(self, name: str, value: Any) -> int | None:
        """Return the key of the first record whose attribute equals value."""
        if name == self._index_on:
            key = self._index.get(_digest(value))
            if key is None:
                return None
            if getattr(self.read(key), name) == value:
                return key
            logger.debug("Store %s: digest collision on %s, scanning", self.name, name)
        if not self._page_sizes:
            return None

        start = self._resident_page if self._resident_page is not None else 0
        for step in range(len(self._page_sizes)):
            page = (start + step) % len(self._page_sizes)
            self._make_resident(page)
            for key, record in self._resident.items():
                if getattr(record, name) == value:
                    return key
        return None

    def read_by_property(self, name: str, value: Any) -> Any | None:
        """Return the first record whose attribute equals value, or None."""
        key = self.key_for(name, value)
        if key is None:
            return None
        return self.read(key)

    def keys(self) -> list[int]:
        """All keys in insertion order."""
        return list(self._locations)

    def items(self) -> Iterator[tuple[int, Any]]:
        """Yield (key, record) for every record, page by page.

        Flushes the resident page first and leaves no page resident; later
        reads load pages again on demand.
        """
        self._flush()
        self._resident_page = None
        self._resident = {}
        for page in range(len(self._page_sizes)):
            yield from self._load(page).items()

    def __iter__(self) -> Iterator[Any]:
        for _, record in self.items():
            yield record

    def __len__(self) -> int:
        return len(self._locations)

    def __contains__(self, key: object) -> bool:
        return key in self._locations

    def get_stats(self) -> dict[str, Any]:
        return {
            "store": self.name,
            "records": len(self._locations),
            "pages": len(self._page_sizes),
            "page_size": self._page_size,
            "resident_page": self._resident_page,
            "page_loads": self.page_loads,
            "page_flushes": self.page_flushes,
        }

    def close(self) -> None:
        """Delete this store's pages from the backend and reset the store."""
        for page in range(len(self._page_sizes)):
            self._backend.delete(self.name, page)
        self._page_sizes = []
        self._resident_page = None
        self._resident = {}
        self._dirty = False
        self._locations = {}
        self._index = {}
        self._digests = {}

    def __enter__(self) -> PagedStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
