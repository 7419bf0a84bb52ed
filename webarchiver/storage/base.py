"""Base protocol for page backends.

A page backend persists whole pages of a PagedStore. It knows nothing about
records, keys or indexes; it only moves serialized pages in and out.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

# A serialized page: {"records": [[key, record_dict], ...]}
PagePayload = dict[str, Any]


@runtime_checkable
class PageBackend(Protocol):
    """Protocol for PagedStore page backends.

    Design Principles:
    - Whole-page load/save only
    - A page that was never saved loads as None, not an error
    - Write failures raise StorageError

    Example implementation:
        class MyBackend:
            def load(self, store: str, page: int) -> PagePayload | None:
                return self._pages.get((store, page))

            def save(self, store: str, page: int, payload: PagePayload) -> None:
                self._pages[(store, page)] = payload

            # ... other methods
    """

    def load(self, store: str, page: int) -> PagePayload | None:
        """Load a page.

        Args:
            store: Name of the owning store (e.g. "files", "matches").
            page: Page number within the store.

        Returns:
            The payload last saved for this page, or None if it was never saved.
        """
        ...

    def save(self, store: str, page: int, payload: PagePayload) -> None:
        """Persist a page, replacing any earlier version."""
        ...

    def delete(self, store: str, page: int) -> bool:
        """Delete a page.

        Returns:
            True if the page existed.
        """
        ...

    def clear(self) -> None:
        """Remove every page of every store."""
        ...

    def get_stats(self) -> dict[str, Any]:
        """Backend statistics. Includes at least "page_count" and "backend_type"."""
        ...
