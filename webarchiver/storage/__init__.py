"""Paged record storage.

Records are kept in fixed-size pages with a single resident page; the rest
are spilled to a page backend:

    from webarchiver.storage import JsonPageBackend, PagedStore

    store = PagedStore("files", FileRecord, JsonPageBackend("/tmp/wa"), page_size=200)
"""

from .base import PageBackend, PagePayload
from .disk import JsonPageBackend
from .memory import InMemoryPageBackend
from .paged import PagedStore

__all__ = [
    "PageBackend",
    "PagePayload",
    "JsonPageBackend",
    "InMemoryPageBackend",
    "PagedStore",
]
