"""Per-run archiving state.

Everything that changes while an archive is built lives on one
ArchiveSession: the two paged stores, the identifier allocator and the table
of issued references. Components receive the session explicitly.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from typing import Any

from .config import ArchiverConfig
from .dedupe.identifiers import IdentifierAllocator
from .models import FileRecord, MatchRecord
from .storage import InMemoryPageBackend, JsonPageBackend, PageBackend, PagedStore

logger = logging.getLogger(__name__)


@dataclass
class ArchiveStats:
    """Counters collected during a run."""

    files: int = 0
    directories: int = 0
    binary_files: int = 0
    text_files: int = 0
    skipped_files: int = 0
    deduped_files: int = 0
    comparisons: int = 0
    matches_recorded: int = 0
    references_issued: int = 0
    replacements_made: int = 0
    minify_failures: int = 0
    bytes_in: int = 0
    bytes_out: int = 0

    @property
    def bytes_saved(self) -> int:
        return self.bytes_in - self.bytes_out

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["bytes_saved"] = self.bytes_saved
        return data


class ArchiveSession:
    """State shared by every component during one run.

    Attributes:
        config: The validated archiver config.
        files: File records keyed by discovery ordinal.
        matches: Match records with a content index on ``string``.
        allocator: Reference identifier allocator.
        references: Identifier -> match key in issue order. Match strings stay
            in the match store; see reference_strings().
        stats: Run counters.
    """

    def __init__(self, config: ArchiverConfig, backend: PageBackend | None = None) -> None:
        self.config = config
        self._tmpdir: tempfile.TemporaryDirectory[str] | None = None
        self._owns_backend = backend is None
        self.backend = backend or self._create_backend()

        page_size = config.storage.page_size
        self.files = PagedStore("files", FileRecord, self.backend, page_size=page_size)
        self.matches = PagedStore(
            "matches", MatchRecord, self.backend, page_size=page_size, index_on="string"
        )
        self.allocator = IdentifierAllocator()
        self.references: dict[str, int] = {}
        self.stats = ArchiveStats()

    def _create_backend(self) -> PageBackend:
        storage = self.config.storage
        if storage.backend == "memory":
            return InMemoryPageBackend()
        directory = storage.db_dir
        if directory is None:
            self._tmpdir = tempfile.TemporaryDirectory(prefix="webarchiver_")
            directory = self._tmpdir.name
        logger.debug("Spilling pages to %s", directory)
        return JsonPageBackend(directory)

    def issue(self, identifier: str, key: int) -> None:
        """Record that identifier now refers to the match stored under key."""
        self.references[identifier] = key
        self.allocator.advance()
        self.stats.references_issued += 1

    def reference_strings(self) -> Iterator[tuple[str, str]]:
        """Yield (identifier, escaped match string) in issue order."""
        for identifier, key in self.references.items():
            yield identifier, self.matches.read(key).string

    def storage_stats(self) -> dict[str, Any]:
        return {
            "files": self.files.get_stats(),
            "matches": self.matches.get_stats(),
            "backend": self.backend.get_stats(),
        }

    def close(self) -> None:
        """Drop all pages and remove the temporary page directory.

        A backend the session created is cleared as well, which also removes
        pages an interrupted earlier run left in db_dir. A backend passed in
        by the caller only loses this session's pages.
        """
        self.files.close()
        self.matches.close()
        if self._owns_backend:
            self.backend.clear()
        if self._tmpdir is not None:
            self._tmpdir.cleanup()
            self._tmpdir = None

    def __enter__(self) -> ArchiveSession:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
