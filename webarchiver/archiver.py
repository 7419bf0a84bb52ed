"""Pass orchestration.

The Archiver drives a fixed number of passes over every discovered file:

Pass 0, per file:
    classify, apply skip rules, read, minify, escape, fragment, apply the
    references issued so far, then search the file against itself and every
    earlier file and apply the new matches everywhere they occur.

Later passes, per file:
    reload the file's fragments, reapply the references issued so far and
    search again against itself and every earlier file. That finds runs
    exposed by earlier replacements, and runs shared with files discovered
    after this one, which have by now been searched against it.

Order matters: files are visited in discovery order and passes run strictly
one after another, so the earliest long-enough run always gets the shortest
free identifier and the output is reproducible bit for bit. Processing stops
after the configured number of passes whether or not another pass would
still find something.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from itertools import islice
from typing import Any

from .config import ArchiverConfig
from .dedupe import Fragmenter, MatchFinder, Replacer
from .discovery import Discovery, classify, discover
from .encoder import OutputEncoder
from .exceptions import WebArchiverError
from .minify import Minifier
from .models import FileKind, FileRecord
from .php import escape
from .session import ArchiveSession, ArchiveStats
from .storage import PageBackend

logger = logging.getLogger(__name__)

# Progress callback: (message, completed steps, total steps)
ProgressCallback = Callable[[str, int, int], None]


@dataclass
class ArchiveResult:
    """Outcome of an archiving run.

    Attributes:
        out_dir: Directory the output tree was written to.
        vfile: Path of the shared variables file (None without dedupe).
        references: Number of references issued.
        stats: Run counters.
    """

    out_dir: str
    vfile: str | None
    references: int
    stats: ArchiveStats

    @property
    def compression_ratio(self) -> float:
        """Fraction of input bytes saved (0.0 = nothing saved)."""
        if self.stats.bytes_in == 0:
            return 0.0
        return self.stats.bytes_saved / self.stats.bytes_in


class Archiver:
    """Archives a site according to an ArchiverConfig.

    Args:
        config: Archiver configuration. Validated by ``run``.
        progress: Optional callback receiving progress updates.
        backend: Page backend override (defaults follow config.storage).

    Usage:
        config = ArchiverConfig(files=["site/**/*"], output="archive")
        result = Archiver(config).run()
        print(result.stats.deduped_files)
    """

    def __init__(
        self,
        config: ArchiverConfig,
        progress: ProgressCallback | None = None,
        backend: PageBackend | None = None,
    ) -> None:
        self.config = config
        self._progress = progress
        self._backend = backend
        self._completed = 0
        self._total = 0

    def _tick(self, message: str) -> None:
        self._completed += 1
        if self._progress is not None:
            self._progress(message, self._completed, self._total)

    def run(self) -> ArchiveResult:
        """Discover, deduplicate and write the output tree.

        Raises:
            ConfigurationError: Before any output is written, if the config
                is invalid or matches no files.
            StorageError: If a page cannot be spilled or loaded.
        """
        self.config.validate()
        discovery = discover(self.config)

        count = len(discovery.paths)
        self._completed = 0
        self._total = count * self.config.passes + 1

        with ArchiveSession(self.config, self._backend) as session:
            self.process(session, discovery)
            logger.debug("Storage after %d passes: %s", self.config.passes, session.storage_stats())

            encoder = OutputEncoder(session, discovery)
            vfile = encoder.write()
            self._tick("Output written")

            stats = session.stats
            logger.info(
                "Archived %d files (%d deduplicated): %d -> %d bytes, %d references",
                stats.files,
                stats.deduped_files,
                stats.bytes_in,
                stats.bytes_out,
                stats.references_issued,
            )
            return ArchiveResult(
                out_dir=discovery.out_dir,
                vfile=vfile,
                references=len(session.references),
                stats=stats,
            )

    def process(self, session: ArchiveSession, discovery: Discovery) -> None:
        """Run every pass over every file."""
        dedupe = self.config.dedupe
        fragmenter = Fragmenter(dedupe.starts_with, dedupe.ends_with)
        minifier = Minifier(self.config.minify)
        finder = MatchFinder(session.matches)
        replacer = Replacer(session)
        count = len(discovery.paths)
        passes = self.config.passes
        skipped: set[int] = set()

        for pass_number in range(passes):
            for file_id in range(count):
                if pass_number == 0:
                    record = self._create_record(session, discovery, file_id, fragmenter, minifier)
                    if record.skip:
                        skipped.add(file_id)
                elif file_id in skipped or not dedupe.enabled:
                    self._tick(f"File {file_id + 1}/{count} (pass {pass_number + 1}/{passes})")
                    continue
                else:
                    record = session.files.read(file_id)

                if not record.skip and dedupe.enabled:
                    replacer.apply_known(record)
                    targets = self._targets(session, record, skipped)
                    found = finder.search(record, targets, replacer.policy.search_min_length())
                    replacer.process(record, found)

                session.files.update(file_id, record)
                self._tick(f"File {file_id + 1}/{count} (pass {pass_number + 1}/{passes})")

            logger.info(
                "Pass %d/%d complete: %d matches recorded, %d references issued",
                pass_number + 1,
                passes,
                len(session.matches),
                len(session.references),
            )

        session.stats.comparisons = finder.comparisons
        session.stats.matches_recorded = len(session.matches)

    def _targets(
        self, session: ArchiveSession, record: FileRecord, skipped: set[int]
    ) -> Iterator[FileRecord]:
        """The file itself and every earlier file, newest first."""
        order = range(record.id, -1, -1)
        eligible: Iterator[int] = (file_id for file_id in order if file_id not in skipped)
        limit = self.config.dedupe.max_comparisons
        if limit is not None:
            eligible = islice(eligible, limit)

        for file_id in eligible:
            if file_id == record.id:
                yield record
                continue
            other = session.files.read(file_id)
            if other is not None:
                yield other

    def _create_record(
        self,
        session: ArchiveSession,
        discovery: Discovery,
        file_id: int,
        fragmenter: Fragmenter,
        minifier: Minifier,
    ) -> FileRecord:
        """Discover one file: classify, apply skip rules and fragment it."""
        stats = session.stats
        in_path = discovery.paths[file_id]
        relative = discovery.relative[file_id]
        record = FileRecord(
            id=file_id,
            in_path=in_path,
            path=relative,
            out_path=discovery.out_path(relative),
        )
        if in_path in discovery.just_copy:
            record.skip = True
            record.skip_reason = "just_copy"

        try:
            record.kind = classify(in_path)
            if record.kind == FileKind.DIRECTORY:
                stats.directories += 1
                record.skip = True
                record.skip_reason = record.skip_reason or "directory"
                return record

            stats.files += 1
            text = None
            if record.kind == FileKind.TEXT and not record.skip:
                with open(in_path, "rb") as f:
                    raw = f.read()
                try:
                    text = raw.decode("utf-8")
                except UnicodeDecodeError:
                    record.kind = FileKind.BINARY
        except OSError as e:
            raise WebArchiverError(
                "Failed to read input file", details={"path": in_path, "error": str(e)}
            ) from e

        if record.kind == FileKind.BINARY:
            stats.binary_files += 1
            record.skip = True
            record.skip_reason = record.skip_reason or "binary"
            return record

        stats.text_files += 1
        if text is not None and any(marker in text for marker in self.config.skip_containing):
            record.skip = True
            record.skip_reason = "skip_containing"
        if record.skip:
            stats.skipped_files += 1
            logger.debug("Copying %s unchanged (%s)", in_path, record.skip_reason)
            return record

        text, record.minified = minifier.minify_or_keep(text or "", relative)
        if minifier.applies_to(relative) and not record.minified:
            stats.minify_failures += 1

        escaped = escape(text)
        if self.config.dedupe.enabled:
            record.fragments = fragmenter.split(escaped)
        else:
            record.fragments = [escaped] if escaped else []
        logger.debug("Fragmented %s into %d fragments", in_path, len(record.fragments))
        return record


def webarchive(progress: ProgressCallback | None = None, **options: Any) -> ArchiveResult:
    """Archive a site in one call.

    Accepts the same options as ``ArchiverConfig.from_dict``:

        from webarchiver import webarchive

        result = webarchive(files=["site/**/*"], output="archive")
        print(f"Saved {result.stats.bytes_saved} bytes")

        # Disable a stage
        webarchive(files="site/**/*", inplace=True, minify=False)

        # Tune deduplication
        webarchive(files="site/**/*", output="out", dedupe={"min_saving": 8})
    """
    config = ArchiverConfig.from_dict(options)
    return Archiver(config, progress=progress).run()
