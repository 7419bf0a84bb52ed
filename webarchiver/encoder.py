"""Output encoding.

Walks the final file records once and writes the output tree:

- deduplicated text files become a PHP wrapper:
  ``<?php include '../v.php';echo '<html>'.$a.'...';``
- other text files are written as their (possibly minified) text
- skipped text files and binaries are copied byte for byte
- directories are recreated

and writes the shared variables file, one ``$name=<expr>;`` per issued
reference, in issue order, so every variable is defined before a later
one refers to it.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from . import php
from .exceptions import WebArchiverError
from .models import FileKind, FileRecord

if TYPE_CHECKING:
    from .discovery import Discovery
    from .session import ArchiveSession

logger = logging.getLogger(__name__)


def wrap_file(record: FileRecord, vfile: str) -> str:
    """PHP wrapper for a deduplicated file."""
    return (
        php.OPEN_TAG
        + php.include_statement(vfile, record.depth)
        + php.echo_statement("".join(record.fragments))
    )


def variables_file(references: Iterable[tuple[str, str]]) -> str:
    """Content of the shared variables file.

    Args:
        references: (identifier, escaped string) pairs in issue order.
    """
    return php.OPEN_TAG + "".join(
        php.assignment(identifier, string) for identifier, string in references
    )


def _write_text(path: str, content: str) -> int:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    with open(path, "wb") as f:
        f.write(data)
    return len(data)


class OutputEncoder:
    """Writes the output tree for a finished session."""

    def __init__(self, session: ArchiveSession, discovery: Discovery) -> None:
        self.session = session
        self.discovery = discovery
        self.config = session.config

    @property
    def vfile_path(self) -> str:
        return str(Path(self.discovery.out_dir) / self.config.vfile)

    def write_file(self, record: FileRecord) -> None:
        stats = self.session.stats
        try:
            if record.kind == FileKind.DIRECTORY:
                Path(record.out_path).mkdir(parents=True, exist_ok=True)
                return

            size_in = os.path.getsize(record.in_path)
            stats.bytes_in += size_in

            if record.skip:
                if os.path.abspath(record.in_path) != os.path.abspath(record.out_path):
                    Path(record.out_path).parent.mkdir(parents=True, exist_ok=True)
                    shutil.copyfile(record.in_path, record.out_path)
                stats.bytes_out += size_in
                return

            if record.deduped and self.config.dedupe.enabled:
                content = wrap_file(record, self.config.vfile)
                stats.deduped_files += 1
            else:
                content = php.unescape("".join(record.fragments))
            stats.bytes_out += _write_text(record.out_path, content)
        except OSError as e:
            raise WebArchiverError(
                "Failed to write output file",
                details={"path": record.out_path, "error": str(e)},
            ) from e

    def write_variables(self) -> str:
        """Write the shared variables file and return its path."""
        path = self.vfile_path
        try:
            self.session.stats.bytes_out += _write_text(
                path, variables_file(self.session.reference_strings())
            )
        except OSError as e:
            raise WebArchiverError(
                "Failed to write variables file", details={"path": path, "error": str(e)}
            ) from e
        return path

    def write(self) -> str | None:
        """Write every file, then the variables file when deduplicating.

        Returns:
            Path of the variables file, or None if deduplication is off.
        """
        for record in self.session.files:
            self.write_file(record)
            logger.debug("Wrote %s (%s)", record.out_path, record.kind.value)

        if not self.config.dedupe.enabled:
            return None
        path = self.write_variables()
        logger.info(
            "Wrote %s with %d references", path, len(self.session.references)
        )
        return path
