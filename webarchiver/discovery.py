"""Input discovery: glob expansion, common root and output location."""

from __future__ import annotations

import glob
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from .config import ArchiverConfig
from .exceptions import ConfigurationError
from .models import FileKind

logger = logging.getLogger(__name__)

# Bytes sniffed when deciding whether a file is binary.
BINARY_SNIFF_BYTES = 8000


@dataclass
class Discovery:
    """Result of expanding the input patterns.

    Attributes:
        paths: Input paths in processing order, "/"-separated.
        relative: Path of each input relative to root, same order.
        just_copy: Input paths that are copied without processing.
        root: Common root directory of the input ("" for the cwd).
        out_dir: Directory the output tree is written under.
    """

    paths: list[str]
    relative: list[str]
    just_copy: set[str] = field(default_factory=set)
    root: str = ""
    out_dir: str = ""

    def out_path(self, relative: str) -> str:
        return str(Path(self.out_dir) / relative)


def _posix(path: str) -> str:
    return Path(path).as_posix()


def _is_within(path: Path, directory: Path) -> bool:
    return path == directory or directory in path.parents


def expand_patterns(patterns: list[str]) -> list[str]:
    """Expand glob patterns into a sorted list of paths.

    Patterns prefixed with "!" remove the paths they match. "**" matches any
    number of directories.
    """
    included: set[str] = set()
    excluded: set[str] = set()
    for pattern in patterns:
        if pattern.startswith("!"):
            excluded.update(_posix(p) for p in glob.glob(pattern[1:], recursive=True))
        else:
            included.update(_posix(p) for p in glob.glob(pattern, recursive=True))
    return sorted(included - excluded)


def common_root(paths: list[str], dirs: set[str] | None = None) -> str:
    """Deepest directory containing every file in paths.

    Directories in dirs are ignored when there are files to go by, so a
    pattern like ``site/**`` (which also yields ``site`` itself) still roots
    the tree at ``site``.

    Example:
        >>> common_root(["var/www/html/index.html", "var/www/html/includes/header.php"])
        'var/www/html'
    """
    dirs = dirs or set()
    files = [p for p in paths if p not in dirs] or list(paths)
    if not files:
        return ""
    parents = [PurePosixPath(p).parent.parts for p in files]
    shared: list[str] = []
    for parts in zip(*parents):
        if any(part != parts[0] for part in parts):
            break
        shared.append(parts[0])
    if not shared:
        return ""
    return str(PurePosixPath(*shared))


def output_dir(root: str, inplace: bool, output: str | None, full_nest: bool) -> str:
    """Directory the output tree is written under."""
    if inplace:
        return root or "."
    if not output:
        raise ConfigurationError("You must set either 'output' or 'inplace'.")
    out = Path(output)
    if full_nest and root:
        nested = PurePosixPath(root)
        if nested.is_absolute():
            nested = nested.relative_to(nested.anchor)
        out = out / nested
    return str(out)


def classify(path: str) -> FileKind:
    """Classify a path as a directory, binary file or text file."""
    if os.path.isdir(path) and not os.path.islink(path):
        return FileKind.DIRECTORY
    with open(path, "rb") as f:
        sample = f.read(BINARY_SNIFF_BYTES)
    if b"\x00" in sample:
        return FileKind.BINARY
    return FileKind.TEXT


def discover(config: ArchiverConfig) -> Discovery:
    """Expand the configured patterns and work out where output goes.

    The shared variables file and the page directory are never treated as
    input.

    Raises:
        ConfigurationError: If no input paths are found.
    """
    paths = [p for p in expand_patterns(config.files) if PurePosixPath(p).name != config.vfile]
    if config.storage.db_dir:
        db_dir = Path(config.storage.db_dir).resolve()
        paths = [p for p in paths if not _is_within(Path(p).resolve(), db_dir)]
    if not paths:
        raise ConfigurationError("No input files found.", details={"files": config.files})

    dirs = {p for p in paths if os.path.isdir(p)}
    root = common_root(paths, dirs)

    kept: list[str] = []
    relative: list[str] = []
    root_path = PurePosixPath(root) if root else None
    for path in paths:
        rel = PurePosixPath(path)
        if root_path is not None:
            try:
                rel = rel.relative_to(root_path)
            except ValueError:
                continue
        if str(rel) in ("", "."):
            continue
        kept.append(path)
        relative.append(rel.as_posix())

    if not kept:
        raise ConfigurationError("No input files found.", details={"files": config.files})

    just_copy = set(expand_patterns(config.just_copy)) if config.just_copy else set()
    out_dir = output_dir(root, config.inplace, config.output, config.full_nest)

    logger.info("Discovered %d paths under '%s', writing to '%s'", len(kept), root or ".", out_dir)
    return Discovery(
        paths=kept,
        relative=relative,
        just_copy=just_copy,
        root=root,
        out_dir=out_dir,
    )
