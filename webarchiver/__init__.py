"""
webarchiver - deduplicate the text of a static site into PHP references.

Repeated runs of text across a site's files are stored once, in a shared
``v.php``, and each file becomes a small PHP wrapper that concatenates its
literal text with those shared variables. Served through PHP, every page is
byte-identical to the original; on disk, the site shrinks.

Quick Start:

    from webarchiver import webarchive

    result = webarchive(files=["site/**/*"], output="archive")
    print(f"Saved {result.stats.bytes_saved} bytes")

Or with an explicit config:

    from webarchiver import Archiver, ArchiverConfig, DedupeConfig

    config = ArchiverConfig(
        files=["site/**/*"],
        just_copy=["site/feeds/**"],
        output="archive",
        passes=3,
        dedupe=DedupeConfig(min_saving=8),
    )
    result = Archiver(config).run()

Enable logging to see what's happening:

    import logging
    logging.basicConfig(level=logging.INFO)
    # INFO:webarchiver.archiver:Pass 1/2 complete: 812 matches recorded, 140 references issued

Error Handling:

    from webarchiver import ConfigurationError, WebArchiverError

    try:
        webarchive(files=["missing/**"], output="out")
    except ConfigurationError as e:
        print(f"Config issue: {e.details}")
    except WebArchiverError as e:
        print(f"Archiving failed: {e}")
"""

from .archiver import Archiver, ArchiveResult, webarchive
from .config import ArchiverConfig, DedupeConfig, MinifyConfig, StorageConfig
from .exceptions import (
    ConfigurationError,
    EncodingError,
    MinifyError,
    StorageError,
    WebArchiverError,
)
from .models import FileKind, FileRecord, MatchRecord
from .session import ArchiveSession, ArchiveStats

__version__ = "0.3.0"

__all__ = [
    # Main API
    "webarchive",
    "Archiver",
    "ArchiveResult",
    "ArchiveSession",
    "ArchiveStats",
    # Config
    "ArchiverConfig",
    "DedupeConfig",
    "MinifyConfig",
    "StorageConfig",
    # Records
    "FileKind",
    "FileRecord",
    "MatchRecord",
    # Exceptions
    "WebArchiverError",
    "ConfigurationError",
    "StorageError",
    "MinifyError",
    "EncodingError",
]
