"""Custom exceptions for webarchiver.

All exceptions inherit from WebArchiverError, so callers can catch every
archiver failure in one place:

    from webarchiver import webarchive, ConfigurationError, WebArchiverError

    try:
        webarchive(files=["site/**/*"], output="out")
    except ConfigurationError as e:
        print(f"Configuration problem: {e}")
    except WebArchiverError as e:
        print(f"Archiving failed: {e}")
"""

from __future__ import annotations

from typing import Any


class WebArchiverError(Exception):
    """Base exception for all webarchiver errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class ConfigurationError(WebArchiverError):
    """Raised when the archiver is misconfigured.

    This includes:
    - Missing input patterns or output target
    - Invalid pass counts or page sizes
    - Boundary characters that would break the escaping contract
    - Patterns that match no files

    Always raised before any output is written.

    Example:
        ConfigurationError(
            "No input files found",
            details={"files": ["site/**/*.html"]}
        )
    """

    pass


class StorageError(WebArchiverError):
    """Raised when a page of the record store cannot be written or read.

    A page that does not exist yet is not an error; the store treats it
    as empty.

    Example:
        StorageError(
            "Failed to write page",
            details={"path": "/tmp/wa/matches-3.json", "error": "No space left"}
        )
    """

    pass


class MinifyError(WebArchiverError):
    """Raised by the minifier wrapper when minify-html rejects its input.

    The archiver recovers from it by keeping the unminified text.
    """

    pass


class EncodingError(WebArchiverError):
    """Raised when escaped text cannot be split into literals and references.

    Example:
        EncodingError(
            "Malformed reference token",
            details={"position": 12, "text": "...'.$ab"}
        )
    """

    pass
