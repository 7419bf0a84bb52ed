"""Record types kept in the paged stores.

Both records round-trip through plain dicts so a page can be spilled to JSON
and loaded back without losing state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class FileKind(str, Enum):
    """Classification of a discovered path."""

    DIRECTORY = "directory"
    BINARY = "binary"
    TEXT = "text"


@dataclass
class FileRecord:
    """State of one discovered path across all passes.

    Created on first discovery (pass 0), mutated by every pass, and read
    once more by the output encoder.
    """

    id: int
    in_path: str
    path: str  # Relative to the common input root, "/"-separated
    out_path: str
    kind: FileKind = FileKind.TEXT
    skip: bool = False
    skip_reason: str | None = None
    fragments: list[str] = field(default_factory=list)
    deduped: bool = False
    minified: bool = False

    @property
    def depth(self) -> int:
        """Number of directories between the common root and this file."""
        return self.path.count("/")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "in_path": self.in_path,
            "path": self.path,
            "out_path": self.out_path,
            "kind": self.kind.value,
            "skip": self.skip,
            "skip_reason": self.skip_reason,
            "fragments": list(self.fragments),
            "deduped": self.deduped,
            "minified": self.minified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileRecord:
        return cls(
            id=data["id"],
            in_path=data["in_path"],
            path=data["path"],
            out_path=data["out_path"],
            kind=FileKind(data.get("kind", FileKind.TEXT.value)),
            skip=data.get("skip", False),
            skip_reason=data.get("skip_reason"),
            fragments=list(data.get("fragments", [])),
            deduped=data.get("deduped", False),
            minified=data.get("minified", False),
        )


@dataclass
class MatchRecord:
    """A recurring fragment run and everything known about it.

    Attributes:
        string: Canonical (escaped) content of the run.
        occurrences: File id -> fragment offsets where the run was seen,
            in first-seen order without duplicates.
        identifier: Reference name, set once the match is first used.
        replacements: How many times the run has been replaced.
        allowed: Memoized acceptance decision (None = not judged yet).
    """

    string: str
    occurrences: dict[int, list[int]] = field(default_factory=dict)
    identifier: str | None = None
    replacements: int = 0
    allowed: bool | None = None

    @property
    def total_occurrences(self) -> int:
        return sum(len(offsets) for offsets in self.occurrences.values())

    def add_occurrence(self, file_id: int, offset: int) -> None:
        """Record an offset for a file, ignoring repeats."""
        offsets = self.occurrences.setdefault(file_id, [])
        if offset not in offsets:
            offsets.append(offset)

    def to_dict(self) -> dict[str, Any]:
        return {
            "string": self.string,
            # JSON object keys are strings; from_dict converts them back.
            "occurrences": {str(k): list(v) for k, v in self.occurrences.items()},
            "identifier": self.identifier,
            "replacements": self.replacements,
            "allowed": self.allowed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchRecord:
        return cls(
            string=data["string"],
            occurrences={int(k): list(v) for k, v in data.get("occurrences", {}).items()},
            identifier=data.get("identifier"),
            replacements=data.get("replacements", 0),
            allowed=data.get("allowed"),
        )
