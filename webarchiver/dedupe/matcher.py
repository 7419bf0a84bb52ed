"""Cross-file longest-run matching.

Compares two fragment sequences and records every maximal run of equal
consecutive fragments whose concatenation reaches the minimum length.

For each pair (i, j) with A[i] == B[j] the run is extended as far as it goes.
When the run is long enough it is recorded at (A, i) and (B, j) and both
cursors jump past it, so the suffixes of an accepted run are never reported
as shorter matches of their own. When A and B are the same file, the pair
i == j is skipped.

Candidate j positions come from a fragment -> positions index of B. Only
pairs with A[i] == B[j] do any work in the pairwise scan, so visiting just
those positions, in increasing order from the current cursor, finds exactly
the same runs in O(m * occurrences) instead of O(m * n).
"""

from __future__ import annotations

import logging
from bisect import bisect_left
from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..models import FileRecord, MatchRecord

if TYPE_CHECKING:
    from ..storage import PagedStore

logger = logging.getLogger(__name__)


def _position_index(fragments: list[str]) -> dict[str, list[int]]:
    index: dict[str, list[int]] = {}
    for position, fragment in enumerate(fragments):
        index.setdefault(fragment, []).append(position)
    return index


def fragment_runs(
    a: list[str], b: list[str], same: bool, min_length: int
) -> Iterable[tuple[str, int, int]]:
    """Yield (run, i, j) for each accepted run between a and b.

    Args:
        a: Fragments of the file being searched.
        b: Fragments of the file compared against.
        same: True when a and b are the same file.
        min_length: Minimum length of the concatenated run.
    """
    positions = _position_index(b)
    a_length = len(a)
    b_length = len(b)

    i = 0
    while i < a_length:
        j = 0
        while True:
            candidates = positions.get(a[i])
            if not candidates:
                break
            found = bisect_left(candidates, j)
            if found == len(candidates):
                break
            j = candidates[found]

            if same and i == j:
                j += 1
                continue

            run = a[i]
            k = 1
            while i + k < a_length and j + k < b_length and a[i + k] == b[j + k]:
                run += a[i + k]
                k += 1

            if len(run) >= min_length:
                yield run, i, j
                i += k - 1
                j += k - 1
            j += 1
        i += 1


class MatchFinder:
    """Finds matches between files and records them in the match store.

    Matches are looked up by exact content through the store's secondary
    index, created on first sight and updated with each new occurrence.

    Args:
        matches: Match store indexed on ``string``.
    """

    def __init__(self, matches: PagedStore) -> None:
        self.matches = matches
        self.comparisons = 0

    def compare(
        self,
        a: FileRecord,
        b: FileRecord,
        min_length: int,
        found: dict[str, tuple[int, MatchRecord]],
    ) -> None:
        """Compare two files, adding touched matches to found.

        Args:
            a: File being searched.
            b: File compared against (may be a itself).
            min_length: Minimum run length to record.
            found: Run string -> (key, match) for this search, in first-touch
                order. Matches in it are written back by ``search``.
        """
        self.comparisons += 1
        same = a.id == b.id
        for run, i, j in fragment_runs(a.fragments, b.fragments, same, min_length):
            entry = found.get(run)
            if entry is None:
                key = self.matches.key_for("string", run)
                if key is None:
                    match = MatchRecord(string=run)
                    key = self.matches.insert(match)
                    logger.debug(
                        "New match %d (%d chars) between files %d and %d",
                        key,
                        len(run),
                        a.id,
                        b.id,
                    )
                else:
                    match = self.matches.read(key)
                entry = (key, match)
                found[run] = entry
            match = entry[1]
            match.add_occurrence(a.id, i)
            match.add_occurrence(b.id, j)

    def search(
        self, record: FileRecord, others: Iterable[FileRecord], min_length: int
    ) -> list[tuple[int, MatchRecord]]:
        """Compare record with each of others and return the touched matches.

        Skipped files in others are ignored. Matches are persisted to the
        store before returning, in first-touch order.
        """
        found: dict[str, tuple[int, MatchRecord]] = {}
        for other in others:
            if other.skip:
                continue
            self.compare(record, other, min_length, found)

        for key, match in found.values():
            self.matches.update(key, match)
        return list(found.values())
