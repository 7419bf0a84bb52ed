"""Replacement application and acceptance policy.

A match found by the MatchFinder is first judged by the ReplacementPolicy.
The verdict is memoized on the match record and reused for every file that
contains it. Accepted matches are spliced into every referencing file as a
reference token.

Identifiers are only spent on matches that actually replaced something: the
current identifier is reserved while a match is applied, and the allocator
advances only when the match's replacement counter goes from zero to
nonzero. Otherwise the reservation is dropped and the next match gets the
same name.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..config import DedupeConfig
from ..models import FileRecord, MatchRecord
from ..php import reference_token
from .identifiers import IdentifierAllocator

if TYPE_CHECKING:
    from ..session import ArchiveSession

logger = logging.getLogger(__name__)


def apply_replacement(fragments: list[str], match: str, token: str) -> tuple[list[str], int]:
    """Replace every run of fragments that concatenates to match.

    A run starts at a fragment that is a prefix of match and continues while
    each following fragment extends it exactly, until the full length is
    reached. The run's first fragment becomes token and the rest are dropped.

    Args:
        fragments: Current fragments of a file.
        match: Escaped match string.
        token: Reference token to splice in.

    Returns:
        (new fragment list, number of runs replaced). The input list is not
        modified.
    """
    result = list(fragments)
    replaced = 0
    match_length = len(match)
    total = len(result)

    frag = 0
    while frag < total:
        if result[frag] and match.startswith(result[frag]):
            seek = frag + 1
            offset = len(result[frag])
            while (
                seek < total
                and offset < match_length
                and result[seek]
                and match.startswith(result[seek], offset)
            ):
                offset += len(result[seek])
                seek += 1
            if offset >= match_length:
                result[frag] = token
                for blank in range(frag + 1, seek):
                    result[blank] = ""
                replaced += 1
                frag = seek
                continue
        frag += 1

    if not replaced:
        return result, 0
    # Compact so later matches never see the blanked holes.
    return [fragment for fragment in result if fragment], replaced


class ReplacementPolicy:
    """Decides, once per match, whether replacing it pays off.

    The floor is either fixed (``min_length`` with ``auto_min_length`` off)
    or ``min_saving`` plus the length of the reference token for the current
    identifier, so the floor rises as identifiers get longer.
    """

    def __init__(self, config: DedupeConfig, allocator: IdentifierAllocator) -> None:
        self.config = config
        self.allocator = allocator

    def auto_min_length(self) -> int:
        return self.config.min_saving + len(reference_token(self.allocator.current))

    def search_min_length(self) -> int:
        """Shortest run the finder should record."""
        if self.config.min_length is not None:
            return self.config.min_length
        return self.auto_min_length()

    def floor(self) -> int:
        """Shortest match that may be replaced right now."""
        if self.config.auto_min_length or self.config.min_length is None:
            return self.auto_min_length()
        return self.config.min_length

    def is_allowed(self, match: MatchRecord) -> bool:
        """Judge match, reusing an earlier verdict if there is one."""
        if match.allowed is None:
            allowed = len(match.string) >= self.floor()
            if allowed and self.config.min_occurrences:
                allowed = match.total_occurrences >= self.config.min_occurrences
            match.allowed = allowed
        return match.allowed


class Replacer:
    """Applies known and newly found matches to file records."""

    def __init__(self, session: ArchiveSession) -> None:
        self.session = session
        self.policy = ReplacementPolicy(session.config.dedupe, session.allocator)

    def apply_known(self, record: FileRecord) -> int:
        """Apply every issued reference to record, in issue order.

        Returns:
            Number of runs replaced.
        """
        matches = self.session.matches
        total = 0
        for identifier, key in self.session.references.items():
            match = matches.read(key)
            record.fragments, count = apply_replacement(
                record.fragments, match.string, reference_token(identifier)
            )
            if count:
                match.replacements += count
                matches.update(key, match)
                total += count

        if not total:
            return 0
        record.deduped = True
        self.session.stats.replacements_made += total
        return total

    def process(self, record: FileRecord, found: list[tuple[int, MatchRecord]]) -> int:
        """Apply newly found matches to every file that references them.

        Args:
            record: The file being processed. It is updated in place; the
                caller writes it back to the file store.
            found: (key, match) pairs from MatchFinder.search, in order.

        Returns:
            Number of runs replaced across all files.
        """
        session = self.session
        total = 0
        for key, match in found:
            if not self.policy.is_allowed(match):
                session.matches.update(key, match)
                continue

            reserved = match.identifier is None
            identifier = match.identifier or session.allocator.reserve()
            token = reference_token(identifier)

            for file_id in list(match.occurrences):
                target = record if file_id == record.id else session.files.read(file_id)
                if target is None or target.skip:
                    continue
                target.fragments, count = apply_replacement(target.fragments, match.string, token)
                if not count:
                    continue
                target.deduped = True
                match.replacements += count
                total += count
                if target is not record:
                    session.files.update(file_id, target)

            if reserved and match.replacements:
                match.identifier = identifier
                session.issue(identifier, key)
                logger.debug(
                    "Issued $%s for match %d (%d chars, %d occurrences)",
                    identifier,
                    key,
                    len(match.string),
                    match.total_occurrences,
                )
            session.matches.update(key, match)

        session.stats.replacements_made += total
        return total
