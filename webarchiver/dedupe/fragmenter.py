"""Boundary-aware fragmentation.

A fragment is the smallest unit the deduplicator matches and replaces:

    [one leading char]? [run of non-boundary chars]* [one trailing char]?

With the default sets, ``<div class="a">text</div>`` splits into
``<div `` ``class="`` ``a"`` ``>`` ``text`` ``</div>``, so a replacement can
never start or end in the middle of a tag name or attribute value.

Fragmentation is lossless: ``"".join(fragments) == text`` for any input.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from functools import lru_cache


@lru_cache(maxsize=32)
def _compile(starts_with: tuple[str, ...], ends_with: tuple[str, ...]) -> re.Pattern[str]:
    starts = "".join(re.escape(c) for c in starts_with)
    ends = "".join(re.escape(c) for c in ends_with)
    parts = []
    if starts:
        parts.append(f"[{starts}]?")
    if starts or ends:
        parts.append(f"[^{starts}{ends}]*")
    else:
        parts.append(".*")
    if ends:
        parts.append(f"[{ends}]?")
    return re.compile("".join(parts), re.DOTALL)


class Fragmenter:
    """Splits text into fragments for a fixed pair of boundary sets.

    Args:
        starts_with: Characters that may open a fragment.
        ends_with: Characters that may close a fragment.
    """

    def __init__(self, starts_with: Iterable[str], ends_with: Iterable[str]) -> None:
        self.starts_with = tuple(starts_with)
        self.ends_with = tuple(ends_with)
        self._pattern = _compile(self.starts_with, self.ends_with)

    def split(self, text: str) -> list[str]:
        """Return the non-empty fragments of text, in order."""
        return [m.group(0) for m in self._pattern.finditer(text) if m.group(0)]


def create_fragments(text: str, starts_with: Iterable[str], ends_with: Iterable[str]) -> list[str]:
    """Fragment text with the given boundary sets."""
    return Fragmenter(starts_with, ends_with).split(text)
