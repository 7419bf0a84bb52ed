"""Reference identifier allocation.

Identifiers double as PHP variable names, so they always start with a
letter. Within a length they run through ``[a-z]`` in the first position and
``[0-9a-z]`` after it (ASCII order), and every shorter name is issued before
the first longer one:

    a, b, ..., z, a0, ..., a9, aa, ..., zz, a00, ...

That gives 26 one-character names, 936 two-character names and
36**n - 10 * 36**(n - 1) names of length n.
"""

from __future__ import annotations

FIRST_IDENTIFIER = "a"


def next_identifier(current: str) -> str:
    """Return the identifier issued after current.

    Scanning from the last character backward: each trailing 'z' carries and
    becomes '0'; a '9' becomes 'a' without carrying; any other character is
    incremented. If every character carries the name grows by one.

    Examples:
        >>> next_identifier("z")
        'a0'
        >>> next_identifier("abcdzz")
        'abce00'
        >>> next_identifier("a9")
        'aa'
    """
    change = len(current) - 1
    zeros = 0
    while change >= 0 and current[change] == "z":
        zeros += 1
        change -= 1

    if change < 0:
        return "a" + "0" * len(current)

    char = current[change]
    bumped = "a" if char == "9" else chr(ord(char) + 1)
    return current[:change] + bumped + "0" * zeros


class IdentifierAllocator:
    """Hands out identifiers in issue order.

    The current identifier is only *reserved* while a match is tried; it is
    spent by ``advance()`` once the match replaced something. A reservation
    that produced no replacement is simply not advanced past, so no name is
    ever wasted.
    """

    def __init__(self, start: str = FIRST_IDENTIFIER) -> None:
        self.current = start
        self.issued = 0

    def reserve(self) -> str:
        return self.current

    def advance(self) -> str:
        """Mark the current identifier as spent and return the new current one."""
        self.current = next_identifier(self.current)
        self.issued += 1
        return self.current
