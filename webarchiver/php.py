"""PHP output format.

Deduplicated text is kept in *escaped* form from fragmentation onward: every
backslash is doubled and every single quote is backslash-escaped, so the text
can sit between single quotes in PHP unchanged. A replaced run becomes a
reference token that closes the literal, concatenates the variable and
reopens the literal:

    escaped text:     <p>It\\'s '.$a.' again</p>
    echo statement:   echo '<p>It\\'s '.$a.' again</p>';

Because literal quotes are always escaped, every unescaped quote in escaped
text belongs to a reference token. ``split_references`` relies on that to
turn escaped text back into literal and reference pieces, which is how the
encoder renders concatenations without empty ``''`` pieces.
"""

from __future__ import annotations

import re

from .exceptions import EncodingError

OPEN_TAG = "<?php "

_TOKEN_RE = re.compile(r"'\.\$([a-z][a-z0-9]*)\.'")


def escape(text: str) -> str:
    """Escape text for a PHP single-quoted string."""
    return text.replace("\\", "\\\\").replace("'", "\\'")


def unescape(escaped: str) -> str:
    """Reverse ``escape``.

    Raises:
        EncodingError: If the text contains reference tokens.
    """
    pieces = split_references(escaped)
    if any(is_reference for _, is_reference in pieces):
        raise EncodingError("Cannot unescape text containing references")
    return "".join(piece for piece, _ in pieces)


def variable(identifier: str) -> str:
    return "$" + identifier


def reference_token(identifier: str) -> str:
    """Splice substituted for a replaced run, e.g. ``'.$a.'``."""
    return "'." + variable(identifier) + ".'"


def split_references(escaped: str) -> list[tuple[str, bool]]:
    """Split escaped text into (piece, is_reference) pairs.

    Literal pieces are returned unescaped; reference pieces are identifiers.
    Empty literals never appear.

    Raises:
        EncodingError: If the text has a dangling escape or a stray quote.
    """
    pieces: list[tuple[str, bool]] = []
    buf: list[str] = []
    i = 0
    n = len(escaped)
    while i < n:
        char = escaped[i]
        if char == "\\":
            if i + 1 >= n:
                raise EncodingError("Dangling escape", details={"position": i})
            buf.append(escaped[i + 1])
            i += 2
        elif char == "'":
            m = _TOKEN_RE.match(escaped, i)
            if m is None:
                raise EncodingError(
                    "Malformed reference token",
                    details={"position": i, "text": escaped[i : i + 20]},
                )
            if buf:
                pieces.append(("".join(buf), False))
                buf = []
            pieces.append((m.group(1), True))
            i = m.end()
        else:
            buf.append(char)
            i += 1
    if buf:
        pieces.append(("".join(buf), False))
    return pieces


def render_expression(escaped: str) -> str:
    """Render escaped text as a PHP string expression.

    Literal pieces become single-quoted strings and references become
    variables, joined with ``.``. Empty text renders as ``''``.
    """
    parts = []
    for piece, is_reference in split_references(escaped):
        if is_reference:
            parts.append(variable(piece))
        else:
            parts.append("'" + escape(piece) + "'")
    return ".".join(parts) if parts else "''"


def include_statement(vfile: str, depth: int) -> str:
    """``include`` of the shared file, one ``../`` per nesting level."""
    return "include '" + escape("../" * depth + vfile) + "';"


def echo_statement(escaped: str) -> str:
    return "echo " + render_expression(escaped) + ";"


def assignment(identifier: str, escaped: str) -> str:
    return variable(identifier) + "=" + render_expression(escaped) + ";"
