"""Deduplication engine: fragmentation, matching, replacement, naming."""

from .fragmenter import Fragmenter, create_fragments
from .identifiers import FIRST_IDENTIFIER, IdentifierAllocator, next_identifier
from .matcher import MatchFinder, fragment_runs
from .replacer import ReplacementPolicy, Replacer, apply_replacement

__all__ = [
    "Fragmenter",
    "create_fragments",
    "FIRST_IDENTIFIER",
    "IdentifierAllocator",
    "next_identifier",
    "MatchFinder",
    "fragment_runs",
    "ReplacementPolicy",
    "Replacer",
    "apply_replacement",
]
