"""Core integrity model: entries, collections, parsing and matching."""

from sriguard.core.algorithms import (
    HashAlgorithm,
    STRICT_ALGORITHMS,
    algorithm_rank,
    prefer_stronger,
    select_algorithm,
)
from sriguard.core.hash_entry import HashEntry, EMPTY_ENTRY
from sriguard.core.integrity import Integrity
from sriguard.core.matcher import match_integrity
from sriguard.core.parser import parse, stringify

__all__ = [
    "HashAlgorithm",
    "STRICT_ALGORITHMS",
    "algorithm_rank",
    "prefer_stronger",
    "select_algorithm",
    "HashEntry",
    "EMPTY_ENTRY",
    "Integrity",
    "match_integrity",
    "parse",
    "stringify",
]
