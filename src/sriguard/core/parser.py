"""Entry points for parsing and serializing integrity metadata."""

from typing import Any, Optional, Union

from sriguard.core.algorithms import PickAlgorithm
from sriguard.core.hash_entry import HashEntry
from sriguard.core.integrity import Integrity


def parse(
    sri: Any,
    strict: bool = False,
    single: bool = False,
    pick_algorithm: Optional[PickAlgorithm] = None,
) -> Union[Integrity, HashEntry]:
    """Parse integrity metadata.

    Malformed entries are dropped silently; this never raises on bad input.

    Args:
        sri: Integrity string, hash-like, integrity-like, or parsed value
        strict: Enforce the strict grammar
        single: Return one HashEntry instead of a collection
        pick_algorithm: Custom picker used when ``single`` is set

    Returns:
        A fresh Integrity, or a HashEntry when ``single`` is set. An empty
        input yields an empty Integrity (or an entry with an empty
        ``algorithm`` when ``single`` is set).
    """
    integrity = Integrity.coerce(sri, strict=strict)
    if single:
        return integrity.pick_entry(pick_algorithm)
    return integrity


def stringify(sri: Any, sep: Optional[str] = None, strict: bool = False) -> str:
    """Serialize any accepted input into a cleaned-up integrity string."""
    return Integrity.coerce(sri, strict=strict).to_string(sep=sep, strict=strict)
