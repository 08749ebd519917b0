"""Integrity collections.

An :class:`Integrity` groups :class:`HashEntry` values by lowercase
algorithm name. Groups keep first-seen order, entries within a group keep
insertion order, and parsed input never stores two entries with the same
``source`` under one algorithm.

Any value accepted by :func:`sriguard.parse` can be turned into an
Integrity with :meth:`Integrity.coerce`:

- an ``Integrity`` or ``HashEntry``
- a string (or bytes) of whitespace-separated entries
- a hash-like mapping/object with ``algorithm``, ``digest`` and ``options``
- an integrity-like mapping of algorithm name to a list of hash-likes

Example:
    >>> sri = Integrity.coerce("sha1-foo sha512-bar")
    >>> sri.pick_algorithm()
    'sha512'
    >>> str(sri.concat("sha512-baz"))
    'sha1-foo sha512-bar sha512-baz'
"""

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union
import re

from sriguard.core.algorithms import PickAlgorithm, select_algorithm
from sriguard.core.hash_entry import EMPTY_ENTRY, HashEntry
from sriguard.core.matcher import match_integrity
from sriguard.errors import MergeConflictError
from sriguard.integrations.logging import get_logger

_NON_WHITESPACE = re.compile(r"\S")


def _is_hash_like(value: Any) -> bool:
    if isinstance(value, Mapping):
        return "algorithm" in value and "digest" in value
    return hasattr(value, "algorithm") and hasattr(value, "digest")


def _entries_of(value: Any, strict: bool) -> List[HashEntry]:
    """Resolve any accepted input shape into a flat list of entries."""
    if value is None:
        return []
    if isinstance(value, Integrity):
        return [entry for entry in value.entries() if not strict or entry.is_strict()]
    if isinstance(value, HashEntry):
        return [value] if not strict or value.is_strict() else []
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return [HashEntry.from_string(token, strict=strict) for token in value.split()]
    if _is_hash_like(value):
        return [HashEntry.from_hash_like(value, strict=strict)]
    if isinstance(value, Mapping):
        entries = []
        for algorithm, group in value.items():
            if isinstance(group, (str, bytes)) or not isinstance(group, Iterable):
                continue
            for item in group:
                if isinstance(item, Mapping) and "algorithm" not in item:
                    item = {**item, "algorithm": algorithm}
                entries.append(HashEntry.from_hash_like(item, strict=strict))
        return entries
    return []


class Integrity:
    """Hash entries grouped by algorithm."""

    def __init__(self, entries: Optional[Iterable[HashEntry]] = None, dedupe: bool = True):
        """Initialize a collection.

        Args:
            entries: Entries to add; invalid ones are skipped
            dedupe: Drop entries whose ``source`` already exists in their group
        """
        self._hashes: Dict[str, List[HashEntry]] = {}
        for entry in entries or ():
            self._add(entry, dedupe=dedupe)

    @classmethod
    def coerce(cls, value: Any, strict: bool = False) -> "Integrity":
        """Normalize any accepted input into a fresh Integrity."""
        return cls(_entries_of(value, strict))

    def _add(self, entry: HashEntry, dedupe: bool = True) -> bool:
        if not entry.is_valid:
            return False
        group = self._hashes.setdefault(entry.algorithm, [])
        if dedupe and any(existing.source == entry.source for existing in group):
            return False
        group.append(entry)
        return True

    @property
    def is_integrity(self) -> bool:
        return True

    @property
    def algorithms(self) -> List[str]:
        """Algorithm names, in first-seen order."""
        return list(self._hashes)

    def entries(self) -> List[HashEntry]:
        """All entries, grouped by algorithm."""
        return [entry for group in self._hashes.values() for entry in group]

    def is_empty(self) -> bool:
        return not self._hashes

    def get(self, algorithm: str, default: Any = None) -> Any:
        group = self._hashes.get(algorithm.lower())
        return list(group) if group is not None else default

    def items(self) -> List[Tuple[str, List[HashEntry]]]:
        return [(algorithm, list(group)) for algorithm, group in self._hashes.items()]

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Convert to a plain integrity-like mapping."""
        return {
            algorithm: [
                {
                    "source": entry.source,
                    "algorithm": entry.algorithm,
                    "digest": entry.digest,
                    "options": list(entry.options),
                }
                for entry in group
            ]
            for algorithm, group in self._hashes.items()
        }

    def to_string(self, sep: Optional[str] = None, strict: bool = False) -> str:
        """Serialize all entries.

        Args:
            sep: Separator between entries; falsy values mean a single space
            strict: Only emit entries that pass the strict grammar, and turn
                every non-whitespace character of ``sep`` into a space

        Returns:
            Serialized integrity string
        """
        sep = sep or " "
        if strict:
            sep = _NON_WHITESPACE.sub(" ", sep)
        rendered = (entry.to_string(strict=strict) for entry in self.entries())
        return sep.join(text for text in rendered if text)

    def to_json(self) -> str:
        return self.to_string()

    def concat(self, integrity: Any, strict: bool = False) -> "Integrity":
        """Return a new collection with ``integrity`` appended after this one."""
        combined = _entries_of(self, strict) + _entries_of(integrity, strict)
        return Integrity(combined)

    def merge(self, integrity: Any, strict: bool = False) -> "Integrity":
        """Upgrade this collection in place with entries from ``integrity``.

        Every algorithm both sides have must share at least one digest.

        Raises:
            MergeConflictError: If a shared algorithm has no agreeing digest
        """
        other = Integrity.coerce(integrity, strict=strict)
        for algorithm, group in other._hashes.items():
            ours = self._hashes.get(algorithm)
            if ours is None:
                continue
            digests = {entry.digest for entry in group}
            if not any(entry.digest in digests for entry in ours):
                get_logger().merge_conflict(algorithm, str(self), str(other))
                raise MergeConflictError()

        for entry in other.entries():
            self._add(entry)
        return self

    def match(
        self,
        integrity: Any,
        strict: bool = False,
        algorithms: Optional[Iterable[str]] = None,
        pick_algorithm: Optional[PickAlgorithm] = None,
    ) -> Union[HashEntry, bool]:
        """Find an entry of ours whose digest also appears in ``integrity``.

        Returns:
            The matching entry, or ``False``
        """
        other = Integrity.coerce(integrity, strict=strict)
        return match_integrity(
            self, other, algorithms=algorithms, pick_algorithm=pick_algorithm
        )

    def pick_algorithm(
        self,
        pick_algorithm: Optional[PickAlgorithm] = None,
        algorithms: Optional[Iterable[str]] = None,
    ) -> str:
        """Pick the preferred algorithm present in this collection.

        Args:
            pick_algorithm: Optional custom picker
            algorithms: Optional allow-list of candidate algorithms

        Raises:
            NoValidHashesError: If no candidate is present
        """
        candidates = self.algorithms
        if algorithms is not None:
            allowed = {algorithm.lower() for algorithm in algorithms}
            candidates = [algorithm for algorithm in candidates if algorithm in allowed]
        return select_algorithm(candidates, pick_algorithm)

    def pick_entry(self, pick_algorithm: Optional[PickAlgorithm] = None) -> HashEntry:
        """First entry of the picked algorithm, or the empty placeholder."""
        if self.is_empty():
            return EMPTY_ENTRY
        group = self._hashes.get(self.pick_algorithm(pick_algorithm))
        return group[0] if group else EMPTY_ENTRY

    def hex_digest(self) -> str:
        """Hex digest of the preferred entry."""
        return self.pick_entry().hex_digest()

    def __getitem__(self, algorithm: str) -> List[HashEntry]:
        return list(self._hashes[algorithm.lower()])

    def __contains__(self, algorithm: object) -> bool:
        return isinstance(algorithm, str) and algorithm.lower() in self._hashes

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._hashes))

    def __len__(self) -> int:
        return len(self._hashes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Integrity):
            return NotImplemented
        return self._hashes == other._hashes

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Integrity({self.to_string()!r})"
