"""Hash entries and the integrity-string grammar.

A hash entry is one ``algorithm-digest?opt1?opt2`` token:

- ``algorithm``: identifier made of ``[A-Za-z0-9+/_-]``, up to the first ``-``
- ``digest``: any run of characters other than ``?``
- ``options``: zero or more ``?``-prefixed strings

Loose parsing accepts any digest and option text. Strict parsing also
requires a strict-tier algorithm (sha256, sha384, sha512), a well-formed standard
base64 digest and options made only of visible ASCII (0x21-0x7E).
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple, Union
import re

from sriguard.core.algorithms import STRICT_ALGORITHMS
from sriguard.core.hashing import decode_base64

SRI_PATTERN = re.compile(
    r"(?P<algorithm>[A-Za-z0-9+/_-]+?)-(?P<digest>[^?\s]+)(?P<options>\?\S*)?"
)
BASE64_PATTERN = re.compile(
    r"(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?"
)
VCHAR_PATTERN = re.compile(r"[\x21-\x7E]*")


def is_strict_valid(algorithm: str, digest: str, options: Sequence[str]) -> bool:
    """Check an entry's parts against the strict grammar."""
    if algorithm.lower() not in STRICT_ALGORITHMS:
        return False
    if not digest or not BASE64_PATTERN.fullmatch(digest):
        return False
    return all(VCHAR_PATTERN.fullmatch(option) for option in options)


def format_entry(algorithm: str, digest: str, options: Sequence[str] = ()) -> str:
    """Render entry parts as ``algorithm-digest?opt...``."""
    return f"{algorithm}-{digest}" + "".join(f"?{option}" for option in options)


@dataclass(frozen=True)
class HashEntry:
    """A single parsed integrity entry.

    An entry with an empty ``algorithm`` or ``digest`` is invalid: it is the
    result of a rejected token and never stored in an :class:`Integrity`.

    Attributes:
        source: Original token, or the serialized form for structured input.
            Not part of equality, so entries that serialize alike compare equal
        algorithm: Lowercase algorithm name
        digest: Base64 digest text
        options: Option strings, in order
    """
    source: str = field(default="", compare=False)
    algorithm: str = ""
    digest: str = ""
    options: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "options", tuple(self.options))

    @classmethod
    def from_string(cls, token: str, strict: bool = False) -> "HashEntry":
        """Parse one token.

        Returns an invalid entry (keeping only ``source``) when the token
        does not fit the grammar.
        """
        source = token.strip()
        match = SRI_PATTERN.fullmatch(source)
        if not match:
            return cls(source=source)

        algorithm = match.group("algorithm").lower()
        digest = match.group("digest")
        raw_options = match.group("options")
        options = tuple(raw_options[1:].split("?")) if raw_options else ()

        if strict and not is_strict_valid(algorithm, digest, options):
            return cls(source=source)

        return cls(source=source, algorithm=algorithm, digest=digest, options=options)

    @classmethod
    def from_hash_like(cls, value: Any, strict: bool = False) -> "HashEntry":
        """Build an entry from a mapping or object with algorithm/digest fields."""
        if isinstance(value, Mapping):
            algorithm = value.get("algorithm") or ""
            digest = value.get("digest") or ""
            options = value.get("options") or ()
        else:
            algorithm = getattr(value, "algorithm", "") or ""
            digest = getattr(value, "digest", "") or ""
            options = getattr(value, "options", ()) or ()

        if not algorithm or not digest:
            return cls()
        return cls.from_string(format_entry(str(algorithm), str(digest), options), strict=strict)

    @property
    def is_hash(self) -> bool:
        return True

    @property
    def is_valid(self) -> bool:
        """Whether the entry carries both an algorithm and a digest."""
        return bool(self.algorithm and self.digest)

    def is_strict(self) -> bool:
        """Whether the entry passes the strict grammar."""
        return self.is_valid and is_strict_valid(self.algorithm, self.digest, self.options)

    def hex_digest(self) -> str:
        """Return the digest as lowercase hexadecimal."""
        if not self.digest:
            return ""
        return decode_base64(self.digest).hex()

    def match(
        self,
        integrity: Any,
        strict: bool = False,
        pick_algorithm=None,
    ) -> Union["HashEntry", bool]:
        """Compare this entry with another integrity value.

        Only entries of this entry's algorithm are considered.

        Returns:
            This entry if some digest agrees, otherwise ``False``
        """
        from sriguard.core.integrity import Integrity

        other = Integrity.coerce(integrity, strict=strict)
        if not self.is_valid or self.algorithm not in other:
            return False
        if any(entry.digest == self.digest for entry in other[self.algorithm]):
            return self
        return False

    def to_string(self, strict: bool = False) -> str:
        """Serialize the entry.

        Args:
            strict: Return an empty string if the entry fails the strict grammar

        Returns:
            ``algorithm-digest?opt...`` or ``""``
        """
        if not self.is_valid:
            return ""
        if strict and not self.is_strict():
            return ""
        return format_entry(self.algorithm, self.digest, self.options)

    def to_json(self) -> str:
        """JSON representation is the serialized string."""
        return self.to_string()

    def __str__(self) -> str:
        return self.to_string()


EMPTY_ENTRY = HashEntry()
