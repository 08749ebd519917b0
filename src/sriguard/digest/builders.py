"""Digest builders.

Build :class:`Integrity` values from data:

- ``from_hex``: wrap an existing hex digest
- ``from_data``: hash an in-memory buffer with one or more algorithms
- ``create``: incremental builder with ``update``/``digest``
- ``check_data``: verify an in-memory buffer against expected integrity

Example:
    >>> str(from_data("hi", algorithms=["sha256"]))
    'sha256-j0NDRmSPa5bfid2pAcUXaxCm2Dlh3TwayItZstwyeqQ='
"""

from typing import Any, Iterable, List, Optional, Sequence, Union

from sriguard.core.algorithms import PickAlgorithm
from sriguard.core.hash_entry import HashEntry, format_entry
from sriguard.core.hashing import (
    Chunk,
    base64_digest,
    digest_data,
    hex_to_base64,
    is_supported,
    new_hasher,
    to_bytes,
)
from sriguard.core.integrity import Integrity
from sriguard.errors import IntegrityMismatchError, NoValidHashesError, SizeMismatchError
from sriguard.integrations.config import get_config
from sriguard.integrations.logging import get_logger, get_metrics


def _default_algorithms(algorithms: Optional[Iterable[str]]) -> List[str]:
    if algorithms:
        return list(algorithms)
    return list(get_config().hashing.default_algorithms)


def _make_entry(algorithm: str, digest: str, options: Sequence[str], strict: bool) -> HashEntry:
    return HashEntry.from_string(format_entry(algorithm, digest, options or ()), strict=strict)


class HashFanout:
    """Feeds every chunk into one hash state per requested algorithm.

    The same algorithm may be requested more than once; each request gets
    its own state and its own entry in the result.
    """

    def __init__(self, algorithms: Iterable[str]):
        self.algorithms = list(algorithms)
        self._hashers = [new_hasher(algorithm) for algorithm in self.algorithms]
        self.size = 0

    def update(self, chunk: Chunk) -> int:
        """Hash a chunk; returns its size in bytes."""
        data = to_bytes(chunk)
        for hasher in self._hashers:
            hasher.update(data)
        self.size += len(data)
        return len(data)

    def entries(self, options: Sequence[str] = (), strict: bool = False) -> List[HashEntry]:
        return [
            _make_entry(algorithm, base64_digest(hasher), options, strict)
            for algorithm, hasher in zip(self.algorithms, self._hashers)
        ]

    def digest(self, options: Sequence[str] = (), strict: bool = False) -> Integrity:
        """Build the collection from the current hash states."""
        integrity = Integrity(self.entries(options, strict), dedupe=False)
        get_metrics().record_digest(self.algorithms, self.size)
        return integrity


class IntegrityBuilder:
    """Incremental integrity builder.

    Example:
        >>> builder = create(algorithms=["sha256", "sha384"])
        >>> integrity = builder.update("h").update("i").digest()
    """

    def __init__(
        self,
        algorithms: Optional[Iterable[str]] = None,
        options: Optional[Sequence[str]] = None,
        strict: bool = False,
    ):
        """Initialize builder.

        Args:
            algorithms: Algorithms to compute (defaults to configuration)
            options: Options attached to every produced entry
            strict: Drop produced entries that fail the strict grammar
        """
        self.options = list(options or [])
        self.strict = strict
        self._fanout = HashFanout(_default_algorithms(algorithms))

    @property
    def algorithms(self) -> List[str]:
        return self._fanout.algorithms

    @property
    def size(self) -> int:
        return self._fanout.size

    def update(self, chunk: Chunk) -> "IntegrityBuilder":
        """Feed a chunk into every hash state."""
        self._fanout.update(chunk)
        return self

    def digest(self) -> Integrity:
        """Return the integrity of everything fed so far."""
        return self._fanout.digest(self.options, self.strict)


def create(
    algorithms: Optional[Iterable[str]] = None,
    options: Optional[Sequence[str]] = None,
    strict: bool = False,
) -> IntegrityBuilder:
    """Create an incremental integrity builder."""
    return IntegrityBuilder(algorithms=algorithms, options=options, strict=strict)


def from_hex(
    hex_digest: str,
    algorithm: str,
    options: Optional[Sequence[str]] = None,
    strict: bool = False,
    single: bool = False,
) -> Union[Integrity, HashEntry]:
    """Build integrity from a hexadecimal digest.

    Args:
        hex_digest: Digest in hexadecimal
        algorithm: Algorithm that produced the digest
        options: Options for the entry
        strict: Enforce the strict grammar
        single: Return the HashEntry instead of a collection

    Raises:
        ValueError: If ``hex_digest`` is not valid hexadecimal
    """
    entry = _make_entry(algorithm, hex_to_base64(hex_digest), options or (), strict)
    if single:
        return entry
    return Integrity([entry])


def from_data(
    data: Chunk,
    algorithms: Optional[Iterable[str]] = None,
    options: Optional[Sequence[str]] = None,
    strict: bool = False,
) -> Integrity:
    """Compute integrity for an in-memory buffer.

    Args:
        data: Bytes or string (UTF-8) to hash
        algorithms: Algorithms to compute; duplicates produce duplicate entries
        options: Options attached to every entry
        strict: Drop entries that fail the strict grammar

    Returns:
        Integrity with one entry per requested algorithm
    """
    return create(algorithms=algorithms, options=options, strict=strict).update(data).digest()


def check_data(
    data: Chunk,
    sri: Any,
    error: bool = False,
    size: Optional[int] = None,
    pick_algorithm: Optional[PickAlgorithm] = None,
    strict: bool = False,
) -> Union[HashEntry, bool]:
    """Verify an in-memory buffer.

    Args:
        data: Bytes or string to verify
        sri: Expected integrity in any accepted shape
        error: Raise on failure instead of returning ``False``
        size: Expected size in bytes, only checked when ``error`` is set
        pick_algorithm: Custom picker for the algorithm to check
        strict: Parse ``sri`` strictly

    Returns:
        The matching entry of ``sri``, or ``False``

    Raises:
        NoValidHashesError: ``sri`` has no usable entries (``error`` only)
        SizeMismatchError: ``size`` disagrees with the data (``error`` only)
        IntegrityMismatchError: No digest matched (``error`` only)
    """
    integrity = Integrity.coerce(sri, strict=strict)
    if integrity.is_empty():
        if error:
            get_logger().no_valid_hashes(str(sri))
            raise NoValidHashesError()
        return False

    algorithm = integrity.pick_algorithm(pick_algorithm)
    raw = to_bytes(data)
    expected = integrity.get(algorithm, []) if is_supported(algorithm) else []
    match: Union[HashEntry, bool] = False
    if expected:
        digest = digest_data(algorithm, raw)
        match = next((entry for entry in expected if entry.digest == digest), False)

    metrics = get_metrics()
    if match:
        metrics.record_verification(True)
        get_logger().integrity_verified(algorithm, len(raw), match.source)
        return match

    if not error:
        metrics.record_verification(False, reason="integrity")
        return False

    if size is not None and size != len(raw):
        metrics.record_verification(False, reason="size")
        get_logger().size_mismatch(size, len(raw))
        raise SizeMismatchError(
            f"data size mismatch when checking {integrity}.\n"
            f"  Wanted: {size}\n"
            f"  Found: {len(raw)}",
            expected=size,
            found=len(raw),
            sri=integrity,
        )

    metrics.record_verification(False, reason="integrity")
    found = from_data(raw, algorithms=[algorithm]) if expected else Integrity()
    wanted = " ".join(str(entry) for entry in expected)
    get_logger().integrity_mismatch(algorithm, wanted, str(found), len(raw))
    raise IntegrityMismatchError(
        f"Integrity checksum failed when using {algorithm}: wanted {wanted} but got {found}. "
        f"({len(raw)} bytes)",
        expected=expected,
        found=found,
        algorithm=algorithm,
        sri=integrity,
    )
