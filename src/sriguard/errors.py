"""Error types raised by sriguard.

Parsing never raises on malformed input. These errors are reserved for
operations that verify data (``check_data(error=True)``, streaming
verification) or mutate a collection (``Integrity.merge``).

Every error carries a machine-readable ``code`` alongside its message.
"""

from typing import Any, Optional


class SRIError(Exception):
    """Base class for all sriguard errors.

    Attributes:
        code: Machine-readable error kind
        message: Human-readable message
    """

    code = "ESRI"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class IntegrityMismatchError(SRIError):
    """Computed digests do not match the expected integrity.

    Attributes:
        expected: Expected entries (or the unparseable target)
        found: Computed integrity
        algorithm: Algorithm the comparison used
        sri: Parsed target integrity
    """

    code = "EINTEGRITY"

    def __init__(
        self,
        message: str,
        expected: Any = None,
        found: Any = None,
        algorithm: Optional[str] = None,
        sri: Any = None,
    ):
        super().__init__(message)
        self.expected = expected
        self.found = found
        self.algorithm = algorithm
        self.sri = sri


class SizeMismatchError(SRIError):
    """Observed byte count differs from the expected size."""

    code = "EBADSIZE"

    def __init__(self, message: str, expected: int, found: int, sri: Any = None):
        super().__init__(message)
        self.expected = expected
        self.found = found
        self.sri = sri


class NoValidHashesError(SRIError):
    """Algorithm selection was requested from an empty set of entries."""

    code = "EINTEGRITY"

    def __init__(self, message: str = "No valid integrity hashes to choose from"):
        super().__init__(message)


class MergeConflictError(SRIError):
    """Two collections share an algorithm but none of its digests agree."""

    code = "EMERGECONFLICT"

    def __init__(self, message: str = "hashes do not match, cannot update integrity"):
        super().__init__(message)
