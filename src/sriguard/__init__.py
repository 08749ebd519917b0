"""
sriguard: Subresource Integrity metadata for Python
"""

__version__ = "0.1.0"

from sriguard.core import HashEntry, Integrity, parse, stringify
from sriguard.digest import create, from_hex, from_data, check_data
from sriguard.stream import (
    IntegrityOptions,
    IntegrityStream,
    integrity_stream,
    from_stream,
    check_stream,
)
from sriguard.errors import (
    SRIError,
    IntegrityMismatchError,
    SizeMismatchError,
    NoValidHashesError,
    MergeConflictError,
)

__all__ = [
    "HashEntry",
    "Integrity",
    "parse",
    "stringify",
    "create",
    "from_hex",
    "from_data",
    "check_data",
    "IntegrityOptions",
    "IntegrityStream",
    "integrity_stream",
    "from_stream",
    "check_stream",
    "SRIError",
    "IntegrityMismatchError",
    "SizeMismatchError",
    "NoValidHashesError",
    "MergeConflictError",
]
