"""Digest builders for whole buffers and incremental input."""

from sriguard.digest.builders import (
    HashFanout,
    IntegrityBuilder,
    create,
    from_hex,
    from_data,
    check_data,
)

__all__ = [
    "HashFanout",
    "IntegrityBuilder",
    "create",
    "from_hex",
    "from_data",
    "check_data",
]
