"""Streaming integrity computation and verification."""

from sriguard.stream.verifier import (
    StreamState,
    IntegrityOptions,
    IntegrityStream,
    integrity_stream,
    from_stream,
    check_stream,
)
from sriguard.stream.sources import iter_chunks, aiter_chunks

__all__ = [
    "StreamState",
    "IntegrityOptions",
    "IntegrityStream",
    "integrity_stream",
    "from_stream",
    "check_stream",
    "iter_chunks",
    "aiter_chunks",
]
