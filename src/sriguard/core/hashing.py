"""Hashing primitives.

Thin wrappers around :mod:`hashlib` and :mod:`base64` used by the builders
and the streaming verifier.
"""

import base64
import binascii
import hashlib
import re
from typing import Union

Chunk = Union[bytes, bytearray, memoryview, str]

_NON_BASE64 = re.compile(r"[^A-Za-z0-9+/]")


def to_bytes(data: Chunk) -> bytes:
    """Return ``data`` as bytes, encoding strings as UTF-8."""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def is_supported(algorithm: str) -> bool:
    """Whether :func:`new_hasher` can hash with ``algorithm``."""
    return algorithm.lower() in hashlib.algorithms_available


def new_hasher(algorithm: str):
    """Create an incremental hash state for ``algorithm``.

    Raises:
        ValueError: If the algorithm is not available
    """
    try:
        return hashlib.new(algorithm.lower())
    except ValueError:
        raise ValueError(f"Unsupported algorithm: {algorithm}") from None


def base64_digest(hasher) -> str:
    """Finalize a hash state into a base64 digest string."""
    return base64.b64encode(hasher.digest()).decode("ascii")


def digest_data(algorithm: str, data: Chunk) -> str:
    """Compute the base64 digest of ``data`` in one call."""
    hasher = new_hasher(algorithm)
    hasher.update(to_bytes(data))
    return base64_digest(hasher)


def decode_base64(digest: str) -> bytes:
    """Decode a base64 digest leniently.

    URL-safe characters are accepted, anything else outside the base64
    alphabet is ignored and missing padding is restored. A dangling single
    character carries no full byte and is dropped.
    """
    cleaned = _NON_BASE64.sub("", digest.replace("-", "+").replace("_", "/"))
    remainder = len(cleaned) % 4
    if remainder == 1:
        cleaned = cleaned[:-1]
    elif remainder:
        cleaned += "=" * (4 - remainder)
    return base64.b64decode(cleaned)


def hex_to_base64(hex_string: str) -> str:
    """Re-encode a hexadecimal digest as base64.

    Raises:
        ValueError: If ``hex_string`` is not valid hexadecimal
    """
    try:
        raw = binascii.unhexlify(hex_string.strip())
    except binascii.Error as exc:
        raise ValueError(f"Invalid hex digest: {hex_string!r}") from exc
    return base64.b64encode(raw).decode("ascii")
