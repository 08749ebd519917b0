"""Adapters that turn byte sources into chunk iterators.

Accepted sources:
- ``bytes``/``str``: a single chunk
- file-like objects with ``read(n)``
- any iterable of chunks
- (async only) objects with a coroutine ``read(n)`` such as
  :class:`asyncio.StreamReader`, and async iterables
"""

import inspect
from typing import Any, AsyncIterator, Iterator, Optional

from sriguard.core.hashing import Chunk
from sriguard.integrations.config import get_config

_SINGLE_CHUNK = (bytes, bytearray, memoryview, str)


def _chunk_size(chunk_size: Optional[int]) -> int:
    return chunk_size or get_config().hashing.chunk_size


def iter_chunks(source: Any, chunk_size: Optional[int] = None) -> Iterator[Chunk]:
    """Iterate the chunks of a synchronous source."""
    if source is None:
        return
    if isinstance(source, _SINGLE_CHUNK):
        if len(source):
            yield source
        return

    read = getattr(source, "read", None)
    if callable(read):
        size = _chunk_size(chunk_size)
        while True:
            chunk = read(size)
            if not chunk:
                break
            yield chunk
        return

    yield from source


async def aiter_chunks(source: Any, chunk_size: Optional[int] = None) -> AsyncIterator[Chunk]:
    """Iterate the chunks of an asynchronous (or synchronous) source."""
    read = getattr(source, "read", None)
    if read is not None and inspect.iscoroutinefunction(read):
        size = _chunk_size(chunk_size)
        while True:
            chunk = await read(size)
            if not chunk:
                break
            yield chunk
        return

    if hasattr(source, "__aiter__"):
        async for chunk in source:
            yield chunk
        return

    for chunk in iter_chunks(source, chunk_size):
        yield chunk
