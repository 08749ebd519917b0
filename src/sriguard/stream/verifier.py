"""Streaming integrity verification.

:class:`IntegrityStream` is a pass-through stage: every chunk written to it
is forwarded unchanged while it is counted and fed to one hash state per
algorithm. When input ends the stream computes the final integrity and,
if a target was configured, verifies it.

States::

    OPEN --end()--> FINALIZING --ok--> CLOSED
      |                  |
      +--source error----+--mismatch--> ERRORED

Options live in an :class:`IntegrityOptions` record shared with the
caller. ``integrity``, ``size`` and ``pick_algorithm`` are read when the
stream finalizes, and the hash states are created on the first chunk, so
the caller may fill options in after constructing the stream.

Terminal events (``size``, ``integrity``, ``verified``, ``end``, ``error``)
are cached and replayed to observers registered after they fired.

Example:
    >>> from sriguard import from_data
    >>> opts = IntegrityOptions()
    >>> stream = integrity_stream(opts)
    >>> opts.integrity = from_data("hello world")
    >>> stream.end("hello world").verified.algorithm
    'sha512'
"""

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Iterator, List, Optional, Tuple

from sriguard.core.algorithms import PickAlgorithm
from sriguard.core.hash_entry import HashEntry
from sriguard.core.hashing import Chunk, is_supported, to_bytes
from sriguard.core.integrity import Integrity
from sriguard.digest.builders import HashFanout
from sriguard.errors import IntegrityMismatchError, SizeMismatchError
from sriguard.integrations.config import get_config
from sriguard.integrations.logging import get_logger, get_metrics
from sriguard.stream.sources import aiter_chunks, iter_chunks

TERMINAL_EVENTS = ("size", "integrity", "verified", "end", "error")


class StreamState(Enum):
    """Lifecycle of an integrity stream."""
    OPEN = "open"
    FINALIZING = "finalizing"
    CLOSED = "closed"
    ERRORED = "errored"


@dataclass
class IntegrityOptions:
    """Settings shared by reference between a caller and its stream.

    Attributes:
        integrity: Expected integrity in any accepted shape (None skips verification)
        size: Expected size in bytes (None skips the size check)
        algorithms: Algorithms to compute (defaults to configuration)
        pick_algorithm: Custom picker for the algorithm to verify with
        options: Options attached to computed entries
        strict: Parse the target and build entries strictly
    """
    integrity: Any = None
    size: Optional[int] = None
    algorithms: Optional[List[str]] = None
    pick_algorithm: Optional[PickAlgorithm] = None
    options: Optional[List[str]] = None
    strict: bool = False


class IntegrityStream:
    """Pass-through stage that hashes and optionally verifies a byte stream."""

    def __init__(self, opts: Optional[IntegrityOptions] = None, **kwargs):
        """Initialize stream.

        Args:
            opts: Shared options record; read again when the stream ends
            **kwargs: IntegrityOptions fields, when no record is given

        Raises:
            TypeError: If ``opts`` is not an IntegrityOptions or is combined
                with keyword fields
        """
        if opts is not None and not isinstance(opts, IntegrityOptions):
            raise TypeError(f"Expected IntegrityOptions, got {type(opts).__name__}")
        if opts is not None and kwargs:
            raise TypeError("Pass either an IntegrityOptions or keyword options, not both")
        self.opts = opts if opts is not None else IntegrityOptions(**kwargs)

        self.state = StreamState.OPEN
        self.size = 0
        self.integrity: Optional[Integrity] = None
        self.verified: Optional[HashEntry] = None
        self.error: Optional[BaseException] = None

        self._fanout: Optional[HashFanout] = None
        self._observers: Dict[str, List[Callable]] = defaultdict(list)
        self._emitted: Dict[str, Tuple] = {}

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Callable) -> "IntegrityStream":
        """Register an observer.

        Terminal events that already fired are replayed to ``handler``
        immediately.
        """
        if event in self._emitted:
            handler(*self._emitted[event])
            return self
        self._observers[event].append(handler)
        return self

    def _emit(self, event: str, *args: Any) -> None:
        if event in TERMINAL_EVENTS:
            self._emitted[event] = args
            handlers = self._observers.pop(event, [])
        else:
            handlers = list(self._observers.get(event, []))
        for handler in handlers:
            handler(*args)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def _target(self) -> Tuple[Optional[Integrity], Optional[str]]:
        """Parse the configured target and pick the algorithm to verify with."""
        target = self.opts.integrity
        if target is None or (isinstance(target, str) and not target.strip()):
            return None, None
        sri = Integrity.coerce(target, strict=self.opts.strict)
        if sri.is_empty():
            return sri, None
        return sri, sri.pick_algorithm(self.opts.pick_algorithm)

    def _ensure_fanout(self) -> HashFanout:
        if self._fanout is None:
            algorithms = list(self.opts.algorithms or get_config().hashing.default_algorithms)
            _, algorithm = self._target()
            if algorithm and algorithm not in algorithms and is_supported(algorithm):
                algorithms.append(algorithm)
            self._fanout = HashFanout(algorithms)
        return self._fanout

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def write(self, chunk: Chunk) -> Chunk:
        """Hash ``chunk`` and return it unchanged for forwarding.

        Raises:
            ValueError: If the stream no longer accepts input
        """
        if self.state is not StreamState.OPEN:
            raise ValueError(f"Cannot write to {self.state.value} stream")
        fanout = self._ensure_fanout()
        fanout.update(chunk)
        self.size = fanout.size
        self._emit("data", chunk)
        return chunk

    def end(self, chunk: Optional[Chunk] = None) -> "IntegrityStream":
        """Finish input, compute the integrity and verify it.

        Args:
            chunk: Optional last chunk

        Returns:
            This stream, closed

        Raises:
            SizeMismatchError: The configured size disagrees
            IntegrityMismatchError: The configured integrity does not match
        """
        if chunk is not None:
            self.write(chunk)
        if self.state is StreamState.CLOSED:
            return self
        if self.state is StreamState.ERRORED:
            raise self.error
        if self.state is StreamState.FINALIZING:
            raise ValueError("Stream is already finalizing")

        self.state = StreamState.FINALIZING
        try:
            self._finalize()
        except Exception as exc:
            self._fail(exc)
            raise
        return self

    def _finalize(self) -> None:
        fanout = self._ensure_fanout()
        opts = self.opts
        sri, algorithm = self._target()
        computed = fanout.digest(opts.options or (), opts.strict)
        metrics = get_metrics()

        if opts.size is not None and self.size != opts.size:
            metrics.record_verification(False, reason="size")
            get_logger().size_mismatch(opts.size, self.size)
            raise SizeMismatchError(
                f"stream size mismatch when checking {sri}.\n"
                f"  Wanted: {opts.size}\n"
                f"  Found: {self.size}",
                expected=opts.size,
                found=self.size,
                sri=sri,
            )

        match = False
        if sri is not None:
            if algorithm:
                match = computed.match(sri, pick_algorithm=opts.pick_algorithm)
            if not match:
                expected = sri.get(algorithm, []) if algorithm else sri
                wanted = " ".join(str(entry) for entry in expected) if algorithm else str(sri)
                metrics.record_verification(False, reason="integrity")
                get_logger().integrity_mismatch(algorithm, wanted, str(computed), self.size)
                if algorithm:
                    message = (
                        f"{sri} integrity checksum failed when using {algorithm}: "
                        f"wanted {wanted} but got {computed}. ({self.size} bytes)"
                    )
                else:
                    message = f"no valid integrity hashes to check against. ({self.size} bytes)"
                raise IntegrityMismatchError(
                    message,
                    expected=expected,
                    found=computed,
                    algorithm=algorithm,
                    sri=sri,
                )
            metrics.record_verification(True)
            get_logger().integrity_verified(match.algorithm, self.size, match.source)

        self.integrity = computed
        self.verified = match or None
        self.state = StreamState.CLOSED

        self._emit("size", self.size)
        self._emit("integrity", computed)
        if match:
            self._emit("verified", match)
        self._emit("end")

    def _fail(self, error: BaseException) -> None:
        self.state = StreamState.ERRORED
        self.error = error
        self._emit("error", error)

    def _upstream_failed(self, error: BaseException) -> None:
        get_logger().stream_error(error, self.size)
        self._fail(error)

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def pipe(self, source: Any) -> Iterator[Chunk]:
        """Forward every chunk of a synchronous source, then end the stream.

        Errors raised by the source put the stream in the errored state and
        are re-raised.
        """
        chunks = iter_chunks(source)
        while True:
            try:
                chunk = next(chunks)
            except StopIteration:
                break
            except Exception as exc:
                self._upstream_failed(exc)
                raise
            yield self.write(chunk)
        self.end()

    async def apipe(self, source: Any) -> AsyncIterator[Chunk]:
        """Asynchronous counterpart of :meth:`pipe`."""
        chunks = aiter_chunks(source).__aiter__()
        while True:
            try:
                chunk = await chunks.__anext__()
            except StopAsyncIteration:
                break
            except Exception as exc:
                self._upstream_failed(exc)
                raise
            yield self.write(chunk)
        self.end()

    def collect(self, source: Any) -> bytes:
        """Drain ``source`` through the stream and return all of its bytes."""
        return b"".join(to_bytes(chunk) for chunk in self.pipe(source))

    async def acollect(self, source: Any) -> bytes:
        """Asynchronous counterpart of :meth:`collect`."""
        return b"".join([to_bytes(chunk) async for chunk in self.apipe(source)])

    def __repr__(self) -> str:
        return f"IntegrityStream(state={self.state.value}, size={self.size})"


def integrity_stream(opts: Optional[IntegrityOptions] = None, **kwargs) -> IntegrityStream:
    """Create a verifying pass-through stream."""
    return IntegrityStream(opts, **kwargs)


async def from_stream(
    stream: Any,
    algorithms: Optional[List[str]] = None,
    options: Optional[List[str]] = None,
    strict: bool = False,
) -> Integrity:
    """Consume ``stream`` to completion and return its integrity.

    Args:
        stream: Async or sync byte source
        algorithms: Algorithms to compute
        options: Options attached to every entry
        strict: Drop entries that fail the strict grammar

    Raises:
        Exception: Whatever the source raised
    """
    verifier = IntegrityStream(IntegrityOptions(algorithms=algorithms, options=options, strict=strict))
    async for _ in verifier.apipe(stream):
        pass
    return verifier.integrity


async def check_stream(
    stream: Any,
    sri: Any,
    size: Optional[int] = None,
    algorithms: Optional[List[str]] = None,
    pick_algorithm: Optional[PickAlgorithm] = None,
    strict: bool = False,
) -> HashEntry:
    """Consume ``stream`` and verify it against ``sri``.

    Returns:
        The matching computed entry

    Raises:
        IntegrityMismatchError: No digest matched or ``sri`` has no usable entries
        SizeMismatchError: ``size`` disagrees with the stream
    """
    verifier = IntegrityStream(IntegrityOptions(
        integrity=sri,
        size=size,
        algorithms=algorithms,
        pick_algorithm=pick_algorithm,
        strict=strict,
    ))
    async for _ in verifier.apipe(stream):
        pass
    return verifier.verified
