"""Structured logging and metrics for integrity checks.

Every verification outcome, rejected merge and failed stream becomes an
:class:`IntegrityEvent`. Events go to the standard ``sriguard`` logger,
are kept in a bounded in-memory history and are handed to any registered
callbacks. :class:`VerificationMetrics` counts digests and outcomes.
"""

import json
import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple

from sriguard.integrations.config import get_config

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class IntegrityEventType(Enum):
    """Kinds of integrity events."""

    INTEGRITY_VERIFIED = "integrity_verified"
    INTEGRITY_MISMATCH = "integrity_mismatch"
    SIZE_MISMATCH = "size_mismatch"
    NO_VALID_HASHES = "no_valid_hashes"
    MERGE_CONFLICT = "merge_conflict"
    STREAM_ERROR = "stream_error"


_SEVERITY = {
    IntegrityEventType.INTEGRITY_VERIFIED: "DEBUG",
    IntegrityEventType.INTEGRITY_MISMATCH: "WARNING",
    IntegrityEventType.SIZE_MISMATCH: "WARNING",
    IntegrityEventType.NO_VALID_HASHES: "WARNING",
    IntegrityEventType.MERGE_CONFLICT: "WARNING",
    IntegrityEventType.STREAM_ERROR: "ERROR",
}


@dataclass
class IntegrityEvent:
    """One recorded integrity event.

    Attributes:
        event_type: What happened
        severity: Logging level name
        message: Human-readable summary
        details: Event-specific values (algorithm, sizes, digests)
        timestamp: When the event was created
        source: Emitting component
    """

    event_type: IntegrityEventType
    severity: str = "INFO"
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = "sriguard"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type.value,
            "severity": self.severity,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "source": self.source,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class JSONEventFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Records produced by :class:`IntegrityLogger` carry the full event;
    anything else is reduced to level, logger name and message.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = getattr(record, "event_data", None) or {
            "severity": record.levelname,
            "source": record.name,
            "message": record.getMessage(),
        }
        return json.dumps(payload, default=str)


class IntegrityLogger:
    """Records integrity events to logging, history and callbacks."""

    def __init__(
        self,
        name: str = "sriguard",
        level: str = "WARNING",
        handlers: Optional[List[logging.Handler]] = None,
        max_history: int = 1000,
        enabled: bool = True,
    ):
        """Initialize logger.

        Args:
            name: Name of the underlying standard logger
            level: Level name for the underlying logger
            handlers: Handlers to attach; a stderr handler is added when
                neither these nor existing handlers are present
            max_history: Number of events kept in memory
            enabled: Drop all events when False
        """
        self.enabled = enabled
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level.upper())

        for handler in handlers or ():
            self.logger.addHandler(handler)
        if not self.logger.handlers:
            default = logging.StreamHandler()
            default.setFormatter(logging.Formatter(TEXT_FORMAT))
            self.logger.addHandler(default)

        self._history: Deque[IntegrityEvent] = deque(maxlen=max_history)
        self._callbacks: List[Callable[[IntegrityEvent], None]] = []
        self._lock = threading.Lock()

    def log_event(self, event: IntegrityEvent) -> None:
        """Send an event to logging, history and callbacks."""
        if not self.enabled:
            return

        level = logging.getLevelName(event.severity.upper())
        if not isinstance(level, int):
            level = logging.INFO
        self.logger.log(
            level,
            "[%s] %s",
            event.event_type.value,
            event.message,
            extra={"event_data": event.to_dict()},
        )

        with self._lock:
            self._history.append(event)
            callbacks = list(self._callbacks)
        # a failing callback must not change the outcome being reported
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                self.logger.exception(
                    "Event callback %r failed for %s", callback, event.event_type.value
                )

    def _record(self, event_type: IntegrityEventType, message: str, **details: Any) -> None:
        self.log_event(IntegrityEvent(
            event_type=event_type,
            severity=_SEVERITY[event_type],
            message=message,
            details=details,
        ))

    def integrity_verified(self, algorithm: str, size: int, source: str) -> None:
        self._record(
            IntegrityEventType.INTEGRITY_VERIFIED,
            f"Verified {size} bytes with {algorithm}",
            algorithm=algorithm, size=size, source=source,
        )

    def integrity_mismatch(
        self,
        algorithm: Optional[str],
        expected: str,
        found: str,
        size: Optional[int] = None,
    ) -> None:
        self._record(
            IntegrityEventType.INTEGRITY_MISMATCH,
            f"Integrity check failed using {algorithm}: wanted {expected} but got {found}",
            algorithm=algorithm, expected=expected, found=found, size=size,
        )

    def size_mismatch(self, expected: int, found: int) -> None:
        self._record(
            IntegrityEventType.SIZE_MISMATCH,
            f"Size mismatch: wanted {expected} bytes but got {found}",
            expected=expected, found=found,
        )

    def no_valid_hashes(self, sri: str) -> None:
        self._record(
            IntegrityEventType.NO_VALID_HASHES,
            "No valid integrity hashes to choose from",
            sri=sri,
        )

    def merge_conflict(self, algorithm: str, ours: str, theirs: str) -> None:
        self._record(
            IntegrityEventType.MERGE_CONFLICT,
            f"Cannot merge integrity: no {algorithm} digest in common",
            algorithm=algorithm, ours=ours, theirs=theirs,
        )

    def stream_error(self, error: BaseException, size: int) -> None:
        self._record(
            IntegrityEventType.STREAM_ERROR,
            f"Stream failed after {size} bytes: {error}",
            error=type(error).__name__, size=size,
        )

    def add_callback(self, callback: Callable[[IntegrityEvent], None]) -> None:
        """Call ``callback`` with every event recorded from now on."""
        with self._lock:
            self._callbacks.append(callback)

    def get_recent_events(
        self,
        count: int = 100,
        event_type: Optional[IntegrityEventType] = None,
    ) -> List[IntegrityEvent]:
        """Return up to ``count`` of the newest events, oldest first.

        Args:
            count: Maximum number of events
            event_type: Only return events of this kind
        """
        with self._lock:
            events = list(self._history)
        if event_type is not None:
            events = [event for event in events if event.event_type is event_type]
        return events[-count:]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


LabelKey = Tuple[str, Tuple[Tuple[str, Any], ...]]


class MetricsCollector:
    """Thread-safe labelled counters and running value summaries."""

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    @staticmethod
    def _key(name: str, labels: Optional[Dict[str, Any]]) -> LabelKey:
        return name, tuple(sorted((labels or {}).items()))

    def increment(self, name: str, value: float = 1.0, labels: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            self._counters[self._key(name, labels)] += value

    def observe(self, name: str, value: float) -> None:
        """Fold ``value`` into the running count/sum/min/max for ``name``."""
        with self._lock:
            stats = self._summaries.setdefault(
                name, {"count": 0, "sum": 0.0, "min": value, "max": value}
            )
            stats["count"] += 1
            stats["sum"] += value
            stats["min"] = min(stats["min"], value)
            stats["max"] = max(stats["max"], value)

    def get_counter(self, name: str, labels: Optional[Dict[str, Any]] = None) -> float:
        with self._lock:
            return self._counters.get(self._key(name, labels), 0.0)

    def get_summary(self, name: str) -> Dict[str, float]:
        """Running statistics for an observed value, with ``avg`` added."""
        with self._lock:
            stats = dict(self._summaries.get(name, {}))
        if stats:
            stats["avg"] = stats["sum"] / stats["count"]
        return stats

    def labelled(self, name: str) -> Dict[Tuple[Tuple[str, Any], ...], float]:
        """All label combinations recorded for counter ``name``."""
        with self._lock:
            return {labels: value for (key, labels), value in self._counters.items() if key == name}

    @property
    def uptime(self) -> float:
        return time.time() - self._started

    def reset(self) -> None:
        with self._lock:
            self._counters: Counter = Counter()
            self._summaries: Dict[str, Dict[str, float]] = {}
            self._started = time.time()


class VerificationMetrics:
    """Digest and verification counters built on a :class:`MetricsCollector`."""

    def __init__(self, collector: Optional[MetricsCollector] = None, enabled: bool = True):
        self.collector = collector or MetricsCollector()
        self.enabled = enabled

    def record_digest(self, algorithms: Iterable[str], size: int) -> None:
        """Count one finished digest computation over ``size`` bytes."""
        if not self.enabled:
            return
        self.collector.increment("digests_total")
        self.collector.increment("bytes_hashed", size)
        self.collector.observe("digest_size", size)
        for algorithm in algorithms:
            self.collector.increment("digests", labels={"algorithm": algorithm})

    def record_verification(self, verified: bool, reason: Optional[str] = None) -> None:
        """Count a verification; failures are labelled with ``reason``."""
        if not self.enabled:
            return
        self.collector.increment("verification_total")
        if verified:
            self.collector.increment("verification_passed")
        else:
            self.collector.increment("verification_failed", labels={"reason": reason or "unknown"})

    def get_summary(self) -> Dict[str, Any]:
        get = self.collector.get_counter
        total = get("verification_total")
        passed = get("verification_passed")
        return {
            "uptime_seconds": self.collector.uptime,
            "digests": get("digests_total"),
            "bytes_hashed": get("bytes_hashed"),
            "algorithms": {
                dict(labels)["algorithm"]: count
                for labels, count in self.collector.labelled("digests").items()
            },
            "verification": {
                "total": total,
                "passed": passed,
                "failed": total - passed,
                "pass_rate": passed / total if total else 0,
            },
        }


_default_logger: Optional[IntegrityLogger] = None
_default_metrics: Optional[VerificationMetrics] = None


def get_logger() -> IntegrityLogger:
    """Process-wide logger, configured from the monitoring settings."""
    global _default_logger
    if _default_logger is None:
        monitoring = get_config().monitoring
        _default_logger = IntegrityLogger(
            level=monitoring.log_level,
            max_history=monitoring.history_size,
            enabled=monitoring.enabled,
        )
    return _default_logger


def get_metrics() -> VerificationMetrics:
    """Process-wide metrics, enabled per the monitoring settings."""
    global _default_metrics
    if _default_metrics is None:
        _default_metrics = VerificationMetrics(enabled=get_config().monitoring.metrics_enabled)
    return _default_metrics


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> IntegrityLogger:
    """Replace the process-wide logger.

    Args:
        level: Level name
        json_output: Write one JSON event per line to the console
        log_file: Also append text records to this file

    Returns:
        The new default logger
    """
    global _default_logger

    console = logging.StreamHandler()
    console.setFormatter(JSONEventFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    handlers: List[logging.Handler] = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        handlers.append(file_handler)

    # drop handlers from an earlier call so records are not written twice
    base = logging.getLogger("sriguard")
    for handler in list(base.handlers):
        base.removeHandler(handler)
        handler.close()

    monitoring = get_config().monitoring
    _default_logger = IntegrityLogger(
        level=level,
        handlers=handlers,
        max_history=monitoring.history_size,
        enabled=monitoring.enabled,
    )
    return _default_logger
