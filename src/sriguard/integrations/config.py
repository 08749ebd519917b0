"""Configuration for sriguard.

Settings are resolved from, in increasing priority: built-in defaults, a
JSON config file, ``SRIGUARD_*`` environment variables and runtime
overrides made through :class:`ConfigManager`.

Example:
    >>> manager = create_config_manager(profile="audit", load_env=False)
    >>> manager.get("hashing.default_algorithms")
    ['sha384', 'sha512']
"""

import hashlib
import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union


class ConfigSource(Enum):
    """Where the active settings were last changed from."""

    DEFAULT = "default"
    FILE = "file"
    ENVIRONMENT = "environment"
    RUNTIME = "runtime"


@dataclass
class HashingConfig:
    """Digest computation settings.

    Attributes:
        default_algorithms: Algorithms used when a builder is given none
        chunk_size: Bytes read per call when draining file-like streams
    """

    default_algorithms: List[str] = field(default_factory=lambda: ["sha512"])
    chunk_size: int = 64 * 1024


@dataclass
class MonitoringConfig:
    """Event logging and metrics settings.

    Attributes:
        enabled: Record integrity events
        log_level: Level of the ``sriguard`` logger
        metrics_enabled: Count digests and verification outcomes
        history_size: Number of events kept in memory
    """

    enabled: bool = True
    log_level: str = "WARNING"
    metrics_enabled: bool = True
    history_size: int = 1000


def _section(cls, data: Optional[Dict[str, Any]]):
    """Build a section dataclass, ignoring keys it does not define."""
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in (data or {}).items() if k in known})


@dataclass
class SRIGuardConfig:
    """All sriguard settings."""

    hashing: HashingConfig = field(default_factory=HashingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    config_source: ConfigSource = ConfigSource.DEFAULT
    config_version: str = "1.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hashing": asdict(self.hashing),
            "monitoring": asdict(self.monitoring),
            "config_source": self.config_source.value,
            "config_version": self.config_version,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def save(self, path: Union[str, Path]) -> None:
        """Write the settings as JSON."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SRIGuardConfig":
        """Rebuild settings from :meth:`to_dict` output.

        Missing sections fall back to their defaults and unknown keys are
        ignored.
        """
        return cls(
            hashing=_section(HashingConfig, data.get("hashing")),
            monitoring=_section(MonitoringConfig, data.get("monitoring")),
            config_source=ConfigSource(data.get("config_source", ConfigSource.DEFAULT.value)),
            config_version=data.get("config_version", "1.0"),
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "SRIGuardConfig":
        """Read settings saved with :meth:`save`."""
        config = cls.from_dict(json.loads(Path(path).read_text(encoding="utf-8")))
        config.config_source = ConfigSource.FILE
        return config


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _parse_list(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


class ConfigManager:
    """Resolves settings from file, environment and runtime overrides."""

    ENV_PREFIX = "SRIGUARD_"

    # variable suffix -> (section, attribute, parser)
    ENV_MAPPINGS: Dict[str, Tuple[str, str, Callable[[str], Any]]] = {
        "HASHING_DEFAULT_ALGORITHMS": ("hashing", "default_algorithms", _parse_list),
        "HASHING_CHUNK_SIZE": ("hashing", "chunk_size", int),
        "MONITORING_ENABLED": ("monitoring", "enabled", _parse_bool),
        "MONITORING_LOG_LEVEL": ("monitoring", "log_level", str.upper),
        "MONITORING_METRICS_ENABLED": ("monitoring", "metrics_enabled", _parse_bool),
        "MONITORING_HISTORY_SIZE": ("monitoring", "history_size", int),
    }

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        load_env: bool = True,
    ):
        """Initialize manager.

        Args:
            config_file: JSON file to start from, skipped if it does not exist
            load_env: Apply ``SRIGUARD_*`` environment variables
        """
        self._config = SRIGuardConfig()
        self._overrides: Dict[str, Any] = {}

        if config_file and Path(config_file).exists():
            self._config = SRIGuardConfig.load(config_file)
        if load_env:
            self._apply_env()

    def _apply_env(self) -> None:
        for suffix, (section, attr, parse_value) in self.ENV_MAPPINGS.items():
            raw = os.environ.get(self.ENV_PREFIX + suffix)
            if raw is None:
                continue
            setattr(getattr(self._config, section), attr, parse_value(raw))
            self._config.config_source = ConfigSource.ENVIRONMENT

    @property
    def config(self) -> SRIGuardConfig:
        return self._config

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``"hashing.chunk_size"``."""
        if key in self._overrides:
            return self._overrides[key]
        value: Any = self._config
        for part in key.split("."):
            if not hasattr(value, part):
                return default
            value = getattr(value, part)
        return value

    def set(self, key: str, value: Any) -> None:
        """Override a ``section.attribute`` key at runtime."""
        self._overrides[key] = value
        self._config.config_source = ConfigSource.RUNTIME
        section, _, attr = key.partition(".")
        if attr and hasattr(self._config, section):
            setattr(getattr(self._config, section), attr, value)

    def reset(self) -> None:
        self._config = SRIGuardConfig()
        self._overrides.clear()

    def validate(self) -> List[str]:
        """Return a list of problems with the current settings."""
        hashing = self._config.hashing
        monitoring = self._config.monitoring
        problems = []

        if not hashing.default_algorithms:
            problems.append("At least one default algorithm is required")
        problems.extend(
            f"Unsupported algorithm: {algorithm}"
            for algorithm in hashing.default_algorithms
            if algorithm.lower() not in hashlib.algorithms_available
        )
        if hashing.chunk_size <= 0:
            problems.append(f"Chunk size must be positive: {hashing.chunk_size}")
        if not isinstance(logging.getLevelName(monitoring.log_level.upper()), int):
            problems.append(f"Invalid log level: {monitoring.log_level}")
        if monitoring.history_size <= 0:
            problems.append("History size must be positive")

        return problems


PROFILES = {
    "default": SRIGuardConfig(),
    # also emit sha1 for consumers that predate sha512 support
    "compat": SRIGuardConfig(
        hashing=HashingConfig(default_algorithms=["sha1", "sha512"]),
    ),
    "audit": SRIGuardConfig(
        hashing=HashingConfig(default_algorithms=["sha384", "sha512"]),
        monitoring=MonitoringConfig(log_level="INFO", history_size=10000),
    ),
}

_active_config: Optional[SRIGuardConfig] = None


def get_profile(profile: str = "default") -> SRIGuardConfig:
    """Return a named profile (default/compat/audit); unknown names get defaults."""
    return PROFILES.get(profile) or SRIGuardConfig()


def get_config() -> SRIGuardConfig:
    """Get the active configuration, loading the environment on first use."""
    global _active_config
    if _active_config is None:
        _active_config = ConfigManager().config
    return _active_config


def set_config(config: Optional[SRIGuardConfig]) -> None:
    """Replace the active configuration (``None`` reloads on next use)."""
    global _active_config
    _active_config = config


def create_config_manager(
    config_file: Optional[str] = None,
    profile: Optional[str] = None,
    load_env: bool = True,
) -> ConfigManager:
    """Create a manager, optionally seeded from a profile.

    The profile is copied, so runtime changes never leak into ``PROFILES``.
    Environment variables still take priority over the profile.
    """
    manager = ConfigManager(config_file=config_file, load_env=False)
    if profile in PROFILES:
        manager._config = SRIGuardConfig.from_dict(PROFILES[profile].to_dict())
    if load_env:
        manager._apply_env()
    return manager
