"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class KubeConfig:
    """Cluster connection configuration."""

    kubeconfig: str = ""
    context: str = ""
    request_timeout: int = 30


@dataclass
class WatchConfig:
    """Informer resubscribe and sync configuration."""

    backoff_base: float = 0.5
    backoff_max: float = 30.0
    stale_threshold: int = 3
    watch_timeout: int = 300
    sync_timeout: float = 10.0
    # A watch stream counts as established once it delivers an event or has
    # stayed open this many seconds; only established streams reset failures.
    established_after: float = 5.0


@dataclass
class TailConfig:
    """Log tailing configuration."""

    sink_size: int = 1000
    tail_lines: int = 100


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class KubedeckConfig:
    """Top-level kubedeck configuration."""

    kube: KubeConfig = field(default_factory=KubeConfig)
    watch: WatchConfig = field(default_factory=WatchConfig)
    tail: TailConfig = field(default_factory=TailConfig)
    log: LogConfig = field(default_factory=LogConfig)
