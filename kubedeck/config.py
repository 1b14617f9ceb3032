"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubedeck.models.config import (
    KubeConfig,
    KubedeckConfig,
    LogConfig,
    TailConfig,
    WatchConfig,
)
from kubedeck.observability.logging import LOG_FORMATS


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBEDECK_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_float(key: str, default: float, min_val: float | None = None, max_val: float | None = None) -> float:
    val = float(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_log_format(value: str) -> str:
    if value.lower() not in LOG_FORMATS:
        raise ValueError(f"Invalid log format: {value}. Must be one of {LOG_FORMATS}")
    return value.lower()


def load_config() -> KubedeckConfig:
    """Load configuration from KUBEDECK_* environment variables."""
    backoff_base = _env_float("WATCH_BACKOFF_BASE", 0.5, min_val=0.0, max_val=60.0)
    return KubedeckConfig(
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", ""),
            context=_env("CONTEXT", ""),
            request_timeout=_env_int("REQUEST_TIMEOUT", 30, min_val=1, max_val=300),
        ),
        watch=WatchConfig(
            backoff_base=backoff_base,
            backoff_max=_env_float("WATCH_BACKOFF_MAX", 30.0, min_val=backoff_base, max_val=600.0),
            stale_threshold=_env_int("WATCH_STALE_THRESHOLD", 3, min_val=1, max_val=100),
            watch_timeout=_env_int("WATCH_TIMEOUT", 300, min_val=10, max_val=3600),
            sync_timeout=_env_float("SYNC_TIMEOUT", 10.0, min_val=0.1, max_val=300.0),
            established_after=_env_float("WATCH_ESTABLISHED_AFTER", 5.0, min_val=0.0, max_val=600.0),
        ),
        tail=TailConfig(
            sink_size=_env_int("LOG_SINK_SIZE", 1000, min_val=1, max_val=100_000),
            tail_lines=_env_int("LOG_TAIL_LINES", 100, min_val=0, max_val=100_000),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
            format=_validate_log_format(_env("LOG_FORMAT", "json")),
        ),
    )
