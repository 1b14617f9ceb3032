"""Core data structures for kubedeck."""

from kubedeck.models.config import KubedeckConfig
from kubedeck.models.logs import LogError, LogEvent, LogItem, LogOptions
from kubedeck.models.resources import CachedObject, CacheState
from kubedeck.models.rid import ResourceID, fqn, split_fqn
from kubedeck.models.selector import Selector

__all__ = [
    "CacheState",
    "CachedObject",
    "KubedeckConfig",
    "LogError",
    "LogEvent",
    "LogItem",
    "LogOptions",
    "ResourceID",
    "Selector",
    "fqn",
    "split_fqn",
]
