"""Cached object snapshots and cache state."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from kubedeck.models.rid import fqn


class CacheState(StrEnum):
    """Lifecycle of one informer scope."""

    UNWATCHED = "unwatched"
    WATCHING = "watching"
    STALE = "stale"


@dataclass(frozen=True)
class CachedObject:
    """Last-known snapshot of one object, as held by an informer.

    Instances are never mutated once published; an update replaces the
    entry. ``to_dict()`` hands out a deep copy so readers cannot reach the
    cache's own state.
    """

    kind: str
    namespace: str
    name: str
    resource_version: str
    labels: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    captured_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    _raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> CachedObject:
        """Snapshot a raw API object. The input is deep-copied."""
        raw = copy.deepcopy(raw)
        metadata = raw.get("metadata") or {}
        return cls(
            kind=str(raw.get("kind", "")),
            namespace=str(metadata.get("namespace") or ""),
            name=str(metadata.get("name") or ""),
            resource_version=str(metadata.get("resourceVersion") or ""),
            labels=MappingProxyType(dict(metadata.get("labels") or {})),
            _raw=raw,
        )

    @property
    def fqn(self) -> str:
        return fqn(self.namespace, self.name)

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the raw object."""
        return copy.deepcopy(self._raw)


def newer_or_equal(incoming: str, current: str) -> bool:
    """Compare two resourceVersions.

    resourceVersions are opaque to clients; in practice they are integers, so
    compare numerically when both parse and otherwise accept the incoming one.
    """
    if not incoming or not current:
        return True
    try:
        return int(incoming) >= int(current)
    except ValueError:
        return True
