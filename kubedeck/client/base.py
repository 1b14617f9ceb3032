"""Cluster transport contract.

kubedeck treats the cluster API as an opaque transport. Everything above
this module depends only on ``ClusterClient``: synchronous-looking calls
that raise ``TransportError``, a push-based watch yielding an ordered event
sequence, and a push-based log read yielding an ordered line sequence.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from kubedeck.models.logs import LogOptions
from kubedeck.models.rid import ResourceID


@dataclass(frozen=True)
class ListResult:
    """Items of one list call plus the collection resourceVersion to watch from."""

    items: list[dict[str, Any]] = field(default_factory=list)
    resource_version: str = ""


@dataclass(frozen=True)
class WatchEvent:
    """One server-pushed change: ADDED, MODIFIED, DELETED or BOOKMARK."""

    type: str
    object: dict[str, Any]

    @property
    def resource_version(self) -> str:
        return str((self.object.get("metadata") or {}).get("resourceVersion") or "")


class ClusterClient(ABC):
    """Abstract cluster API transport."""

    @abstractmethod
    def is_namespaced(self, rid: ResourceID) -> bool:
        """Whether objects of this resource live in a namespace."""

    @abstractmethod
    async def list(self, rid: ResourceID, namespace: str = "") -> ListResult:
        """List every object of ``rid`` in ``namespace`` (all namespaces when empty)."""

    @abstractmethod
    def watch(
        self,
        rid: ResourceID,
        namespace: str = "",
        resource_version: str = "",
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[WatchEvent]:
        """Stream changes after ``resource_version``.

        The iterator ends when the server closes the stream; transport
        failures (including HTTP 410 for an expired resourceVersion) raise
        ``TransportError``.
        """

    @abstractmethod
    async def create(self, rid: ResourceID, namespace: str, body: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    async def patch(
        self,
        rid: ResourceID,
        namespace: str,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        """Apply a strategic-merge patch."""

    @abstractmethod
    async def delete(
        self,
        rid: ResourceID,
        namespace: str,
        name: str,
        propagation: str | None = None,
        grace_period_seconds: int | None = None,
    ) -> dict[str, Any]: ...

    @abstractmethod
    def stream_logs(
        self,
        namespace: str,
        pod: str,
        container: str,
        options: LogOptions,
    ) -> AsyncIterator[str]:
        """Yield log lines of one container, following until the stream ends."""

    @abstractmethod
    async def can_i(self, namespace: str, group: str, resource: str, verb: str) -> bool:
        """Ask the access-review API whether the current identity may ``verb``."""

    async def close(self) -> None:
        """Release transport resources."""
        return None
