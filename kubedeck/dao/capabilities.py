"""Optional capability contracts and capability-checked casts.

Each accessor class declares the capabilities it supports as a static
frozenset. Callers never probe with ``hasattr``; they cast:

    restartable = as_restartable(registry.get_accessor(DEPLOYMENTS))
    if restartable is not None:
        await restartable.restart("default/web")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from kubedeck.dao.accessor import Accessor
    from kubedeck.dao.logs import LogSink
    from kubedeck.models.logs import LogOptions


class Capability(StrEnum):
    CASCADE_DELETE = "cascade_delete"
    RESTART = "restart"
    TAIL_LOGS = "tail_logs"
    RESOLVE_POD = "resolve_pod"


class Propagation(StrEnum):
    """Cascade propagation policy for deletions."""

    ORPHAN = "Orphan"
    BACKGROUND = "Background"
    FOREGROUND = "Foreground"


@dataclass(frozen=True)
class DeleteOptions:
    propagation: Propagation | None = None
    grace_period_seconds: int | None = None


@runtime_checkable
class Deletable(Protocol):
    async def delete(self, path: str, options: DeleteOptions | None = None) -> None: ...


@runtime_checkable
class Restartable(Protocol):
    async def restart(self, path: str) -> None: ...


@runtime_checkable
class Loggable(Protocol):
    async def tail_logs(self, sink: LogSink, options: LogOptions) -> None: ...


@runtime_checkable
class PodResolving(Protocol):
    async def resolve_pod(self, path: str) -> str: ...


def supports(accessor: Accessor, capability: Capability) -> bool:
    return capability in accessor.capabilities


def as_deletable(accessor: Accessor) -> Deletable | None:
    """The accessor, when it supports deletion with a cascade policy."""
    if supports(accessor, Capability.CASCADE_DELETE) and isinstance(accessor, Deletable):
        return accessor
    return None


def as_restartable(accessor: Accessor) -> Restartable | None:
    if supports(accessor, Capability.RESTART) and isinstance(accessor, Restartable):
        return accessor
    return None


def as_loggable(accessor: Accessor) -> Loggable | None:
    if supports(accessor, Capability.TAIL_LOGS) and isinstance(accessor, Loggable):
        return accessor
    return None


def as_pod_resolving(accessor: Accessor) -> PodResolving | None:
    if supports(accessor, Capability.RESOLVE_POD) and isinstance(accessor, PodResolving):
        return accessor
    return None
