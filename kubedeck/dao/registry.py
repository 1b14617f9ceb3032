"""Accessor registry: one accessor per resource kind, created on first use."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog

from kubedeck.dao.accessor import Accessor, utcnow
from kubedeck.dao.auth import AuthorizationGate
from kubedeck.dao.generic import Generic
from kubedeck.dao.logs import LogTailer
from kubedeck.dao.pod import Pod
from kubedeck.dao.workloads import DaemonSet, Deployment, Job, ReplicaSet, StatefulSet
from kubedeck.models.rid import DAEMONSETS, DEPLOYMENTS, JOBS, PODS, REPLICASETS, STATEFULSETS, ResourceID
from kubedeck.watch.factory import Factory

_log = structlog.get_logger(component="dao.registry")

DEFAULT_KINDS: dict[str, type[Accessor]] = {
    PODS.gvr: Pod,
    DEPLOYMENTS.gvr: Deployment,
    DAEMONSETS.gvr: DaemonSet,
    STATEFULSETS.gvr: StatefulSet,
    REPLICASETS.gvr: ReplicaSet,
    JOBS.gvr: Job,
}


class Registry:
    """Hands out the accessor bound to a resource kind.

    The factory, gate and tailer are shared, process-lifetime services
    injected into every accessor; accessors never own them.
    """

    def __init__(
        self,
        factory: Factory,
        gate: AuthorizationGate,
        tailer: LogTailer,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._factory = factory
        self._gate = gate
        self._tailer = tailer
        self._clock = clock
        self._kinds: dict[str, type[Accessor]] = dict(DEFAULT_KINDS)
        self._accessors: dict[str, Accessor] = {}

    def register(self, rid: ResourceID, accessor_cls: type[Accessor]) -> None:
        """Bind a custom accessor class to a kind. Replaces any cached instance."""
        self._kinds[rid.gvr] = accessor_cls
        self._accessors.pop(rid.gvr, None)

    def get_accessor(self, rid: ResourceID) -> Accessor:
        key = rid.gvr
        accessor = self._accessors.get(key)
        if accessor is None:
            cls = self._kinds.get(key, Generic)
            accessor = cls(self._factory, self._gate, rid, tailer=self._tailer, clock=self._clock)
            self._accessors[key] = accessor
            _log.debug("accessor_created", resource=key, accessor=cls.__name__)
        return accessor
