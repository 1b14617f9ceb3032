"""Accessors for pod-owning workloads.

Every workload resolves its pods through its label selector. An absent or
empty selector is refused with ``NoSelectorError`` rather than treated as
"all pods": a misconfigured selector must never fan a restart, a log tail
or a pod action out to unrelated pods.
"""

from __future__ import annotations

from typing import ClassVar, TypeVar

import structlog

from kubedeck.dao.accessor import TypedAccessor
from kubedeck.dao.auth import PATCH_VERB
from kubedeck.dao.capabilities import Capability
from kubedeck.dao.logs import LogSink
from kubedeck.dao.patches import (
    RestartPatchFn,
    daemonset_restart_patch,
    deployment_restart_patch,
    statefulset_restart_patch,
)
from kubedeck.errors import NoSelectorError, NotFoundError
from kubedeck.models import kinds
from kubedeck.models.logs import LogOptions
from kubedeck.models.rid import PODS, split_fqn
from kubedeck.models.selector import Selector
from kubedeck.watch.factory import Verb

_log = structlog.get_logger(component="dao.workloads")

W = TypeVar("W", bound=kinds.Workload)

_CONTROLLER_CAPABILITIES = frozenset(
    {Capability.CASCADE_DELETE, Capability.TAIL_LOGS, Capability.RESOLVE_POD}
)


class Workload(TypedAccessor[W]):
    """Log tailing and representative-pod resolution over a selector."""

    capabilities = _CONTROLLER_CAPABILITIES

    def selector(self, path: str) -> tuple[W, Selector]:
        """Decode the object at ``path`` and return it with its pod selector."""
        obj = self.get_instance(path)
        sel = Selector.from_labels(obj.match_labels)
        if sel.is_empty():
            raise NoSelectorError(self.rid.gvr, path)
        return obj, sel

    async def tail_logs(self, sink: LogSink, options: LogOptions) -> None:
        """Tail every pod currently matching the workload's selector. Closes ``sink`` on return."""
        try:
            await self.prime(options.path)
            _, sel = self.selector(options.path)
            if self._tailer is None:
                raise RuntimeError(f"{self.rid.gvr} accessor was built without a log tailer")
            ns, _ = split_fqn(options.path)
            await self._tailer.tail(sink, ns, sel, options)
        finally:
            sink.close()

    async def resolve_pod(self, path: str) -> str:
        """FQN of the pod standing in for the workload: first matching pod by name."""
        await self.prime(path)
        _, sel = self.selector(path)
        ns, _ = split_fqn(path)
        await self._factory.wait_synced(PODS, ns)
        pods = sorted(self._factory.list(PODS, ns, sel), key=lambda p: p.fqn)
        if not pods:
            raise NotFoundError(PODS.gvr, f"{path} ({sel})")
        return pods[0].fqn


class RestartableWorkload(Workload[W]):
    """Workload whose controller can be forced to recreate its pods."""

    capabilities = _CONTROLLER_CAPABILITIES | {Capability.RESTART}
    restart_patch: ClassVar[RestartPatchFn]

    async def restart(self, path: str) -> None:
        """Trigger a rollout restart.

        The authorization check runs before any mutating call; a failed patch
        leaves the cluster untouched.
        """
        await self.prime(path)
        obj, _ = self.selector(path)
        ns, name = split_fqn(path)
        await self._gate.ensure(ns, self.rid, PATCH_VERB)
        patch = type(self).restart_patch(obj, self._clock())
        await self._factory.forward(Verb.PATCH, self.rid, ns, name, body=patch)
        _log.info("rollout_restarted", resource=self.rid.gvr, path=path)


class Deployment(RestartableWorkload[kinds.Deployment]):
    model = kinds.Deployment
    restart_patch = staticmethod(deployment_restart_patch)


class DaemonSet(RestartableWorkload[kinds.DaemonSet]):
    model = kinds.DaemonSet
    restart_patch = staticmethod(daemonset_restart_patch)

    def is_happy(self, path: str) -> bool:
        return self.get_instance(path).is_happy()


class StatefulSet(RestartableWorkload[kinds.StatefulSet]):
    model = kinds.StatefulSet
    restart_patch = staticmethod(statefulset_restart_patch)


class ReplicaSet(Workload[kinds.ReplicaSet]):
    model = kinds.ReplicaSet


class Job(Workload[kinds.Job]):
    model = kinds.Job
