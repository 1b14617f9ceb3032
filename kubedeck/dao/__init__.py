"""Resource accessors and their capabilities.

Submodules:
    accessor     -- Accessor baseline (get/list/delete) and TypedAccessor decoding.
    capabilities -- Capability set, capability protocols and checked casts.
    auth         -- AuthorizationGate: access review before every mutation.
    patches      -- Rollout-restart patch construction per kind.
    logs         -- LogSink and the multi-pod LogTailer.
    pod          -- Pod accessor.
    workloads    -- Deployment, DaemonSet, StatefulSet, ReplicaSet, Job.
    generic      -- Baseline accessor for every other kind.
    registry     -- Registry.get_accessor().
"""

from kubedeck.dao.accessor import Accessor, TypedAccessor
from kubedeck.dao.auth import AuthorizationGate
from kubedeck.dao.capabilities import (
    Capability,
    DeleteOptions,
    Propagation,
    as_deletable,
    as_loggable,
    as_pod_resolving,
    as_restartable,
)
from kubedeck.dao.logs import LogSink, LogTailer
from kubedeck.dao.registry import Registry

__all__ = [
    "Accessor",
    "AuthorizationGate",
    "Capability",
    "DeleteOptions",
    "LogSink",
    "LogTailer",
    "Propagation",
    "Registry",
    "TypedAccessor",
    "as_deletable",
    "as_loggable",
    "as_pod_resolving",
    "as_restartable",
]
