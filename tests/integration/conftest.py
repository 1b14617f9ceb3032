"""Shared fixtures for kubedeck integration tests.

Provides an in-memory ClusterClient whose list calls, watch streams, log
streams and access reviews are scripted by the test, plus a fully wired
factory / gate / tailer / registry on top of it. No real cluster is touched.
"""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest

from kubedeck.client.base import ClusterClient, ListResult, WatchEvent
from kubedeck.dao.auth import AuthorizationGate
from kubedeck.dao.logs import LogTailer
from kubedeck.dao.registry import Registry
from kubedeck.errors import TransportError
from kubedeck.models.config import TailConfig, WatchConfig
from kubedeck.models.logs import LogOptions
from kubedeck.models.rid import ResourceID
from kubedeck.watch.factory import Factory
from kubedeck.watch.informer import scope_key

FIXED_NOW = datetime(2026, 2, 18, 12, 0, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Object factory helpers
# ---------------------------------------------------------------------------


def make_pod(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    containers: list[str] | None = None,
    rv: str = "1",
) -> dict[str, Any]:
    """Create a raw Pod dict."""
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "resourceVersion": rv,
            "labels": labels or {},
        },
        "spec": {"containers": [{"name": c, "image": "nginx:1.25"} for c in (containers or ["app"])]},
        "status": {"phase": "Running"},
    }


def make_workload(
    kind: str,
    name: str,
    namespace: str = "default",
    match_labels: dict[str, str] | None = None,
    rv: str = "1",
    **spec: Any,
) -> dict[str, Any]:
    """Create a raw pod-owning workload dict (Deployment, DaemonSet...)."""
    selector = {"matchLabels": match_labels} if match_labels is not None else None
    body: dict[str, Any] = {
        "template": {
            "metadata": {"labels": dict(match_labels or {})},
            "spec": {"containers": [{"name": "app", "image": "nginx:1.25"}]},
        },
    }
    if selector is not None:
        body["selector"] = selector
    body.update(spec)
    return {
        "apiVersion": "batch/v1" if kind == "Job" else "apps/v1",
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace, "resourceVersion": rv, "labels": {}},
        "spec": body,
        "status": {},
    }


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds, failing the test on timeout."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeClusterClient(ClusterClient):
    """Scripted in-memory cluster."""

    def __init__(self) -> None:
        self.objects: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.resource_version = "100"
        self.cluster_scoped = {"v1/nodes", "v1/namespaces", "v1/persistentvolumes"}

        self.list_calls: list[tuple[str, str]] = []
        self.list_failures: dict[str, int] = {}
        self.list_gates: dict[str, asyncio.Event] = {}
        self.watch_calls: list[tuple[str, str, str]] = []
        self._watch_queues: dict[str, asyncio.Queue[Any]] = {}

        self.create_calls: list[tuple[str, str, dict[str, Any]]] = []
        self.patch_calls: list[tuple[str, str, str, dict[str, Any]]] = []
        self.delete_calls: list[tuple[str, str, str, str | None, int | None]] = []
        self.mutation_error: TransportError | None = None

        self.denied_verbs: set[str] = set()
        self.can_i_calls: list[tuple[str, str, str, str]] = []

        self.log_scripts: dict[str, list[str | Exception]] = {}
        self.follow_logs = True
        self.log_calls: list[tuple[str, str, str, LogOptions]] = []
        self.log_closed: list[str] = []

        self.closed = False

    # -- scripting helpers ---------------------------------------------------

    def add(self, rid: ResourceID, obj: dict[str, Any]) -> None:
        self.objects[rid.gvr].append(obj)

    def watch_queue(self, rid: ResourceID, namespace: str = "") -> asyncio.Queue[Any]:
        key = scope_key(rid, namespace)
        if key not in self._watch_queues:
            self._watch_queues[key] = asyncio.Queue()
        return self._watch_queues[key]

    def push(self, rid: ResourceID, event_type: str, obj: dict[str, Any], namespace: str = "") -> None:
        """Deliver a watch event on the scope's stream."""
        self.watch_queue(rid, namespace).put_nowait(WatchEvent(type=event_type, object=copy.deepcopy(obj)))

    def end_stream(self, rid: ResourceID, namespace: str = "") -> None:
        """Close the scope's current watch stream, as a server-side timeout would."""
        self.watch_queue(rid, namespace).put_nowait(None)

    def fail_stream(self, rid: ResourceID, exc: Exception, namespace: str = "") -> None:
        self.watch_queue(rid, namespace).put_nowait(exc)

    def lists_for(self, rid: ResourceID) -> int:
        return sum(1 for gvr, _ in self.list_calls if gvr == rid.gvr)

    def watches_for(self, rid: ResourceID) -> int:
        return sum(1 for gvr, _, _ in self.watch_calls if gvr == rid.gvr)

    # -- ClusterClient -------------------------------------------------------

    def is_namespaced(self, rid: ResourceID) -> bool:
        return rid.gvr not in self.cluster_scoped

    async def list(self, rid: ResourceID, namespace: str = "") -> ListResult:
        self.list_calls.append((rid.gvr, namespace))
        remaining = self.list_failures.get(rid.gvr, 0)
        if remaining:
            self.list_failures[rid.gvr] = remaining - 1
            raise TransportError(f"list {rid.gvr} failed: connection refused")
        gate = self.list_gates.get(rid.gvr)
        if gate is not None:
            await gate.wait()
        items = [
            copy.deepcopy(o)
            for o in self.objects[rid.gvr]
            if not namespace or o["metadata"].get("namespace") == namespace
        ]
        return ListResult(items=items, resource_version=self.resource_version)

    async def watch(
        self,
        rid: ResourceID,
        namespace: str = "",
        resource_version: str = "",
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[WatchEvent]:
        self.watch_calls.append((rid.gvr, namespace, resource_version))
        queue = self.watch_queue(rid, namespace)
        while True:
            item = await queue.get()
            if item is None:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    async def create(self, rid: ResourceID, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        self.create_calls.append((rid.gvr, namespace, body))
        if self.mutation_error is not None:
            raise self.mutation_error
        return body

    async def patch(self, rid: ResourceID, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        self.patch_calls.append((rid.gvr, namespace, name, body))
        if self.mutation_error is not None:
            raise self.mutation_error
        return body

    async def delete(
        self,
        rid: ResourceID,
        namespace: str,
        name: str,
        propagation: str | None = None,
        grace_period_seconds: int | None = None,
    ) -> dict[str, Any]:
        self.delete_calls.append((rid.gvr, namespace, name, propagation, grace_period_seconds))
        if self.mutation_error is not None:
            raise self.mutation_error
        return {"status": "Success"}

    async def stream_logs(
        self,
        namespace: str,
        pod: str,
        container: str,
        options: LogOptions,
    ) -> AsyncIterator[str]:
        self.log_calls.append((namespace, pod, container, options))
        try:
            for item in self.log_scripts.get(pod, []):
                await asyncio.sleep(0)
                if isinstance(item, Exception):
                    raise item
                yield item
            if self.follow_logs:
                await asyncio.Event().wait()
        finally:
            self.log_closed.append(pod)

    async def can_i(self, namespace: str, group: str, resource: str, verb: str) -> bool:
        self.can_i_calls.append((namespace, group, resource, verb))
        return verb not in self.denied_verbs

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Wired environment
# ---------------------------------------------------------------------------


@dataclass
class Env:
    client: FakeClusterClient
    factory: Factory
    gate: AuthorizationGate
    tailer: LogTailer
    registry: Registry


def fast_watch_config(stale_threshold: int = 3, established_after: float = 0.01) -> WatchConfig:
    return WatchConfig(
        backoff_base=0.0,
        backoff_max=0.0,
        stale_threshold=stale_threshold,
        watch_timeout=60,
        sync_timeout=1.0,
        established_after=established_after,
    )


@pytest.fixture
def fake_client() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
async def factory(fake_client: FakeClusterClient) -> AsyncIterator[Factory]:
    f = Factory(fake_client, fast_watch_config())
    yield f
    await f.stop()


@pytest.fixture
async def env(fake_client: FakeClusterClient, factory: Factory) -> Env:
    gate = AuthorizationGate(fake_client)
    tailer = LogTailer(factory, TailConfig(sink_size=100, tail_lines=0))
    registry = Registry(factory, gate, tailer, clock=lambda: FIXED_NOW)
    return Env(client=fake_client, factory=factory, gate=gate, tailer=tailer, registry=registry)
