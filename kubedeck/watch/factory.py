"""Watch/cache factory.

Owns one informer per requested ``(resource, namespace)`` scope, serves
synchronous reads from the informer caches and forwards mutating verbs
straight to the cluster API. One factory lives for the whole process and is
injected into every accessor; ``stop()`` is called once at shutdown.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import Any

import structlog

from kubedeck.client.base import ClusterClient
from kubedeck.errors import TransportError
from kubedeck.models.config import WatchConfig
from kubedeck.models.resources import CachedObject, CacheState
from kubedeck.models.rid import ResourceID, split_fqn
from kubedeck.models.selector import Selector
from kubedeck.observability.metrics import mutations_total
from kubedeck.watch.informer import Informer, scope_key

_log = structlog.get_logger(component="watch.factory")


class Verb(StrEnum):
    """Mutating verbs accepted by ``Factory.forward``."""

    CREATE = "create"
    PATCH = "patch"
    DELETE = "delete"


class Factory:
    """Per-process registry of informers plus the uncached mutation path."""

    def __init__(self, client: ClusterClient, config: WatchConfig | None = None) -> None:
        self._client = client
        self._config = config or WatchConfig()
        self._informers: dict[str, Informer] = {}
        self._stopped = False

    @property
    def client(self) -> ClusterClient:
        return self._client

    @property
    def config(self) -> WatchConfig:
        return self._config

    def active_scopes(self) -> list[str]:
        return [key for key, inf in self._informers.items() if inf.running]

    # ------------------------------------------------------------------
    # Informer management
    # ------------------------------------------------------------------

    def _scope_namespace(self, rid: ResourceID, namespace: str) -> str:
        if not self._client.is_namespaced(rid):
            return ""
        return namespace

    def _lookup(self, rid: ResourceID, namespace: str) -> Informer | None:
        """Find the informer serving a scope: exact, else the all-namespaces one."""
        namespace = self._scope_namespace(rid, namespace)
        informer = self._informers.get(scope_key(rid.kind_id, namespace))
        if informer is None and namespace:
            informer = self._informers.get(scope_key(rid.kind_id, ""))
        return informer

    def ensure_watch(self, rid: ResourceID, namespace: str = "") -> Informer:
        """Start watching a scope if nothing serves it yet. Idempotent.

        Must be called from within a running event loop.
        """
        if self._stopped:
            raise RuntimeError("factory is stopped")
        namespace = self._scope_namespace(rid, namespace)
        informer = self._lookup(rid, namespace)
        if informer is None:
            informer = Informer(self._client, rid, namespace, self._config)
            self._informers[informer.key] = informer
            _log.info("watch_started", scope=informer.key)
        informer.start()
        return informer

    def _ensure_lazily(self, rid: ResourceID, namespace: str) -> None:
        """Start a watch on first read, when called from inside the event loop."""
        if self._stopped:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.ensure_watch(rid, namespace)

    async def wait_synced(self, rid: ResourceID, namespace: str = "", timeout: float | None = None) -> bool:
        """Ensure the scope is watched and wait for its first list."""
        informer = self.ensure_watch(rid, namespace)
        if timeout is None:
            timeout = self._config.sync_timeout
        return await informer.wait_synced(timeout)

    def state(self, rid: ResourceID, namespace: str = "") -> CacheState:
        informer = self._lookup(rid, namespace)
        if informer is None:
            return CacheState.UNWATCHED
        return informer.state

    def is_stale(self, rid: ResourceID, namespace: str = "") -> bool:
        return self.state(rid, namespace) == CacheState.STALE

    def revision(self, rid: ResourceID, namespace: str = "") -> int:
        informer = self._lookup(rid, namespace)
        return 0 if informer is None else informer.revision

    # ------------------------------------------------------------------
    # Cache reads (never suspend)
    # ------------------------------------------------------------------

    def get(self, rid: ResourceID, path: str) -> CachedObject | None:
        """Return the cached object at ``path`` or None when absent."""
        ns, _ = split_fqn(path)
        informer = self._lookup(rid, ns)
        if informer is None:
            self._ensure_lazily(rid, ns)
            return None
        return informer.get(path)

    def list(
        self,
        rid: ResourceID,
        namespace: str = "",
        selector: Selector | None = None,
    ) -> list[CachedObject]:
        """Cached objects of a scope, in cache order.

        ``selector=None`` means no label filtering; an empty ``Selector``
        matches nothing.
        """
        namespace = self._scope_namespace(rid, namespace)
        informer = self._lookup(rid, namespace)
        if informer is None:
            self._ensure_lazily(rid, namespace)
            return []
        out: list[CachedObject] = []
        for obj in informer.snapshot().values():
            if namespace and obj.namespace != namespace:
                continue
            if selector is not None and not selector.matches(obj.labels):
                continue
            out.append(obj)
        return out

    # ------------------------------------------------------------------
    # Mutations (uncached, never retried here)
    # ------------------------------------------------------------------

    async def forward(
        self,
        verb: Verb | str,
        rid: ResourceID,
        namespace: str,
        name: str = "",
        body: dict[str, Any] | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Issue one mutating call against the cluster API."""
        verb = Verb(verb)
        namespace = self._scope_namespace(rid, namespace)
        try:
            if verb == Verb.CREATE:
                result = await self._client.create(rid, namespace, body or {})
            elif verb == Verb.PATCH:
                result = await self._client.patch(rid, namespace, name, body or {})
            else:
                result = await self._client.delete(
                    rid,
                    namespace,
                    name,
                    propagation=options.get("propagation"),
                    grace_period_seconds=options.get("grace_period_seconds"),
                )
        except TransportError as exc:
            mutations_total.labels(verb=verb.value, resource=rid.gvr, outcome="error").inc()
            _log.warning(
                "mutation_failed",
                verb=verb.value,
                resource=rid.gvr,
                namespace=namespace,
                name=name,
                error=str(exc),
                status=exc.status,
            )
            raise
        mutations_total.labels(verb=verb.value, resource=rid.gvr, outcome="ok").inc()
        _log.info("mutation_applied", verb=verb.value, resource=rid.gvr, namespace=namespace, name=name)
        return result

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Cancel every informer. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        informers = list(self._informers.values())
        self._informers.clear()
        for informer in informers:
            await informer.stop()
        _log.info("factory_stopped", informers=len(informers))
