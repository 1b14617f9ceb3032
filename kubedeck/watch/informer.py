"""Per-scope informer: one list/watch worker feeding one cache partition.

State machine::

    UNWATCHED --start()--> WATCHING <--> STALE

The partition is a plain dict that is never mutated once published; each
applied event builds a new dict and swaps the reference, so synchronous
readers always see either the previous or the next consistent snapshot.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from kubedeck.client.base import ClusterClient, WatchEvent
from kubedeck.errors import TransportError
from kubedeck.models.config import WatchConfig
from kubedeck.models.resources import CachedObject, CacheState, newer_or_equal
from kubedeck.models.rid import ResourceID, fqn
from kubedeck.observability.metrics import cache_stale, watch_events_total, watch_failures_total

_log = structlog.get_logger(component="watch.informer")


def scope_key(rid: ResourceID, namespace: str) -> str:
    """Partition key of one informer: ``gvr`` plus the namespace, if any."""
    if not namespace:
        return rid.gvr
    return f"{rid.gvr}@{namespace}"


class Informer:
    """Keeps the cache of one ``(resource, namespace)`` scope fresh."""

    def __init__(
        self,
        client: ClusterClient,
        rid: ResourceID,
        namespace: str = "",
        config: WatchConfig | None = None,
    ) -> None:
        self.rid = rid.kind_id
        self.namespace = namespace
        self.key = scope_key(self.rid, namespace)
        self._client = client
        self._config = config or WatchConfig()

        self._items: Mapping[str, CachedObject] = {}
        self._revision = 0
        self._resource_version = ""
        self._failures = 0
        self._established = False
        self._state = CacheState.UNWATCHED
        self._synced = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def is_stale(self) -> bool:
        return self._state == CacheState.STALE

    @property
    def revision(self) -> int:
        """Monotonic counter bumped on every applied change."""
        return self._revision

    @property
    def resource_version(self) -> str:
        return self._resource_version

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    @property
    def has_synced(self) -> bool:
        return self._synced.is_set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> Mapping[str, CachedObject]:
        """The current partition. Never mutated after being returned."""
        return self._items

    def get(self, path: str) -> CachedObject | None:
        return self._items.get(path)

    async def wait_synced(self, timeout: float | None = None) -> bool:
        """Wait for the first successful list. Returns False on timeout."""
        if self._synced.is_set():
            return True
        try:
            async with asyncio.timeout(timeout):
                await self._synced.wait()
        except TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Spawn the watch worker on the running loop. Idempotent."""
        if self.running:
            return
        self._state = CacheState.WATCHING
        self._task = asyncio.create_task(self._run(), name=f"informer:{self.key}")

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self._state = CacheState.UNWATCHED
        cache_stale.labels(scope=self.key).set(0)
        _log.debug("informer_stopped", scope=self.key)

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        need_list = True
        while True:
            try:
                if need_list:
                    await self._relist()
                    need_list = False
                if await self._watch():
                    # Server closed the stream (watch timeout); resume from the
                    # last seen resourceVersion.
                    _log.debug("watch_stream_ended", scope=self.key, resource_version=self._resource_version)
                    continue
                await self._on_failure(TransportError("watch stream closed before it was established"))
            except asyncio.CancelledError:
                raise
            except TransportError as exc:
                if exc.is_gone:
                    _log.info("watch_resource_version_expired", scope=self.key)
                    need_list = True
                    continue
                need_list = True
                await self._on_failure(exc)
            except Exception as exc:
                _log.error("informer_unexpected_error", scope=self.key, error=str(exc), exc_info=True)
                need_list = True
                await self._on_failure(exc)

    async def _relist(self) -> None:
        result = await self._client.list(self.rid, self.namespace)
        items: dict[str, CachedObject] = {}
        for raw in result.items:
            obj = CachedObject.from_raw(raw)
            if obj.name:
                items[obj.fqn] = obj
        self._items = items
        self._revision += 1
        self._resource_version = result.resource_version
        self._synced.set()
        _log.debug("informer_listed", scope=self.key, count=len(items), resource_version=result.resource_version)

    async def _watch(self) -> bool:
        """Consume one watch stream until it ends. Returns whether it was established."""
        self._established = False
        timer = asyncio.get_running_loop().call_later(self._config.established_after, self._on_established)
        try:
            stream = self._client.watch(
                self.rid,
                self.namespace,
                resource_version=self._resource_version,
                timeout_seconds=self._config.watch_timeout,
            )
            async for event in stream:
                self._on_established()
                self.apply(event)
        finally:
            timer.cancel()
        return self._established

    def _on_established(self) -> None:
        if self._established:
            return
        self._established = True
        if self._failures or self._state != CacheState.WATCHING:
            _log.info("informer_recovered", scope=self.key, after_failures=self._failures)
        self._failures = 0
        self._state = CacheState.WATCHING
        cache_stale.labels(scope=self.key).set(0)

    async def _on_failure(self, exc: Exception) -> None:
        self._failures += 1
        watch_failures_total.labels(resource=self.rid.gvr).inc()
        if self._failures >= self._config.stale_threshold and self._state != CacheState.STALE:
            self._state = CacheState.STALE
            cache_stale.labels(scope=self.key).set(1)
            _log.warning("cache_stale", scope=self.key, failures=self._failures, error=str(exc))
        else:
            _log.info("watch_resubscribe_failed", scope=self.key, failures=self._failures, error=str(exc))
        await asyncio.sleep(self.backoff_delay(self._failures))

    def backoff_delay(self, failures: int) -> float:
        """Bounded exponential backoff for the ``failures``-th consecutive failure."""
        if failures <= 0:
            return 0.0
        delay = self._config.backoff_base * (2 ** (failures - 1))
        return min(self._config.backoff_max, delay)

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    def apply(self, event: WatchEvent) -> bool:
        """Apply one watch event. Returns False when the event was dropped."""
        rv = event.resource_version
        if rv:
            self._resource_version = rv
        watch_events_total.labels(resource=self.rid.gvr, type=event.type).inc()
        if event.type == "BOOKMARK":
            return False

        metadata: dict[str, Any] = event.object.get("metadata") or {}
        name = str(metadata.get("name") or "")
        if not name:
            return False
        path = fqn(str(metadata.get("namespace") or ""), name)

        current = self._items.get(path)
        if current is not None and not newer_or_equal(rv, current.resource_version):
            _log.debug(
                "watch_event_out_of_order",
                scope=self.key,
                path=path,
                incoming=rv,
                current=current.resource_version,
            )
            return False

        items = dict(self._items)
        if event.type in ("ADDED", "MODIFIED"):
            items[path] = CachedObject.from_raw(event.object)
        elif event.type == "DELETED":
            if items.pop(path, None) is None:
                return False
        else:
            _log.debug("watch_event_ignored", scope=self.key, type=event.type)
            return False

        self._items = items
        self._revision += 1
        return True
