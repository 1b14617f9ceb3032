"""Integration tests for the informer state machine.

Exercises UNWATCHED -> WATCHING <-> STALE, resubscribe with bounded backoff,
HTTP 410 relists and serving last-known data while stale.
"""

from __future__ import annotations

import pytest

from kubedeck.dao.auth import AuthorizationGate
from kubedeck.dao.pod import Pod
from kubedeck.errors import StaleCacheError, TransportError
from kubedeck.models.resources import CacheState
from kubedeck.models.rid import NODES, PODS
from kubedeck.watch.factory import Factory

from .conftest import FakeClusterClient, eventually, fast_watch_config, make_pod

# ---------------------------------------------------------------------------
# Initial state
# ---------------------------------------------------------------------------


class TestInitialState:
    async def test_unrequested_scope_is_unwatched(self, factory: Factory) -> None:
        assert factory.state(PODS, "default") == CacheState.UNWATCHED
        assert factory.revision(PODS, "default") == 0

    async def test_ensure_watch_moves_to_watching(self, factory: Factory, fake_client: FakeClusterClient) -> None:
        factory.ensure_watch(PODS, "default")
        assert factory.state(PODS, "default") == CacheState.WATCHING
        assert await factory.wait_synced(PODS, "default")
        assert fake_client.lists_for(PODS) == 1

    async def test_cluster_scoped_resource_ignores_namespace(
        self, factory: Factory, fake_client: FakeClusterClient
    ) -> None:
        fake_client.add(NODES, {"kind": "Node", "metadata": {"name": "node-1", "resourceVersion": "3"}})
        await factory.wait_synced(NODES, "default")
        assert factory.active_scopes() == ["v1/nodes"]
        assert [o.name for o in factory.list(NODES, "default")] == ["node-1"]
        assert factory.get(NODES, "node-1") is not None


# ---------------------------------------------------------------------------
# Resubscribe and staleness
# ---------------------------------------------------------------------------


class TestStaleness:
    async def test_failures_below_threshold_stay_watching(
        self, factory: Factory, fake_client: FakeClusterClient
    ) -> None:
        fake_client.list_failures[PODS.gvr] = 2
        assert await factory.wait_synced(PODS)
        assert factory.state(PODS) == CacheState.WATCHING
        assert fake_client.lists_for(PODS) == 3

    async def test_threshold_failures_mark_stale_and_keep_data(self, fake_client: FakeClusterClient) -> None:
        config = fast_watch_config(stale_threshold=3)
        config.backoff_base = 0.001
        config.backoff_max = 0.002
        factory = Factory(fake_client, config)
        try:
            fake_client.add(PODS, make_pod("web-1", labels={"app": "web"}))
            assert await factory.wait_synced(PODS)

            fake_client.list_failures[PODS.gvr] = 1_000_000
            fake_client.fail_stream(PODS, TransportError("connection reset"))
            await eventually(lambda: factory.is_stale(PODS))

            # Reads still serve the last-known data.
            assert factory.get(PODS, "default/web-1") is not None
            assert len(factory.list(PODS, "default")) == 1

            pods = Pod(factory, AuthorizationGate(fake_client), PODS)
            assert pods.is_stale("default")
            with pytest.raises(StaleCacheError):
                pods.ensure_fresh("default")
        finally:
            await factory.stop()

    async def test_successful_resubscribe_clears_stale(self, fake_client: FakeClusterClient) -> None:
        config = fast_watch_config(stale_threshold=2)
        config.backoff_base = 0.001
        config.backoff_max = 0.002
        factory = Factory(fake_client, config)
        try:
            fake_client.list_failures[PODS.gvr] = 1_000_000
            factory.ensure_watch(PODS)
            await eventually(lambda: factory.is_stale(PODS))

            fake_client.list_failures[PODS.gvr] = 0
            await eventually(lambda: factory.state(PODS) == CacheState.WATCHING)
            assert await factory.wait_synced(PODS)
        finally:
            await factory.stop()

    async def test_watch_failing_while_list_succeeds_goes_stale(self, fake_client: FakeClusterClient) -> None:
        factory = Factory(fake_client, fast_watch_config(stale_threshold=3, established_after=60))
        try:
            for _ in range(6):
                fake_client.fail_stream(PODS, TransportError("watch is forbidden", status=403))
            informer = factory.ensure_watch(PODS)
            await eventually(lambda: fake_client.watches_for(PODS) == 7)

            assert factory.is_stale(PODS)
            assert informer.consecutive_failures == 6
            assert informer.backoff_delay(informer.consecutive_failures) == 0.0
            # Every failed watch relists, but a good list alone is not a recovery.
            assert fake_client.lists_for(PODS) == 7
            assert await factory.wait_synced(PODS)
        finally:
            await factory.stop()

    async def test_watch_failures_grow_the_backoff(self, fake_client: FakeClusterClient) -> None:
        config = fast_watch_config(stale_threshold=10, established_after=60)
        config.backoff_base = 0.001
        config.backoff_max = 0.004
        factory = Factory(fake_client, config)
        try:
            for _ in range(4):
                fake_client.fail_stream(PODS, TransportError("watch is forbidden", status=403))
            informer = factory.ensure_watch(PODS)
            await eventually(lambda: fake_client.watches_for(PODS) == 5)

            assert informer.consecutive_failures == 4
            assert informer.backoff_delay(informer.consecutive_failures) == 0.004
            assert factory.state(PODS) == CacheState.WATCHING
        finally:
            await factory.stop()

    async def test_stream_closed_before_established_counts_as_failure(self, fake_client: FakeClusterClient) -> None:
        factory = Factory(fake_client, fast_watch_config(stale_threshold=2, established_after=60))
        try:
            fake_client.end_stream(PODS)
            fake_client.end_stream(PODS)
            informer = factory.ensure_watch(PODS)
            await eventually(lambda: fake_client.watches_for(PODS) == 3)

            assert factory.is_stale(PODS)
            assert informer.consecutive_failures == 2
            # Normal stream ends resume from the listed resourceVersion.
            assert fake_client.lists_for(PODS) == 1
            assert [rv for _, _, rv in fake_client.watch_calls] == ["100", "100", "100"]

            fake_client.push(PODS, "ADDED", make_pod("a", rv="120"))
            await eventually(lambda: factory.state(PODS) == CacheState.WATCHING)
            assert informer.consecutive_failures == 0
        finally:
            await factory.stop()

    async def test_gone_relists_without_counting_a_failure(
        self, factory: Factory, fake_client: FakeClusterClient
    ) -> None:
        assert await factory.wait_synced(PODS)
        fake_client.add(PODS, make_pod("late", rv="50"))
        fake_client.fail_stream(PODS, TransportError("too old resource version", status=410))

        await eventually(lambda: factory.get(PODS, "default/late") is not None)
        assert fake_client.lists_for(PODS) == 2
        assert factory.state(PODS) == CacheState.WATCHING

    async def test_stream_end_resumes_from_last_resource_version(
        self, factory: Factory, fake_client: FakeClusterClient
    ) -> None:
        assert await factory.wait_synced(PODS)
        fake_client.push(PODS, "ADDED", make_pod("a", rv="120"))
        await eventually(lambda: factory.get(PODS, "default/a") is not None)

        fake_client.end_stream(PODS)
        await eventually(lambda: fake_client.watches_for(PODS) == 2)
        assert fake_client.watch_calls[-1] == ("v1/pods", "", "120")
        assert fake_client.lists_for(PODS) == 1

    async def test_stop_returns_scopes_to_unwatched(self, factory: Factory) -> None:
        await factory.wait_synced(PODS, "default")
        await factory.stop()
        assert factory.active_scopes() == []
        assert factory.state(PODS, "default") == CacheState.UNWATCHED
