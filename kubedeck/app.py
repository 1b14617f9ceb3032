"""Application bootstrap for kubedeck.

Wires the core components in dependency order for the UI layer.
Startup order: config → logging → cluster client → factory → gate / tailer
              → registry

Shutdown stops components in reverse startup order. Each component's stop
error is caught and logged independently so that one failing teardown does
not keep the rest from shutting down.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from kubedeck.client.base import ClusterClient
from kubedeck.config import load_config
from kubedeck.dao.accessor import Accessor
from kubedeck.dao.auth import AuthorizationGate
from kubedeck.dao.logs import LogSink, LogTailer
from kubedeck.dao.registry import Registry
from kubedeck.models.config import KubedeckConfig
from kubedeck.models.rid import ResourceID
from kubedeck.observability.logging import get_logger, setup_logging
from kubedeck.watch.factory import Factory

if TYPE_CHECKING:
    import structlog

_SHUTDOWN_GRACE_SECONDS = 15


class _ComponentError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubedeckApp:
    """Application root. Owns every core component and their lifecycle.

    ``stop()`` is safe on an app that was never started or already stopped.
    A pre-built ``client`` may be injected; otherwise a kubernetes-asyncio
    client is configured from the environment.
    """

    def __init__(self, config: KubedeckConfig | None = None, client: ClusterClient | None = None) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._factory: Factory | None = None
        self._gate: AuthorizationGate | None = None
        self._tailer: LogTailer | None = None
        self._registry: Registry | None = None
        self._running = False
        self._log: structlog.stdlib.BoundLogger | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def factory(self) -> Factory:
        if self._factory is None:
            raise RuntimeError("kubedeck is not started")
        return self._factory

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _ComponentError if a mandatory component cannot start.
        """
        if self._running:
            return

        # --- 1. Configuration -------------------------------------------
        if self.config is None:
            self.config = load_config()

        # --- 2. Logging -------------------------------------------------
        setup_logging(self.config.log.level, self.config.log.format)
        self._log = get_logger("app")
        self._log.info("kubedeck starting", version=_kubedeck_version())

        # --- 3. Cluster client ------------------------------------------
        await self._start_client()

        # --- 4. Factory, gate, tailer, registry --------------------------
        assert self._client is not None
        self._factory = Factory(self._client, self.config.watch)
        self._gate = AuthorizationGate(self._client)
        self._tailer = LogTailer(self._factory, self.config.tail)
        self._registry = Registry(self._factory, self._gate, self._tailer)

        self._running = True
        self._log.info("kubedeck started")

    async def _start_client(self) -> None:
        assert self._log is not None
        assert self.config is not None
        if self._client is not None:
            self._log.debug("using injected cluster client", client=type(self._client).__name__)
            return
        self._log.debug("starting k8s client")
        try:
            # Imported lazily so an injected client never needs kubeconfig.
            from kubedeck.client.kube import KubeClusterClient

            self._client = await KubeClusterClient.connect(self.config.kube)
        except Exception as exc:
            raise _ComponentError("k8s_client", exc) from exc

    # ------------------------------------------------------------------
    # Caller-facing surface
    # ------------------------------------------------------------------

    def accessor(self, rid: ResourceID) -> Accessor:
        """Return the accessor bound to ``rid``'s kind."""
        if self._registry is None:
            raise RuntimeError("kubedeck is not started")
        return self._registry.get_accessor(rid)

    def new_log_sink(self) -> LogSink:
        size = self.config.tail.sink_size if self.config else 1000
        return LogSink(maxsize=size)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Stop components in reverse startup order."""
        if not self._running and self._log is None:
            return

        log = self._log or get_logger("app")
        log.info("kubedeck shutting down")
        self._running = False

        self._registry = None
        self._tailer = None
        self._gate = None
        if self._factory is not None:
            await self._stop_component("factory", self._factory.stop())
            self._factory = None
        if self._client is not None and self._owns_client:
            await self._stop_component("k8s_client", self._client.close())
            self._client = None

        log.info("kubedeck stopped")
        self._log = None

    async def _stop_component(self, name: str, stopping: object) -> None:
        log = self._log or get_logger("app")
        try:
            if asyncio.iscoroutine(stopping):
                await asyncio.wait_for(stopping, timeout=_SHUTDOWN_GRACE_SECONDS)
        except TimeoutError:
            log.warning("component stop timed out", component=name, timeout=_SHUTDOWN_GRACE_SECONDS)
        except Exception as exc:
            log.error("component stop raised an error", component=name, error=str(exc))


def _kubedeck_version() -> str:
    from kubedeck import __version__

    return __version__
