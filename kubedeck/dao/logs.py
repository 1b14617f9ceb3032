"""Log sink and multi-pod log tail aggregation.

LogSink   -- Bounded producer/consumer queue of LogItem / LogError events.
             ``put`` blocks while the queue is full; ``close`` is visible to
             both producers and consumers.
LogTailer -- Resolves the pods behind a selector from the pod cache and runs
             one stream per pod container into a shared sink. A failing
             stream reports a LogError and leaves its siblings running; only
             cancellation (of the tail call, or by the consumer closing the
             sink) tears every stream down.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import structlog
from pydantic import ValidationError

from kubedeck.errors import DecodeError, NoSelectorError, NotFoundError, SinkClosedError
from kubedeck.models import kinds
from kubedeck.models.config import TailConfig
from kubedeck.models.logs import LogError, LogEvent, LogItem, LogOptions
from kubedeck.models.resources import CachedObject
from kubedeck.models.rid import PODS, split_fqn
from kubedeck.models.selector import Selector
from kubedeck.observability.metrics import log_stream_errors_total
from kubedeck.watch.factory import Factory

_log = structlog.get_logger(component="dao.logs")


class LogSink:
    """Caller-owned output of one tail request."""

    def __init__(self, maxsize: int = 1000) -> None:
        self._queue: asyncio.Queue[LogEvent] = asyncio.Queue(maxsize=maxsize)
        self._closed = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def put(self, event: LogEvent) -> None:
        """Enqueue ``event``, waiting while the sink is full."""
        if self._closed.is_set():
            raise SinkClosedError("log sink is closed")
        await self._queue.put(event)

    def close(self) -> None:
        """Stop accepting events. Consumers still drain what is queued."""
        self._closed.set()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def get(self) -> LogEvent | None:
        """Next event, or None once the sink is closed and drained."""
        while True:
            if not self._queue.empty():
                return self._queue.get_nowait()
            if self._closed.is_set():
                return None
            getter = asyncio.ensure_future(self._queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                done, _ = await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
            if getter in done:
                return getter.result()

    def __aiter__(self) -> LogSink:
        return self

    async def __anext__(self) -> LogEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class LogTailer:
    """Fans log streams of many pods into one sink."""

    def __init__(self, factory: Factory, config: TailConfig | None = None) -> None:
        self._factory = factory
        self._config = config or TailConfig()

    async def tail(
        self,
        sink: LogSink,
        namespace: str,
        selector: Selector,
        options: LogOptions,
    ) -> None:
        """Tail every pod in ``namespace`` matching ``selector``.

        The pod set is a snapshot taken when the call starts. Returns when
        every stream has ended; the sink is closed on return, including when
        the call raises before any stream starts.
        """
        try:
            if selector.is_empty():
                raise NoSelectorError(PODS.gvr, options.path)

            await self._factory.wait_synced(PODS, namespace)
            pods = sorted(self._factory.list(PODS, namespace, selector), key=lambda p: p.fqn)
            if not pods:
                raise NotFoundError(PODS.gvr, f"{options.path} ({selector})")

            options = replace(options, multi_pods=len(pods) > 1)
            await self._run(sink, pods, options)
        finally:
            sink.close()

    async def tail_pod(self, sink: LogSink, path: str, options: LogOptions) -> None:
        """Tail the containers of a single pod."""
        try:
            ns, _ = split_fqn(path)
            await self._factory.wait_synced(PODS, ns)
            pod = self._factory.get(PODS, path)
            if pod is None:
                raise NotFoundError(PODS.gvr, path)
            await self._run(sink, [pod], replace(options, path=path))
        finally:
            sink.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _containers(self, pod: CachedObject, options: LogOptions) -> list[str]:
        if options.container:
            return [options.container]
        try:
            spec = kinds.Pod.model_validate(pod.to_dict()).spec
        except ValidationError as exc:
            raise DecodeError(f"expecting Pod resource at {pod.fqn!r}: {exc}") from exc
        return [c.name for c in spec.containers]

    async def _targets(
        self, sink: LogSink, pods: list[CachedObject], options: LogOptions
    ) -> list[tuple[CachedObject, str]]:
        """Pod containers to stream. An undecodable pod is reported on the sink and skipped."""
        targets: list[tuple[CachedObject, str]] = []
        for pod in pods:
            try:
                targets.extend((pod, container) for container in self._containers(pod, options))
            except DecodeError as exc:
                log_stream_errors_total.inc()
                _log.warning("log_stream_error", pod=pod.fqn, container="", error=str(exc))
                await sink.put(LogError(pod=pod.name, container="", error=exc))
        return targets

    async def _run(self, sink: LogSink, pods: list[CachedObject], options: LogOptions) -> None:
        if options.tail_lines is None and self._config.tail_lines:
            options = replace(options, tail_lines=self._config.tail_lines)

        try:
            targets = await self._targets(sink, pods, options)
        except SinkClosedError:
            return
        tasks = [
            asyncio.create_task(
                self._stream(sink, pod, container, options),
                name=f"tail:{pod.fqn}:{container}",
            )
            for pod, container in targets
        ]
        closed = asyncio.create_task(sink.wait_closed())
        _log.debug("log_tail_started", path=options.path, pods=len(pods), streams=len(tasks))
        try:
            pending: set[asyncio.Task[None]] = set(tasks)
            while pending:
                done, _ = await asyncio.wait(pending | {closed}, return_when=asyncio.FIRST_COMPLETED)
                if closed in done:
                    _log.debug("log_sink_closed_by_consumer", path=options.path)
                    break
                pending -= done
        finally:
            for task in tasks:
                task.cancel()
            closed.cancel()
            await asyncio.gather(*tasks, closed, return_exceptions=True)
            sink.close()
            _log.debug("log_tail_stopped", path=options.path)

    async def _stream(self, sink: LogSink, pod: CachedObject, container: str, options: LogOptions) -> None:
        client = self._factory.client
        try:
            async for line in client.stream_logs(pod.namespace, pod.name, container, options):
                await sink.put(LogItem(pod=pod.name, container=container, line=line, multi_pods=options.multi_pods))
        except SinkClosedError:
            return
        except Exception as exc:  # noqa: BLE001
            log_stream_errors_total.inc()
            _log.warning("log_stream_error", pod=pod.fqn, container=container, error=str(exc))
            try:
                await sink.put(LogError(pod=pod.name, container=container, error=exc))
            except SinkClosedError:
                _log.debug("log_error_dropped_sink_closed", pod=pod.fqn, container=container)
