"""Pod accessor."""

from __future__ import annotations

from dataclasses import replace

from kubedeck.dao.accessor import TypedAccessor
from kubedeck.dao.capabilities import Capability
from kubedeck.dao.logs import LogSink
from kubedeck.models import kinds
from kubedeck.models.logs import LogOptions


class Pod(TypedAccessor[kinds.Pod]):
    """A pod: deletable with a cascade policy and tailable on its own."""

    model = kinds.Pod
    capabilities = frozenset({Capability.CASCADE_DELETE, Capability.TAIL_LOGS})

    async def tail_logs(self, sink: LogSink, options: LogOptions) -> None:
        """Stream the pod's containers into ``sink`` until they end or the call is cancelled."""
        if self._tailer is None:
            sink.close()
            raise RuntimeError("pod accessor was built without a log tailer")
        await self._tailer.tail_pod(sink, options.path, replace(options, multi_pods=False))

    def containers(self, path: str) -> list[str]:
        return [c.name for c in self.get_instance(path).spec.containers]
