"""Baseline resource accessor.

An accessor binds one resource kind to the shared factory. It is created
once per kind by the registry, holds no state beyond that binding and is
safe to share between callers.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from kubedeck.dao.auth import DELETE_VERB, AuthorizationGate
from kubedeck.dao.capabilities import Capability, DeleteOptions
from kubedeck.errors import DecodeError, NotFoundError, StaleCacheError
from kubedeck.models.resources import CachedObject
from kubedeck.models.rid import ResourceID, split_fqn
from kubedeck.models.selector import Selector
from kubedeck.watch.factory import Factory, Verb

if TYPE_CHECKING:
    from kubedeck.dao.logs import LogTailer

_log = structlog.get_logger(component="dao.accessor")

T = TypeVar("T", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class Accessor:
    """Get / list / delete for one resource kind."""

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def __init__(
        self,
        factory: Factory,
        gate: AuthorizationGate,
        rid: ResourceID,
        tailer: LogTailer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._factory = factory
        self._gate = gate
        self._rid = rid.kind_id
        self._tailer = tailer
        self._clock = clock

    @property
    def rid(self) -> ResourceID:
        return self._rid

    @property
    def factory(self) -> Factory:
        return self._factory

    def is_stale(self, namespace: str = "") -> bool:
        """Whether data served for ``namespace`` comes from a stale cache."""
        return self._factory.is_stale(self._rid, namespace)

    def ensure_fresh(self, namespace: str = "") -> None:
        """Raise ``StaleCacheError`` for callers that refuse best-effort data."""
        if self.is_stale(namespace):
            raise StaleCacheError(f"{self._rid.gvr} cache for {namespace or 'all namespaces'} is stale")

    async def prime(self, path: str) -> bool:
        """Wait until the cache scope holding ``path`` has been listed once."""
        ns, _ = split_fqn(path)
        return await self._factory.wait_synced(self._rid, ns)

    def get(self, path: str) -> CachedObject:
        obj = self._factory.get(self._rid, path)
        if obj is None:
            raise NotFoundError(self._rid.gvr, path)
        return obj

    def list(self, namespace: str = "", selector: Selector | None = None) -> list[CachedObject]:
        return self._factory.list(self._rid, namespace, selector)

    async def delete(self, path: str, options: DeleteOptions | None = None) -> None:
        """Delete one object after the authorization gate allows it."""
        options = options or DeleteOptions()
        if options.propagation is not None and Capability.CASCADE_DELETE not in self.capabilities:
            raise ValueError(f"{self._rid.gvr} does not support cascading deletion")

        ns, name = split_fqn(path)
        await self._gate.ensure(ns, self._rid, DELETE_VERB)
        await self._factory.forward(
            Verb.DELETE,
            self._rid,
            ns,
            name,
            propagation=options.propagation.value if options.propagation else None,
            grace_period_seconds=options.grace_period_seconds,
        )
        _log.info("resource_deleted", resource=self._rid.gvr, path=path, propagation=options.propagation)


class TypedAccessor(Accessor, Generic[T]):
    """Accessor that decodes cached objects into a pydantic model."""

    model: ClassVar[type[BaseModel]]

    def get_instance(self, path: str) -> T:
        obj = self.get(path)
        try:
            return self.model.model_validate(obj.to_dict())  # type: ignore[return-value]
        except ValidationError as exc:
            raise DecodeError(f"expecting {self.model.__name__} resource at {path!r}: {exc}") from exc
