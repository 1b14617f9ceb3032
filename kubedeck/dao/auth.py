"""Authorization gate consulted before every mutating capability."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from kubedeck.client.base import ClusterClient
from kubedeck.errors import ForbiddenError
from kubedeck.models.rid import ResourceID

_log = structlog.get_logger(component="dao.auth")

GET_VERB = "get"
LIST_VERB = "list"
PATCH_VERB = "patch"
DELETE_VERB = "delete"
CREATE_VERB = "create"


class AuthorizationGate:
    """Pass-through to the cluster's self-subject access review.

    Results are never cached: permissions can change while the dashboard
    runs.
    """

    def __init__(self, client: ClusterClient) -> None:
        self._client = client

    async def can_i(self, namespace: str, resource: ResourceID | str, verbs: Iterable[str]) -> bool:
        """True only when every verb is allowed on ``resource`` in ``namespace``.

        ``resource`` may be a RID or a ``group/version/resource`` path.
        Transport failures propagate as ``TransportError``.
        """
        rid = ResourceID.parse(resource) if isinstance(resource, str) else resource
        checked = False
        for verb in verbs:
            checked = True
            allowed = await self._client.can_i(namespace, rid.group, rid.resource, verb)
            if not allowed:
                _log.info("access_denied", namespace=namespace, resource=rid.gvr, verb=verb)
                return False
        return checked

    async def ensure(self, namespace: str, rid: ResourceID, verb: str) -> None:
        """Raise ``ForbiddenError`` unless ``verb`` is allowed."""
        if not await self.can_i(namespace, rid, [verb]):
            raise ForbiddenError(verb, rid.gvr, namespace)
