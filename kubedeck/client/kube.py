"""ClusterClient implementation on top of kubernetes-asyncio.

Built-in resources are served by the typed API classes; the method for a
verb is derived from the resource's snake-case model name
(``list_namespaced_daemon_set``, ``patch_namespaced_daemon_set``...).
Unknown group resources fall back to ``CustomObjectsApi``.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

import aiohttp
import structlog
from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import config as k8s_config  # type: ignore[import-untyped]
from kubernetes_asyncio import watch as k8s_watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kubedeck.client.base import ClusterClient, ListResult, WatchEvent
from kubedeck.errors import TransportError
from kubedeck.models.config import KubeConfig
from kubedeck.models.logs import LogOptions
from kubedeck.models.rid import ResourceID

_log = structlog.get_logger(component="client.kube")

_STRATEGIC_MERGE = "application/strategic-merge-patch+json"


@dataclass(frozen=True)
class _Binding:
    api: str
    model: str
    namespaced: bool = True


_BINDINGS: dict[str, _Binding] = {
    "v1/pods": _Binding("CoreV1Api", "pod"),
    "v1/services": _Binding("CoreV1Api", "service"),
    "v1/endpoints": _Binding("CoreV1Api", "endpoints"),
    "v1/configmaps": _Binding("CoreV1Api", "config_map"),
    "v1/secrets": _Binding("CoreV1Api", "secret"),
    "v1/serviceaccounts": _Binding("CoreV1Api", "service_account"),
    "v1/events": _Binding("CoreV1Api", "event"),
    "v1/persistentvolumeclaims": _Binding("CoreV1Api", "persistent_volume_claim"),
    "v1/resourcequotas": _Binding("CoreV1Api", "resource_quota"),
    "v1/persistentvolumes": _Binding("CoreV1Api", "persistent_volume", namespaced=False),
    "v1/namespaces": _Binding("CoreV1Api", "namespace", namespaced=False),
    "v1/nodes": _Binding("CoreV1Api", "node", namespaced=False),
    "apps/v1/deployments": _Binding("AppsV1Api", "deployment"),
    "apps/v1/daemonsets": _Binding("AppsV1Api", "daemon_set"),
    "apps/v1/statefulsets": _Binding("AppsV1Api", "stateful_set"),
    "apps/v1/replicasets": _Binding("AppsV1Api", "replica_set"),
    "batch/v1/jobs": _Binding("BatchV1Api", "job"),
    "batch/v1/cronjobs": _Binding("BatchV1Api", "cron_job"),
}


def _transport_error(exc: Exception, action: str) -> TransportError:
    """Wrap a kubernetes-asyncio / aiohttp failure, keeping the HTTP status."""
    if isinstance(exc, ApiException):
        return TransportError(f"{action} failed: {exc.status} {exc.reason}", status=exc.status)
    if isinstance(exc, asyncio.TimeoutError):
        return TransportError(f"{action} timed out")
    return TransportError(f"{action} failed: {exc}")


_TRANSPORT_EXCEPTIONS = (ApiException, aiohttp.ClientError, asyncio.TimeoutError)


class KubeClusterClient(ClusterClient):
    """Transport backed by a kubernetes-asyncio ``ApiClient``."""

    def __init__(
        self,
        api_client: Any,
        request_timeout: int = 30,
        cluster_scoped: set[str] | None = None,
    ) -> None:
        self._api = api_client
        self._timeout = request_timeout
        # Custom resources not in _BINDINGS are assumed namespaced unless listed here.
        self._cluster_scoped = set(cluster_scoped or ())

    @classmethod
    async def connect(cls, config: KubeConfig) -> KubeClusterClient:
        """Configure from the in-cluster service account, else from kubeconfig."""
        try:
            k8s_config.load_incluster_config()
            _log.info("k8s client configured from in-cluster service account")
        except k8s_config.ConfigException:
            await k8s_config.load_kube_config(
                config_file=config.kubeconfig or None,
                context=config.context or None,
            )
            _log.info("k8s client configured from kubeconfig", context=config.context or "<current>")
        return cls(k8s_client.ApiClient(), request_timeout=config.request_timeout)

    async def close(self) -> None:
        await self._api.close()

    # ------------------------------------------------------------------
    # Method resolution
    # ------------------------------------------------------------------

    def is_namespaced(self, rid: ResourceID) -> bool:
        binding = _BINDINGS.get(rid.gvr)
        if binding is not None:
            return binding.namespaced
        return rid.gvr not in self._cluster_scoped

    def _typed(self, rid: ResourceID) -> tuple[Any, _Binding] | None:
        binding = _BINDINGS.get(rid.gvr)
        if binding is None:
            return None
        api = getattr(k8s_client, binding.api)(self._api)
        return api, binding

    def _list_call(self, rid: ResourceID, namespace: str) -> tuple[Callable[..., Any], tuple[Any, ...]]:
        typed = self._typed(rid)
        if typed is not None:
            api, b = typed
            if not b.namespaced:
                return getattr(api, f"list_{b.model}"), ()
            if namespace:
                return getattr(api, f"list_namespaced_{b.model}"), (namespace,)
            return getattr(api, f"list_{b.model}_for_all_namespaces"), ()

        custom = k8s_client.CustomObjectsApi(self._api)
        if namespace and self.is_namespaced(rid):
            return custom.list_namespaced_custom_object, (rid.group, rid.version, namespace, rid.resource)
        return custom.list_cluster_custom_object, (rid.group, rid.version, rid.resource)

    def _serialize(self, obj: Any) -> dict[str, Any]:
        if isinstance(obj, dict):
            return obj
        return self._api.sanitize_for_serialization(obj)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list(self, rid: ResourceID, namespace: str = "") -> ListResult:
        fn, args = self._list_call(rid, namespace)
        try:
            result = await fn(*args, _request_timeout=self._timeout)
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"list {rid.gvr}") from exc

        data = self._serialize(result)
        metadata = data.get("metadata") or {}
        return ListResult(
            items=list(data.get("items") or []),
            resource_version=str(metadata.get("resourceVersion") or ""),
        )

    async def watch(
        self,
        rid: ResourceID,
        namespace: str = "",
        resource_version: str = "",
        timeout_seconds: int | None = None,
    ) -> AsyncIterator[WatchEvent]:
        fn, args = self._list_call(rid, namespace)
        kwargs: dict[str, Any] = {"allow_watch_bookmarks": True}
        if resource_version:
            kwargs["resource_version"] = resource_version
        if timeout_seconds:
            kwargs["timeout_seconds"] = timeout_seconds

        w = k8s_watch.Watch()
        try:
            async with w.stream(fn, *args, **kwargs) as stream:
                async for event in stream:
                    raw = event.get("raw_object") or {}
                    if event.get("type") == "ERROR":
                        raise TransportError(
                            f"watch {rid.gvr} error: {raw.get('message', '')}",
                            status=raw.get("code"),
                        )
                    yield WatchEvent(type=str(event.get("type")), object=raw)
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"watch {rid.gvr}") from exc
        finally:
            w.stop()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, rid: ResourceID, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        typed = self._typed(rid)
        try:
            if typed is not None:
                api, b = typed
                if b.namespaced:
                    result = await getattr(api, f"create_namespaced_{b.model}")(
                        namespace, body, _request_timeout=self._timeout
                    )
                else:
                    result = await getattr(api, f"create_{b.model}")(body, _request_timeout=self._timeout)
            else:
                custom = k8s_client.CustomObjectsApi(self._api)
                if self.is_namespaced(rid):
                    result = await custom.create_namespaced_custom_object(
                        rid.group, rid.version, namespace, rid.resource, body
                    )
                else:
                    result = await custom.create_cluster_custom_object(rid.group, rid.version, rid.resource, body)
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"create {rid.gvr}") from exc
        return self._serialize(result)

    async def patch(
        self,
        rid: ResourceID,
        namespace: str,
        name: str,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        typed = self._typed(rid)
        try:
            if typed is not None:
                api, b = typed
                if b.namespaced:
                    result = await getattr(api, f"patch_namespaced_{b.model}")(
                        name,
                        namespace,
                        body,
                        _content_type=_STRATEGIC_MERGE,
                        _request_timeout=self._timeout,
                    )
                else:
                    result = await getattr(api, f"patch_{b.model}")(
                        name, body, _content_type=_STRATEGIC_MERGE, _request_timeout=self._timeout
                    )
            else:
                custom = k8s_client.CustomObjectsApi(self._api)
                if self.is_namespaced(rid):
                    result = await custom.patch_namespaced_custom_object(
                        rid.group, rid.version, namespace, rid.resource, name, body
                    )
                else:
                    result = await custom.patch_cluster_custom_object(
                        rid.group, rid.version, rid.resource, name, body
                    )
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"patch {rid.gvr} {name}") from exc
        return self._serialize(result)

    async def delete(
        self,
        rid: ResourceID,
        namespace: str,
        name: str,
        propagation: str | None = None,
        grace_period_seconds: int | None = None,
    ) -> dict[str, Any]:
        options = k8s_client.V1DeleteOptions(
            propagation_policy=propagation,
            grace_period_seconds=grace_period_seconds,
        )
        typed = self._typed(rid)
        try:
            if typed is not None:
                api, b = typed
                if b.namespaced:
                    result = await getattr(api, f"delete_namespaced_{b.model}")(
                        name, namespace, body=options, _request_timeout=self._timeout
                    )
                else:
                    result = await getattr(api, f"delete_{b.model}")(
                        name, body=options, _request_timeout=self._timeout
                    )
            else:
                custom = k8s_client.CustomObjectsApi(self._api)
                if self.is_namespaced(rid):
                    result = await custom.delete_namespaced_custom_object(
                        rid.group, rid.version, namespace, rid.resource, name, body=options
                    )
                else:
                    result = await custom.delete_cluster_custom_object(
                        rid.group, rid.version, rid.resource, name, body=options
                    )
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"delete {rid.gvr} {name}") from exc
        return self._serialize(result)

    # ------------------------------------------------------------------
    # Streaming logs and access review
    # ------------------------------------------------------------------

    async def stream_logs(
        self,
        namespace: str,
        pod: str,
        container: str,
        options: LogOptions,
    ) -> AsyncIterator[str]:
        core = k8s_client.CoreV1Api(self._api)
        kwargs: dict[str, Any] = {
            "container": container,
            "follow": not options.previous,
            "previous": options.previous,
            "timestamps": options.timestamps,
            "_preload_content": False,
        }
        if options.tail_lines is not None:
            kwargs["tail_lines"] = options.tail_lines
        if options.since_seconds is not None:
            kwargs["since_seconds"] = options.since_seconds

        try:
            resp = await core.read_namespaced_pod_log(pod, namespace, **kwargs)
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"logs {namespace}/{pod}:{container}") from exc

        try:
            async for chunk in resp.content:
                yield chunk.decode("utf-8", errors="replace").rstrip("\r\n")
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"logs {namespace}/{pod}:{container}") from exc
        finally:
            resp.release()

    async def can_i(self, namespace: str, group: str, resource: str, verb: str) -> bool:
        review = k8s_client.V1SelfSubjectAccessReview(
            spec=k8s_client.V1SelfSubjectAccessReviewSpec(
                resource_attributes=k8s_client.V1ResourceAttributes(
                    namespace=namespace or None,
                    verb=verb,
                    group=group,
                    resource=resource,
                )
            )
        )
        try:
            result = await k8s_client.AuthorizationV1Api(self._api).create_self_subject_access_review(
                review, _request_timeout=self._timeout
            )
        except _TRANSPORT_EXCEPTIONS as exc:
            raise _transport_error(exc, f"access review {verb} {resource}") from exc
        return bool(result.status and result.status.allowed)
