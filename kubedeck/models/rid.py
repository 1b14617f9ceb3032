"""Resource identifiers and fully-qualified name helpers."""

from __future__ import annotations

from dataclasses import dataclass, replace


def fqn(namespace: str, name: str) -> str:
    """Render a fully-qualified name: ``ns/name``, or ``name`` when cluster scoped."""
    if not namespace:
        return name
    return f"{namespace}/{name}"


def split_fqn(path: str) -> tuple[str, str]:
    """Split ``ns/name`` into ``(namespace, name)``; a bare name has no namespace."""
    ns, sep, name = path.rpartition("/")
    if not sep:
        return "", path
    return ns, name


@dataclass(frozen=True, order=True)
class ResourceID:
    """Identifies a resource kind by group/version/resource, optionally one object.

    ``resource`` is the lowercase plural used in API paths (``daemonsets``).
    The core API group is the empty string.
    """

    group: str
    version: str
    resource: str
    namespace: str = ""
    name: str = ""

    @classmethod
    def parse(cls, gvr: str) -> ResourceID:
        """Parse ``group/version/resource`` or ``version/resource``."""
        parts = gvr.strip().split("/")
        if len(parts) == 2:
            group, version, resource = "", parts[0], parts[1]
        elif len(parts) == 3:
            group, version, resource = parts
        else:
            raise ValueError(f"invalid resource identifier: {gvr!r}")
        if not version or not resource:
            raise ValueError(f"invalid resource identifier: {gvr!r}")
        return cls(group=group, version=version, resource=resource.lower())

    @property
    def gvr(self) -> str:
        """Stable rendering used as the cache partition key."""
        if self.group:
            return f"{self.group}/{self.version}/{self.resource}"
        return f"{self.version}/{self.resource}"

    @property
    def api_version(self) -> str:
        if self.group:
            return f"{self.group}/{self.version}"
        return self.version

    @property
    def path(self) -> str:
        """``gvr`` followed by the object FQN, when the RID names an object."""
        if not self.name:
            return self.gvr
        return f"{self.gvr}/{fqn(self.namespace, self.name)}"

    @property
    def kind_id(self) -> ResourceID:
        """The RID with namespace and name dropped."""
        if not self.namespace and not self.name:
            return self
        return replace(self, namespace="", name="")

    def with_name(self, path: str) -> ResourceID:
        """Return a RID addressing the object ``path`` (``ns/name`` or ``name``)."""
        ns, name = split_fqn(path)
        return replace(self, namespace=ns, name=name)

    def __str__(self) -> str:
        return self.gvr


PODS = ResourceID.parse("v1/pods")
SERVICES = ResourceID.parse("v1/services")
CONFIGMAPS = ResourceID.parse("v1/configmaps")
NAMESPACES = ResourceID.parse("v1/namespaces")
NODES = ResourceID.parse("v1/nodes")
DEPLOYMENTS = ResourceID.parse("apps/v1/deployments")
DAEMONSETS = ResourceID.parse("apps/v1/daemonsets")
STATEFULSETS = ResourceID.parse("apps/v1/statefulsets")
REPLICASETS = ResourceID.parse("apps/v1/replicasets")
JOBS = ResourceID.parse("batch/v1/jobs")
