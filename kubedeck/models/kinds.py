"""Typed shapes that cached objects are decoded into.

Only the fields the accessors read are modelled; everything else is kept
as extra data so decoding never loses information.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _KubeModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)


class ObjectMeta(_KubeModel):
    name: str
    namespace: str = ""
    uid: str = ""
    resource_version: str = Field("", alias="resourceVersion")
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class LabelSelector(_KubeModel):
    match_labels: dict[str, str] | None = Field(None, alias="matchLabels")


class Container(_KubeModel):
    name: str
    image: str = ""


class PodSpec(_KubeModel):
    containers: list[Container] = Field(default_factory=list)
    init_containers: list[Container] = Field(default_factory=list, alias="initContainers")
    node_name: str = Field("", alias="nodeName")


class TemplateMeta(_KubeModel):
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)


class PodTemplate(_KubeModel):
    metadata: TemplateMeta = Field(default_factory=TemplateMeta)
    spec: PodSpec = Field(default_factory=PodSpec)


class UpdateStrategy(_KubeModel):
    type: str = "RollingUpdate"


class WorkloadSpec(_KubeModel):
    """Spec fields shared by every pod-owning workload."""

    selector: LabelSelector | None = None
    template: PodTemplate = Field(default_factory=PodTemplate)


class DeploymentSpec(WorkloadSpec):
    paused: bool = False
    replicas: int | None = None


class DaemonSetSpec(WorkloadSpec):
    update_strategy: UpdateStrategy = Field(default_factory=UpdateStrategy, alias="updateStrategy")


class StatefulSetSpec(WorkloadSpec):
    update_strategy: UpdateStrategy = Field(default_factory=UpdateStrategy, alias="updateStrategy")
    replicas: int | None = None


class ReplicaSetSpec(WorkloadSpec):
    replicas: int | None = None


class JobSpec(WorkloadSpec):
    parallelism: int | None = None


class _Object(_KubeModel):
    api_version: str = Field("", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMeta
    status: dict[str, Any] = Field(default_factory=dict)


class Pod(_Object):
    spec: PodSpec = Field(default_factory=PodSpec)


class Workload(_Object):
    spec: WorkloadSpec = Field(default_factory=WorkloadSpec)

    @property
    def match_labels(self) -> dict[str, str]:
        """Selector labels, empty when the object defines none."""
        if self.spec.selector is None:
            return {}
        return dict(self.spec.selector.match_labels or {})


class Deployment(Workload):
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)


class DaemonSet(Workload):
    spec: DaemonSetSpec = Field(default_factory=DaemonSetSpec)

    def is_happy(self) -> bool:
        desired = self.status.get("desiredNumberScheduled", 0)
        return desired == self.status.get("currentNumberScheduled", 0)


class StatefulSet(Workload):
    spec: StatefulSetSpec = Field(default_factory=StatefulSetSpec)


class ReplicaSet(Workload):
    spec: ReplicaSetSpec = Field(default_factory=ReplicaSetSpec)


class Job(Workload):
    spec: JobSpec = Field(default_factory=JobSpec)
