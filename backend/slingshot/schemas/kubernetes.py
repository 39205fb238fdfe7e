"""
Pydantic schemas for the parts of Kubernetes API responses we read.

Unknown fields are ignored; fields we rely on are optional so that a pod that
has not been scheduled yet still parses.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class KubeModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PodCondition(KubeModel):
    type: str
    status: str


class ContainerStatus(KubeModel):
    name: Optional[str] = None
    restart_count: int = Field(default=0, alias="restartCount")


class PodStatus(KubeModel):
    phase: Optional[str] = None
    conditions: Optional[List[PodCondition]] = None
    container_statuses: Optional[List[ContainerStatus]] = Field(default=None, alias="containerStatuses")


class ObjectMeta(KubeModel):
    name: Optional[str] = None
    namespace: Optional[str] = None


class Pod(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: PodStatus = Field(default_factory=PodStatus)

    @property
    def ready(self) -> bool:
        """True when the pod reports a Ready condition with status "True"."""
        return any(
            condition.type == "Ready" and condition.status == "True"
            for condition in self.status.conditions or []
        )

    @property
    def restart_count(self) -> int:
        """Highest restart count across the pod's containers."""
        return max(
            (container.restart_count for container in self.status.container_statuses or []),
            default=0,
        )


class PodList(KubeModel):
    items: List[Pod]
