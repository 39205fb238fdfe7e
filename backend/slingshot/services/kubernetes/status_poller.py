"""
Reads live pod status for every deploy group of a release.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List

from slingshot.models.kubernetes import KubernetesRelease
from slingshot.schemas.kubernetes import Pod
from slingshot.services.kubernetes.client import ClusterClientPool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PodStatusSnapshot:
    """Normalized view of one pod at poll time."""

    name: str
    phase: str
    ready: bool
    restart_count: int

    @classmethod
    def from_pod(cls, pod: Pod, index: int = 0) -> "PodStatusSnapshot":
        return cls(
            name=pod.metadata.name or f"pod-{index}",
            phase=pod.status.phase or "Unknown",
            ready=pod.ready,
            restart_count=pod.restart_count,
        )


class ClusterStatusPoller:
    """
    Lists the pods of each release doc, one group at a time.

    An empty list means the query succeeded and found nothing; failed
    queries raise ClusterQueryError instead.
    """

    def __init__(self, clients: ClusterClientPool):
        self.clients = clients

    async def poll(self, release: KubernetesRelease) -> Dict[str, List[PodStatusSnapshot]]:
        """
        Returns:
            Pod snapshots keyed by deploy group name, in release doc order
        """
        statuses: Dict[str, List[PodStatusSnapshot]] = {}
        for doc in release.release_docs:
            group = doc.deploy_group
            client = self.clients.client_for(group.cluster)
            pods = await client.get_pods(doc.namespace, doc.pod_selector)
            statuses[group.name] = [PodStatusSnapshot.from_pod(pod, i) for i, pod in enumerate(pods)]
            logger.debug(f"{group.name}: {len(pods)} pods matching {doc.pod_selector}")
        return statuses
