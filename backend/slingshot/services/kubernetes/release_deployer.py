"""
Applies a release's docs to their clusters.
"""
import logging

from slingshot.models.kubernetes import KubernetesRelease
from slingshot.services.kubernetes.client import ClusterClientPool
from slingshot.services.kubernetes.output import OutputWriter

logger = logging.getLogger(__name__)


class ReleaseDeployer:
    """Creates each doc's Deployment, or replaces it when one already exists."""

    def __init__(self, clients: ClusterClientPool, output: OutputWriter):
        self.clients = clients
        self.output = output

    async def deploy(self, release: KubernetesRelease) -> None:
        for doc in release.release_docs:
            group = doc.deploy_group
            client = self.clients.client_for(group.cluster)
            name = doc.deployment_name
            self.output.puts(f"Deploying {name} to {group.name}.")

            existing = await client.get_deployment(doc.namespace, name)
            if existing is None:
                await client.create_deployment(doc.namespace, doc.resource_template)
                logger.info(f"Created deployment {doc.namespace}/{name} on {group.cluster.name}")
            else:
                await client.replace_deployment(doc.namespace, name, doc.resource_template)
                logger.info(f"Replaced deployment {doc.namespace}/{name} on {group.cluster.name}")
