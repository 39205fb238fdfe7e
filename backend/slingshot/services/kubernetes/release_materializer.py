"""
Turns a stage's deployment template into a persisted release.

One release doc is rendered per deploy group: the template gets the group's
namespace and replica count, release labels, and the build's pinned image.
"""
import copy
import logging
import re
import uuid
from typing import Any, Dict, List, Tuple

import yaml

from slingshot.core.exceptions import ReleaseValidationError
from slingshot.core.retry import retry_when_not_unique
from slingshot.models.build import Build
from slingshot.models.deploy import Deploy, DeployGroup
from slingshot.models.kubernetes import KubernetesRelease, KubernetesReleaseDoc
from slingshot.repositories.release_repository import ReleaseRepository
from slingshot.services.kubernetes.client import ClusterClientPool

logger = logging.getLogger(__name__)

_LABEL_INVALID_CHARS = re.compile(r"[^a-z0-9-]+")


class TemplateError(ValueError):
    """The deployment template cannot be turned into a workload."""
    pass


def label_value(value: str) -> str:
    """Lowercase DNS-label form of a name (max 63 chars)."""
    slug = _LABEL_INVALID_CHARS.sub("-", value.lower()).strip("-")
    return slug[:63].rstrip("-") or "default"


def render_template(
    raw_template: str,
    deploy: Deploy,
    build: Build,
    group: DeployGroup,
    release_id: uuid.UUID,
) -> Dict[str, Any]:
    """
    Render the workload definition of one deploy group.

    Args:
        raw_template: Deployment template as YAML
        deploy: Deploy being released
        build: Successful build providing the image
        group: Target deploy group
        release_id: Id the release will be stored under

    Returns:
        Deployment manifest as a dict

    Raises:
        TemplateError: The template is not a usable Deployment
    """
    try:
        template = yaml.safe_load(raw_template or "")
    except yaml.YAMLError as e:
        raise TemplateError(f"template is not valid YAML: {e}") from e

    if not isinstance(template, dict):
        raise TemplateError("template must be a mapping")
    if template.get("kind") != "Deployment":
        raise TemplateError(f"unsupported kind {template.get('kind')!r}, expected 'Deployment'")

    doc = copy.deepcopy(template)
    stage_name = deploy.stage.name
    selector_labels = {
        "stage": label_value(stage_name),
        "deploy_group": label_value(group.name),
    }
    pod_labels = {
        **selector_labels,
        "release_id": str(release_id),
        "revision": deploy.git_sha,
    }

    metadata = doc.get("metadata") or {}
    doc["metadata"] = metadata
    metadata.setdefault("name", label_value(stage_name))
    metadata["namespace"] = group.namespace
    metadata["labels"] = {**(metadata.get("labels") or {}), **pod_labels}

    spec = doc.get("spec") or {}
    doc["spec"] = spec
    spec["replicas"] = group.replicas
    spec["selector"] = {"matchLabels": selector_labels}

    pod_template = spec.get("template") or {}
    spec["template"] = pod_template
    pod_metadata = pod_template.get("metadata") or {}
    pod_template["metadata"] = pod_metadata
    pod_metadata["labels"] = {**(pod_metadata.get("labels") or {}), **pod_labels}

    containers = (pod_template.get("spec") or {}).get("containers")
    if not isinstance(containers, list) or not containers:
        raise TemplateError("template defines no containers")
    for index, container in enumerate(containers):
        if not isinstance(container, dict):
            raise TemplateError(f"container #{index} must be a mapping")
        container.setdefault("name", metadata["name"] if index == 0 else f"{metadata['name']}-{index}")
        container["image"] = build.image_reference

    return doc


class ReleaseMaterializer:
    """
    Validates every deploy group of a stage and persists the release.

    Nothing is stored unless every doc renders and every group's cluster and
    namespace can be confirmed.
    """

    def __init__(self, releases: ReleaseRepository, clients: ClusterClientPool):
        self.releases = releases
        self.clients = clients

    async def materialize(self, deploy: Deploy, build: Build) -> KubernetesRelease:
        """
        Create the release for ``deploy`` running ``build``.

        Raises:
            ReleaseValidationError: Any group failed validation
        """
        stage = deploy.stage
        release_id = uuid.uuid4()
        errors: List[str] = []
        rendered: List[Tuple[DeployGroup, Dict[str, Any]]] = []

        if not stage.deploy_groups:
            errors.append(f"Stage {stage.name} has no deploy groups")

        for group in stage.deploy_groups:
            errors.extend(await self._cluster_errors(group))
            try:
                doc = render_template(stage.deployment_template, deploy, build, group, release_id)
            except TemplateError as e:
                errors.append(f"{group.name}: {e}")
                continue
            rendered.append((group, doc))

        if errors:
            logger.warning(f"Release for deploy {deploy.id} is invalid: {errors}")
            raise ReleaseValidationError(errors)

        async def create():
            release = KubernetesRelease(
                id=release_id,
                deploy_id=deploy.id,
                build_id=build.id,
                stage_id=stage.id,
                git_sha=deploy.git_sha,
            )
            docs = [
                KubernetesReleaseDoc(
                    id=uuid.uuid4(),
                    deploy_group=group,
                    deploy_group_id=group.id,
                    replica_target=group.replicas,
                    resource_template=doc,
                )
                for group, doc in rendered
            ]
            return await self.releases.create_with_docs(release, docs)

        release = await retry_when_not_unique(create)
        logger.info(f"Created release #{release.number} ({release.id}) for deploy {deploy.id}")
        return release

    async def _cluster_errors(self, group: DeployGroup) -> List[str]:
        if group.cluster is None:
            return [f"{group.name}: no cluster configured"]
        if not group.namespace:
            return [f"{group.name}: no namespace configured"]

        client = self.clients.client_for(group.cluster)
        if not await client.connection_valid():
            return [f"{group.name}: cannot connect to cluster {group.cluster.name}"]
        if not await client.namespace_exists(group.namespace):
            return [f"{group.name}: namespace {group.namespace} does not exist on cluster {group.cluster.name}"]
        return []
