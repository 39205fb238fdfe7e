from slingshot.models.build import Build
from slingshot.models.deploy import Deploy, DeployGroup, Stage
from slingshot.models.kubernetes import KubernetesCluster, KubernetesRelease, KubernetesReleaseDoc

__all__ = [
    "Build",
    "Deploy",
    "DeployGroup",
    "Stage",
    "KubernetesCluster",
    "KubernetesRelease",
    "KubernetesReleaseDoc",
]
