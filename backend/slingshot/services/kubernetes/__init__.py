"""
Kubernetes deploy execution.

This package builds, releases and verifies deploys on Kubernetes clusters.
"""
from slingshot.services.kubernetes.build_resolver import BuildResolver
from slingshot.services.kubernetes.client import ClusterClient, ClusterClientPool
from slingshot.services.kubernetes.deploy_executor import DeployExecutor, ExecutorOptions, ExecutorState
from slingshot.services.kubernetes.interfaces import AsyncioSleeper, BuildServiceProtocol, SleeperProtocol
from slingshot.services.kubernetes.output import OutputWriter
from slingshot.services.kubernetes.release_deployer import ReleaseDeployer
from slingshot.services.kubernetes.release_materializer import ReleaseMaterializer, render_template
from slingshot.services.kubernetes.stability import StabilityClassifier, Verdict, VerdictKind
from slingshot.services.kubernetes.status_poller import ClusterStatusPoller, PodStatusSnapshot

__all__ = [
    "AsyncioSleeper",
    "BuildResolver",
    "BuildServiceProtocol",
    "ClusterClient",
    "ClusterClientPool",
    "ClusterStatusPoller",
    "DeployExecutor",
    "ExecutorOptions",
    "ExecutorState",
    "OutputWriter",
    "PodStatusSnapshot",
    "ReleaseDeployer",
    "ReleaseMaterializer",
    "SleeperProtocol",
    "StabilityClassifier",
    "Verdict",
    "VerdictKind",
    "render_template",
]
