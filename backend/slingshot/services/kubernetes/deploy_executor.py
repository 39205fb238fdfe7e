"""
Kubernetes deploy executor.

Drives one deploy from build to confirmed health:

    created -> build_resolving -> release_materializing -> deploying
            -> polling -> succeeded | failed | stopped

``stop`` may be called from any thread at any time. It is cooperative: the
executor notices it at the next check, which happens before every sleep and
at the top of every poll, so a stop requested before ``execute`` starts is
honoured without polling.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TextIO
from uuid import uuid4

from slingshot.core.config import settings
from slingshot.models.build import Build
from slingshot.models.deploy import Deploy
from slingshot.models.kubernetes import KubernetesRelease
from slingshot.repositories.build_repository import BuildRepository
from slingshot.repositories.release_repository import ReleaseRepository
from slingshot.services.kubernetes.build_resolver import BuildResolver
from slingshot.services.kubernetes.client import ClusterClientPool
from slingshot.services.kubernetes.interfaces import AsyncioSleeper, BuildServiceProtocol, SleeperProtocol
from slingshot.services.kubernetes.output import OutputWriter
from slingshot.services.kubernetes.release_deployer import ReleaseDeployer
from slingshot.services.kubernetes.release_materializer import ReleaseMaterializer
from slingshot.services.kubernetes.stability import StabilityClassifier
from slingshot.services.kubernetes.status_poller import ClusterStatusPoller

logger = logging.getLogger(__name__)


class ExecutorState(str, Enum):
    CREATED = "created"
    BUILD_RESOLVING = "build_resolving"
    RELEASE_MATERIALIZING = "release_materializing"
    DEPLOYING = "deploying"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def terminal(self) -> bool:
        return self in (ExecutorState.SUCCEEDED, ExecutorState.FAILED, ExecutorState.STOPPED)


@dataclass
class ExecutorOptions:
    """Timing and stability knobs of one execution."""

    poll_interval: float = 2.0
    build_wait_interval: float = 2.0
    stability_threshold: int = 1
    # None polls until stopped while pods are missing
    missing_poll_limit: Optional[int] = None

    @classmethod
    def from_settings(cls) -> "ExecutorOptions":
        return cls(
            poll_interval=settings.KUBERNETES_POLL_INTERVAL,
            build_wait_interval=settings.KUBERNETES_BUILD_WAIT_INTERVAL,
            stability_threshold=settings.KUBERNETES_STABILITY_THRESHOLD,
            missing_poll_limit=settings.KUBERNETES_MISSING_POLL_LIMIT,
        )


class DeployExecutor:
    """
    Deploys a build to every deploy group of a stage and watches it go live.

    ``execute`` returns True when all groups are Live, and False when the
    deploy was stopped or became unstable. Invalid input (unusable build,
    invalid release) raises a UserError; cluster query failures raise
    ClusterQueryError.
    """

    def __init__(
        self,
        output: TextIO,
        deploy: Deploy,
        *,
        builds: BuildRepository,
        releases: ReleaseRepository,
        build_service: BuildServiceProtocol,
        clients: Optional[ClusterClientPool] = None,
        sleeper: Optional[SleeperProtocol] = None,
        options: Optional[ExecutorOptions] = None,
    ):
        """
        Args:
            output: Stream receiving the progress transcript
            deploy: Deploy to execute, with its stage and deploy groups loaded
            builds: Build persistence
            releases: Release persistence
            build_service: Starts builds when none exists for the revision
            clients: Cluster clients; closed when the execution ends
            sleeper: Waits between polls
            options: Intervals and thresholds (defaults from settings)
        """
        self.deploy = deploy
        self.options = options or ExecutorOptions.from_settings()
        self.output = OutputWriter(output, name=f"deploy-{deploy.id}")
        self.clients = clients or ClusterClientPool()
        self.sleeper = sleeper or AsyncioSleeper()

        self.state = ExecutorState.CREATED
        self.stop_signal: Optional[str] = None
        self.build: Optional[Build] = None
        self.release: Optional[KubernetesRelease] = None

        self._pid = f"Kubernetes-{uuid4().hex[:12]}"
        self._stop_event = threading.Event()
        self._stop_lock = threading.Lock()

        self.build_resolver = BuildResolver(
            builds,
            build_service,
            self.output,
            self._stop_event,
            self.sleeper,
            self.options.build_wait_interval,
        )
        self.materializer = ReleaseMaterializer(releases, self.clients)
        self.deployer = ReleaseDeployer(self.clients, self.output)
        self.poller = ClusterStatusPoller(self.clients)
        self.classifier = StabilityClassifier(self.options.stability_threshold)

    @property
    def pid(self) -> str:
        """Display identifier; not an OS process id."""
        return self._pid

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self, signal: str) -> None:
        """Request a cooperative stop. Repeated calls keep the first signal."""
        with self._stop_lock:
            if self._stop_event.is_set():
                return
            self.stop_signal = signal
            self._stop_event.set()
        logger.info(f"Stop requested for deploy {self.deploy.id} ({signal})")

    async def execute(self) -> bool:
        """
        Run the deploy to completion.

        Returns:
            True if every deploy group went Live, False if stopped or unstable

        Raises:
            UserError: Build or release cannot be used
            ClusterQueryError: Cluster API failed while deploying or polling
        """
        if self.state != ExecutorState.CREATED:
            raise RuntimeError(f"Executor {self.pid} already ran (state: {self.state.value})")

        try:
            return await self._execute()
        except Exception:
            if not self.state.terminal:
                self._transition(ExecutorState.FAILED)
            raise
        finally:
            await self.clients.aclose()

    async def _execute(self) -> bool:
        self._transition(ExecutorState.BUILD_RESOLVING)
        self.build = await self.build_resolver.resolve(self.deploy)
        if self.build is None or self.stopped:
            return self._finish_stopped()

        self._transition(ExecutorState.RELEASE_MATERIALIZING)
        self.release = await self.materializer.materialize(self.deploy, self.build)
        if self.stopped:
            return self._finish_stopped()

        self._transition(ExecutorState.DEPLOYING)
        await self.deployer.deploy(self.release)

        self._transition(ExecutorState.POLLING)
        return await self._wait_for_resources_to_complete()

    async def _wait_for_resources_to_complete(self) -> bool:
        while True:
            if self.stopped:
                return self._finish_stopped()

            statuses = await self.poller.poll(self.release)

            verdicts = []
            for doc in self.release.release_docs:
                group = doc.deploy_group.name
                verdict = self.classifier.classify(group, statuses.get(group, []), doc.replica_target)
                self.output.puts(f"{group}: {verdict.text}")
                verdicts.append(verdict)

            if any(verdict.restarted for verdict in verdicts):
                self.output.puts("UNSTABLE - service is restarting")
                self._transition(ExecutorState.FAILED)
                return False

            if verdicts and all(verdict.live for verdict in verdicts):
                self.output.puts("SUCCESS")
                self._transition(ExecutorState.SUCCEEDED)
                return True

            if self.classifier.missing_exceeded(self.options.missing_poll_limit):
                self.output.puts("UNSTABLE - pods are missing")
                self._transition(ExecutorState.FAILED)
                return False

            if self.stopped:
                return self._finish_stopped()
            await self.sleeper.sleep(self.options.poll_interval)

    def _finish_stopped(self) -> bool:
        self.output.puts("STOPPED")
        self._transition(ExecutorState.STOPPED)
        return False

    def _transition(self, state: ExecutorState) -> None:
        logger.info(f"Deploy {self.deploy.id} [{self.pid}]: {self.state.value} -> {state.value}")
        self.state = state
