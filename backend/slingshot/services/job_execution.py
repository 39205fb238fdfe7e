"""
Construction and bookkeeping of deploy executions.

Whether executions may start is decided once, when the registry is created
(from DEPLOYS_ENABLED for the process-wide registry), and never changes for
the registry's lifetime.
"""
import io
import logging
import threading
from typing import Callable, Dict, List, Optional, TextIO
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from slingshot.core.config import settings
from slingshot.core.exceptions import (
    DeploysDisabledError,
    DomainException,
    ExecutionAlreadyRunningError,
    ExecutionNotFoundError,
    UserError,
)
from slingshot.models.deploy import Deploy
from slingshot.repositories.build_repository import BuildRepository
from slingshot.repositories.deploy_repository import DeployRepository
from slingshot.repositories.release_repository import ReleaseRepository
from slingshot.services.build_service import BuildService
from slingshot.services.kubernetes.deploy_executor import DeployExecutor, ExecutorState

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[..., DeployExecutor]


class ExecutionRegistry:
    """
    Creates executors and tracks the ones that are running.

    Thread safe: stop requests typically arrive from a different thread than
    the one running the executor.
    """

    def __init__(self, enabled: bool, executor_factory: ExecutorFactory = DeployExecutor):
        """
        Args:
            enabled: Whether executions may be created at all
            executor_factory: Callable building an executor from (output, deploy, **kwargs)
        """
        self._enabled = bool(enabled)
        self._executor_factory = executor_factory
        self._executions: Dict[str, DeployExecutor] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def create_executor(self, deploy: Deploy, output: TextIO, **kwargs) -> DeployExecutor:
        """
        Build and register the executor for ``deploy``.

        Raises:
            DeploysDisabledError: Executions are disabled
            UserError: The deploy is not a Kubernetes deploy
            ExecutionAlreadyRunningError: The deploy already has an executor
        """
        if not self._enabled:
            raise DeploysDisabledError()
        if not deploy.cluster_enabled:
            raise UserError(f"Deploy {deploy.id} is not configured for Kubernetes")

        key = str(deploy.id)
        with self._lock:
            if key in self._executions:
                raise ExecutionAlreadyRunningError(key)
            executor = self._executor_factory(output, deploy, **kwargs)
            self._executions[key] = executor
        logger.info(f"Registered executor {executor.pid} for deploy {key}")
        return executor

    def get(self, deploy_id: UUID) -> Optional[DeployExecutor]:
        with self._lock:
            return self._executions.get(str(deploy_id))

    def active(self) -> List[str]:
        """Deploy ids with a registered executor."""
        with self._lock:
            return list(self._executions)

    def finish(self, deploy_id: UUID) -> None:
        with self._lock:
            self._executions.pop(str(deploy_id), None)

    def stop(self, deploy_id: UUID, signal: str = "SIGTERM") -> DeployExecutor:
        """
        Ask the executor of a deploy to stop.

        Raises:
            ExecutionNotFoundError: No executor is registered for the deploy
        """
        executor = self.get(deploy_id)
        if executor is None:
            raise ExecutionNotFoundError(str(deploy_id))
        executor.stop(signal)
        return executor

    def stop_all(self, signal: str = "SIGTERM") -> int:
        """Stop every registered executor; returns how many were asked."""
        with self._lock:
            executors = list(self._executions.values())
        for executor in executors:
            executor.stop(signal)
        if executors:
            logger.warning(f"Stopping {len(executors)} deploy executions ({signal})")
        return len(executors)


def _final_status(executor: DeployExecutor, succeeded: bool) -> str:
    if succeeded:
        return "succeeded"
    if executor.state == ExecutorState.STOPPED:
        return "stopped"
    return "failed"


async def run_deploy(
    db: AsyncSession,
    deploy_id: UUID,
    registry: ExecutionRegistry,
    **executor_kwargs,
) -> str:
    """
    Execute a deploy and record its outcome.

    Only a pending deploy is executed. A deploy that is already running or
    finished (a redelivered task, for instance) is left untouched and its
    current status returned.

    User errors and other domain errors end the deploy as failed or errored
    with the message appended to the transcript. Unexpected exceptions mark
    the deploy errored and propagate.

    Args:
        db: Database session
        deploy_id: Deploy to run
        registry: Registry the executor is created in
        **executor_kwargs: Overrides passed to the executor (clients, sleeper, options)

    Returns:
        Final deploy status
    """
    deploys = DeployRepository(db)
    builds = BuildRepository(db)
    deploy = await deploys.get_by_id_or_raise(deploy_id)
    if deploy.status != "pending":
        logger.warning(f"Deploy {deploy_id} is already {deploy.status}, not executing it again")
        return deploy.status

    output = io.StringIO()
    executor_kwargs.setdefault("build_service", BuildService(builds))
    executor = registry.create_executor(
        deploy,
        output,
        builds=builds,
        releases=ReleaseRepository(db),
        **executor_kwargs,
    )

    claimed = False
    status = "errored"
    try:
        claimed = await deploys.mark_started(deploy)
        if not claimed:
            logger.warning(f"Deploy {deploy_id} was claimed by another worker ({deploy.status})")
            return deploy.status
        succeeded = await executor.execute()
        status = _final_status(executor, succeeded)
    except UserError as e:
        output.write(f"{e.message}\n")
        status = "failed"
    except DomainException as e:
        logger.error(f"Deploy {deploy_id} errored: {e.message}")
        output.write(f"{e.message}\n")
    finally:
        registry.finish(deploy_id)
        if claimed:
            await deploys.mark_finished(deploy, status, output.getvalue())
            logger.info(f"Deploy {deploy_id} finished: {status}")

    return status


# Process-wide registry used by the worker
execution_registry = ExecutionRegistry(enabled=settings.DEPLOYS_ENABLED)
