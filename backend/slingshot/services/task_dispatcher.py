"""
Task dispatcher service for decoupling callers from Celery.

Usage:
    from slingshot.services.task_dispatcher import task_dispatcher

    task_dispatcher.dispatch_deploy(deploy_id)

    # In tests, replace with mock:
    with patch('slingshot.services.task_dispatcher.task_dispatcher') as mock:
        mock.dispatch_deploy.return_value = "task-id"
"""
import logging
from typing import Optional, Protocol
from uuid import UUID

from slingshot.core.config import settings

logger = logging.getLogger(__name__)


class TaskDispatcherProtocol(Protocol):
    """Protocol defining the task dispatcher interface."""

    def dispatch_deploy(self, deploy_id: UUID) -> Optional[str]:
        """Dispatch a deploy execution task."""
        ...

    def dispatch_stop(self, deploy_id: UUID, signal: str = "SIGTERM") -> Optional[str]:
        """Dispatch a stop request for a running deploy."""
        ...

    def dispatch_build(self, build_id: UUID) -> Optional[str]:
        """Dispatch an image build to the external build workers."""
        ...


class CeleryTaskDispatcher:
    """
    Task dispatcher implementation using Celery.

    Celery imports are deferred to method calls to avoid circular imports.
    """

    def dispatch_deploy(self, deploy_id: UUID) -> Optional[str]:
        """
        Dispatch a deploy execution task.

        Args:
            deploy_id: UUID of the deploy

        Returns:
            Task ID if dispatched successfully, None otherwise
        """
        try:
            from slingshot.worker import execute_deploy_task

            result = execute_deploy_task.delay(str(deploy_id))
            logger.info(f"Dispatched deploy task for {deploy_id}: {result.id}")
            return result.id
        except Exception as e:
            logger.error(f"Failed to dispatch deploy task: {e}")
            return None

    def dispatch_stop(self, deploy_id: UUID, signal: str = "SIGTERM") -> Optional[str]:
        """
        Dispatch a stop request for a running deploy.

        Args:
            deploy_id: UUID of the deploy to stop
            signal: Reason shown in the worker logs

        Returns:
            Task ID if dispatched successfully, None otherwise
        """
        try:
            from slingshot.worker import stop_deploy_task

            result = stop_deploy_task.delay(str(deploy_id), signal)
            logger.info(f"Dispatched stop task for {deploy_id}: {result.id}")
            return result.id
        except Exception as e:
            logger.error(f"Failed to dispatch stop task: {e}")
            return None

    def dispatch_build(self, build_id: UUID) -> Optional[str]:
        """
        Dispatch an image build by task name; the build workers are a separate service.

        Args:
            build_id: UUID of the build

        Returns:
            Task ID if dispatched successfully, None otherwise
        """
        try:
            from slingshot.core.celery_app import celery_app

            result = celery_app.send_task(settings.BUILD_TASK_NAME, args=[str(build_id)])
            logger.info(f"Dispatched build task for {build_id}: {result.id}")
            return result.id
        except Exception as e:
            logger.error(f"Failed to dispatch build task: {e}")
            return None


class NoOpTaskDispatcher:
    """
    No-op task dispatcher for testing.

    This implementation does nothing, allowing tests to run without Celery.
    """

    def dispatch_deploy(self, deploy_id: UUID) -> Optional[str]:
        logger.debug(f"NoOp: dispatch_deploy({deploy_id})")
        return f"noop-deploy-{deploy_id}"

    def dispatch_stop(self, deploy_id: UUID, signal: str = "SIGTERM") -> Optional[str]:
        logger.debug(f"NoOp: dispatch_stop({deploy_id}, {signal})")
        return f"noop-stop-{deploy_id}"

    def dispatch_build(self, build_id: UUID) -> Optional[str]:
        logger.debug(f"NoOp: dispatch_build({build_id})")
        return f"noop-build-{build_id}"


def _create_dispatcher() -> TaskDispatcherProtocol:
    """
    Create the appropriate task dispatcher based on environment.

    Returns CeleryTaskDispatcher for production, NoOpTaskDispatcher for tests.
    """
    if settings.ENVIRONMENT == "test":
        logger.info("Using NoOpTaskDispatcher for test environment")
        return NoOpTaskDispatcher()

    return CeleryTaskDispatcher()


# Singleton instance for shared use
task_dispatcher: TaskDispatcherProtocol = _create_dispatcher()
