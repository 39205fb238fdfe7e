"""
Celery tasks for deploy execution.

Deploy executions and stop requests are matched through the in-process
execution registry, so the worker must run a pool that shares memory
between tasks (``--pool threads``) for stop requests to reach running
executions.
"""
import logging
from uuid import UUID

from celery.signals import worker_process_init, worker_shutting_down

from slingshot.core.async_helpers import run_async_with_db
from slingshot.core.celery_app import celery_app, DeployTask
from slingshot.core.exceptions import ExecutionNotFoundError
from slingshot.core.logging_config import configure_logging
from slingshot.services.job_execution import execution_registry, run_deploy

logger = logging.getLogger(__name__)


@celery_app.task(base=DeployTask, bind=True, acks_late=True)
def execute_deploy_task(self, deploy_id: str):
    """
    Celery task to execute a Kubernetes deploy.

    Uses DeployTask base class for automatic failure handling.

    Args:
        deploy_id: UUID of the deploy
    """
    logger.info(f"Starting deploy task for {deploy_id}")

    async def execute(db):
        return await run_deploy(db, UUID(deploy_id), execution_registry)

    status = run_async_with_db(execute)

    logger.info(f"Deploy task for {deploy_id} finished: {status}")
    return status


@celery_app.task
def stop_deploy_task(deploy_id: str, signal: str = "SIGTERM") -> bool:
    """
    Celery task asking a running deploy to stop.

    Returns:
        True if an execution was found and asked to stop
    """
    try:
        execution_registry.stop(UUID(deploy_id), signal)
    except ExecutionNotFoundError as e:
        logger.warning(e.message)
        return False
    return True


@worker_process_init.connect
def on_worker_process_init(**kwargs):
    configure_logging()


@worker_shutting_down.connect
def on_worker_shutting_down(sig=None, **kwargs):
    """Let running deploys write STOPPED instead of dying mid-poll."""
    stopped = execution_registry.stop_all(str(sig or "SIGTERM"))
    if stopped:
        logger.warning(f"Worker shutting down, stopped {stopped} deploy executions")
