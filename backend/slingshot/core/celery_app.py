import logging
from uuid import UUID

from celery import Celery, Task

from slingshot.core.config import settings
from slingshot.core.exceptions import ExecutionAlreadyRunningError

logger = logging.getLogger(__name__)


class DeployTask(Task):
    """
    Base Celery task class for deploy executions.

    Marks the deploy as errored when the task raises, so a crashed worker
    never leaves a deploy stuck in "pending" or "running". A duplicate
    delivery of a deploy that is executing in this process is not a failure
    of that deploy and leaves it alone.

    Usage:
        @celery_app.task(base=DeployTask, bind=True, acks_late=True)
        def execute_deploy_task(self, deploy_id: str):
            ...
    """

    # Subclasses can override which statuses should be marked as errored
    fail_on_statuses = ("pending", "running")

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        """
        Called when the task raises an exception.

        Args:
            exc: The exception raised by the task
            task_id: The unique task ID
            args: The positional arguments passed to the task
            kwargs: The keyword arguments passed to the task
            einfo: The exception info (traceback)
        """
        # The first argument is always deploy_id for deploy tasks
        deploy_id = args[0] if args else None

        if isinstance(exc, ExecutionAlreadyRunningError):
            # The running execution owns the deploy record
            logger.warning(f"Deploy task {task_id} delivered again while {deploy_id} is running")
        elif deploy_id:
            logger.error(
                f"Deploy task failed for {deploy_id}: {exc}",
                exc_info=einfo.exc_info if einfo else None
            )
            self._mark_deploy_errored(deploy_id, str(exc))
        else:
            logger.error(f"Task failed but no deploy_id found: {exc}")

        super().on_failure(exc, task_id, args, kwargs, einfo)

    def _mark_deploy_errored(self, deploy_id: str, error: str) -> bool:
        """
        Mark a deploy as errored in the database.

        Args:
            deploy_id: UUID of the deploy
            error: Error message appended to the deploy output

        Returns:
            True if marked successfully, False otherwise
        """
        try:
            from sqlalchemy import select

            from slingshot.core.async_helpers import run_async_with_db
            from slingshot.models.deploy import Deploy

            async def mark_errored(db):
                stmt = select(Deploy).where(Deploy.id == UUID(deploy_id))
                result = await db.execute(stmt)
                deploy = result.scalar_one_or_none()

                if deploy and deploy.status in self.fail_on_statuses:
                    deploy.status = "errored"
                    deploy.output = f"{deploy.output or ''}{error}\n"
                    await db.commit()
                    logger.info(f"Marked deploy {deploy_id} as errored due to task error")
                    return True
                return False

            return run_async_with_db(mark_errored)
        except Exception as e:
            logger.warning(f"Could not mark deploy {deploy_id} as errored: {e}")
            return False


celery_app = Celery(
    "worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["slingshot.worker"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Result expiration (1 day)
    result_expires=86400,
    broker_transport_options={"visibility_timeout": settings.CELERY_VISIBILITY_TIMEOUT},
)
