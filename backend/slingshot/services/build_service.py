"""
Build service boundary.

Starting a build hands it to the external build workers; from then on its
progress is only visible through the build's ``job_status`` column, which
those workers update.
"""
import logging
from typing import Optional

from slingshot.models.build import Build
from slingshot.repositories.build_repository import BuildRepository
from slingshot.services.task_dispatcher import TaskDispatcherProtocol, task_dispatcher

logger = logging.getLogger(__name__)


class BuildService:
    """Starts image builds through the task dispatcher."""

    def __init__(self, builds: BuildRepository, dispatcher: Optional[TaskDispatcherProtocol] = None):
        self.builds = builds
        self.dispatcher = dispatcher or task_dispatcher

    async def start(self, build: Build) -> Optional[str]:
        """
        Queue ``build`` on the build workers.

        A build whose task could not be dispatched keeps an empty job status,
        which deploys report as "created but never ran".

        Returns:
            Task ID, or None if dispatching failed
        """
        task_id = self.dispatcher.dispatch_build(build.id)
        if task_id is None:
            logger.error(f"Build {build.id} for {build.git_sha} could not be dispatched")
            return None

        await self.builds.mark_job_status(build, "pending", celery_task_id=task_id)
        logger.info(f"Build {build.id} for {build.git_sha} queued as task {task_id}")
        return task_id
