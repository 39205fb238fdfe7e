"""
Makes sure a deployable image exists for the revision being deployed.
"""
import logging
import threading
from typing import Optional

from slingshot.core.config import settings
from slingshot.core.exceptions import BuildNotUsableError
from slingshot.models.build import Build
from slingshot.models.deploy import Deploy
from slingshot.repositories.build_repository import BuildRepository
from slingshot.services.kubernetes.interfaces import BuildServiceProtocol, SleeperProtocol
from slingshot.services.kubernetes.output import OutputWriter

logger = logging.getLogger(__name__)


class BuildResolver:
    """
    Finds, creates or waits for the build of a deploy's revision.

    ``resolve`` returns None when a stop was requested while resolving; it
    never returns a build without an image digest.
    """

    def __init__(
        self,
        builds: BuildRepository,
        build_service: BuildServiceProtocol,
        output: OutputWriter,
        stop_event: threading.Event,
        sleeper: SleeperProtocol,
        wait_interval: float,
        image_name: str = None,
    ):
        self.builds = builds
        self.build_service = build_service
        self.output = output
        self.stop_event = stop_event
        self.sleeper = sleeper
        self.wait_interval = wait_interval
        self.image_name = image_name

    async def resolve(self, deploy: Deploy) -> Optional[Build]:
        """
        Return a successful build for ``deploy.git_sha``.

        Raises:
            BuildNotUsableError: The build failed, was cancelled or never ran
        """
        build = await self.builds.find_by_git_sha(deploy.git_sha)
        if build is None:
            build = await self._create_build(deploy)

        build = await self._wait_for_build(build)
        if self.stop_event.is_set():
            logger.info(f"Stop requested while resolving build for deploy {deploy.id}")
            return None

        self._ensure_build_is_successful(build)
        return build

    async def _create_build(self, deploy: Deploy) -> Build:
        self.output.puts(f"Creating Build for {deploy.git_sha}.")
        stage = deploy.stage
        build = await self.builds.create(Build(
            git_sha=deploy.git_sha,
            project_id=stage.project_id if stage is not None else None,
            image_name=self.image_name or settings.DOCKER_IMAGE_REPOSITORY,
            label=f"Automated build triggered via Deploy #{deploy.id}",
        ))
        await self.build_service.start(build)
        return build

    async def _wait_for_build(self, build: Build) -> Build:
        if build.docker_repo_digest or not build.job_active or self.stop_event.is_set():
            return build

        self.output.puts(f"Waiting for Build {build.url} to finish.")
        while True:
            if self.stop_event.is_set():
                return build
            await self.sleeper.sleep(self.wait_interval)
            build = await self.builds.reload(build)
            if not build.job_active:
                logger.info(f"Build {build.id} finished with status {build.job_status}")
                return build

    def _ensure_build_is_successful(self, build: Build) -> None:
        if build.docker_repo_digest:
            self.output.puts(f"Build {build.url} is looking good.")
        elif build.job_status:
            raise BuildNotUsableError(
                f"Build {build.url} is {build.job_status}, rerun it manually.",
                build.url,
                build.job_status,
            )
        else:
            raise BuildNotUsableError(
                f"Build {build.url} was created but never ran, run it manually.",
                build.url,
            )
