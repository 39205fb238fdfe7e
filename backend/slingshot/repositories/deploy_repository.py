"""
Repository for Deploy entity database operations.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import joinedload, selectinload

from slingshot.core.exceptions import DeployNotFoundError
from slingshot.models.deploy import Deploy, DeployGroup, Stage
from slingshot.repositories.base import BaseRepository

FINISHED_STATUSES = ("succeeded", "failed", "stopped", "errored")


class DeployRepository(BaseRepository[Deploy]):
    """Repository for Deploy database operations."""

    model = Deploy

    async def get_by_id_with_stage(self, id: UUID) -> Optional[Deploy]:
        """Get a deploy with its stage, deploy groups and clusters loaded."""
        result = await self.db.execute(
            select(Deploy)
            .options(
                joinedload(Deploy.stage)
                .selectinload(Stage.deploy_groups)
                .joinedload(DeployGroup.cluster)
            )
            .where(Deploy.id == id)
        )
        return result.unique().scalar_one_or_none()

    async def get_by_id_or_raise(self, id: UUID) -> Deploy:
        """Get a deploy by ID, raising exception if not found."""
        deploy = await self.get_by_id_with_stage(id)
        if not deploy:
            raise DeployNotFoundError(str(id))
        return deploy

    async def mark_started(self, deploy: Deploy) -> bool:
        """
        Move a pending deploy to running.

        The status check and the update are one statement, so only one worker
        can claim a deploy even when its task is delivered twice.

        Returns:
            True if this call claimed the deploy, False if it was not pending
        """
        result = await self.db.execute(
            update(Deploy)
            .where(Deploy.id == deploy.id, Deploy.status == "pending")
            .values(status="running", started_at=datetime.utcnow())
        )
        await self.db.commit()
        await self.db.refresh(deploy, attribute_names=["status", "started_at"])
        return result.rowcount == 1

    async def mark_finished(self, deploy: Deploy, status: str, output: str) -> Deploy:
        """
        Record the outcome and transcript of an execution.

        Args:
            deploy: Deploy that finished
            status: One of succeeded, failed, stopped, errored
            output: Full transcript written by the executor

        Returns:
            Updated deploy
        """
        if status not in FINISHED_STATUSES:
            raise ValueError(f"Not a finished deploy status: {status}")
        deploy.status = status
        deploy.output = output
        deploy.finished_at = datetime.utcnow()
        return await self.update(deploy)
