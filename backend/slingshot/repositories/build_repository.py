"""
Repository for Build entity database operations.
"""
from typing import Optional

from sqlalchemy import desc, select

from slingshot.models.build import Build
from slingshot.repositories.base import BaseRepository


class BuildRepository(BaseRepository[Build]):
    """Repository for Build database operations."""

    model = Build

    async def find_by_git_sha(self, git_sha: str) -> Optional[Build]:
        """Newest build of a revision, if any."""
        result = await self.db.execute(
            select(Build)
            .where(Build.git_sha == git_sha)
            .order_by(desc(Build.created_at), Build.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def mark_job_status(self, build: Build, status: str, celery_task_id: Optional[str] = None) -> Build:
        """Record the build job status reported by the build service."""
        build.job_status = status
        if celery_task_id:
            build.celery_task_id = celery_task_id
        return await self.update(build)
