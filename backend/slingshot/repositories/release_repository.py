"""
Repository for KubernetesRelease entity database operations.
"""
from typing import List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from slingshot.core.exceptions import UniquenessConflictError
from slingshot.models.kubernetes import KubernetesRelease, KubernetesReleaseDoc
from slingshot.repositories.base import BaseRepository


class ReleaseRepository(BaseRepository[KubernetesRelease]):
    """Repository for KubernetesRelease database operations."""

    model = KubernetesRelease

    async def next_number(self, stage_id: UUID) -> int:
        """Number the next release of a stage would get."""
        result = await self.db.execute(
            select(func.max(KubernetesRelease.number)).where(KubernetesRelease.stage_id == stage_id)
        )
        return (result.scalar_one_or_none() or 0) + 1

    async def create_with_docs(
        self,
        release: KubernetesRelease,
        docs: List[KubernetesReleaseDoc],
    ) -> KubernetesRelease:
        """
        Insert a release and its docs in one transaction.

        Raises:
            UniquenessConflictError: Another release already took the number
        """
        release.number = await self.next_number(release.stage_id)
        release.release_docs = list(docs)
        try:
            # A conflict rolls back only the savepoint; loaded stage and group rows stay valid
            async with self.db.begin_nested():
                self.db.add(release)
        except IntegrityError as e:
            raise UniquenessConflictError(
                "release",
                f"number {release.number} already taken for stage {release.stage_id}",
            ) from e
        await self.db.commit()
        return release
