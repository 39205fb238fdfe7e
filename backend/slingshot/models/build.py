import uuid

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func

from slingshot.core.config import settings
from slingshot.core.database import Base

BUILD_JOB_ACTIVE_STATUSES = ("pending", "running")


class Build(Base):
    __tablename__ = "builds"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    project_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    git_sha = Column(String(40), nullable=False, index=True)
    image_name = Column(String(500), nullable=False)
    # Set by the build workers once the image is pushed; never changed afterwards
    docker_repo_digest = Column(String(255), nullable=True)
    # NULL = build job never started; else pending, running, succeeded, failed, cancelled
    job_status = Column(String(20), nullable=True)
    label = Column(String(255), nullable=True)
    celery_task_id = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def url(self) -> str:
        """Link to the build page."""
        return f"{settings.PUBLIC_URL.rstrip('/')}/builds/{self.id}"

    @property
    def image_reference(self) -> str:
        """Pinned image reference used in workload definitions."""
        return f"{self.image_name}@{self.docker_repo_digest}"

    @property
    def job_active(self) -> bool:
        """True while the build job is queued or running."""
        return self.job_status in BUILD_JOB_ACTIVE_STATUSES
