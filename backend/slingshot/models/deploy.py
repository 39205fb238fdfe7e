"""
Deploy, stage and target group models.
"""
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from slingshot.core.database import Base


class Stage(Base):
    """A deploy target such as "staging" or "production"."""

    __tablename__ = "stages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    project_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    kubernetes = Column(Boolean, nullable=False, default=False)
    # Raw workload template (YAML); checked-out repository content is out of scope
    deployment_template = Column(Text, nullable=True)

    deploy_groups = relationship(
        "DeployGroup",
        back_populates="stage",
        order_by="DeployGroup.name",
        lazy="selectin",
    )


class DeployGroup(Base):
    """
    Target group of a stage.

    Each group is deployed into one namespace of one cluster and tracked
    independently while a deploy is being verified.
    """

    __tablename__ = "deploy_groups"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stage_id = Column(UUID(as_uuid=True), ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    cluster_id = Column(UUID(as_uuid=True), ForeignKey("kubernetes_clusters.id"), nullable=True, index=True)
    namespace = Column(String(255), nullable=True)
    replicas = Column(Integer, nullable=False, default=1)

    stage = relationship("Stage", back_populates="deploy_groups")
    cluster = relationship("KubernetesCluster", lazy="joined")


class Deploy(Base):
    """User request to ship a revision to a stage."""

    __tablename__ = "deploys"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stage_id = Column(UUID(as_uuid=True), ForeignKey("stages.id", ondelete="CASCADE"), nullable=False, index=True)
    git_sha = Column(String(40), nullable=False)
    kubernetes = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, running, succeeded, failed, stopped, errored
    output = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    started_at = Column(DateTime, nullable=True)
    finished_at = Column(DateTime, nullable=True)

    stage = relationship("Stage", lazy="joined")

    @property
    def cluster_enabled(self) -> bool:
        """Both the deploy and its stage opted into cluster deploys."""
        return bool(self.kubernetes and self.stage is not None and self.stage.kubernetes)
