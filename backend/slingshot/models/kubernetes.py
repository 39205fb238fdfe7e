import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from slingshot.core.database import Base


class KubernetesCluster(Base):
    """API endpoint and credentials of one cluster."""

    __tablename__ = "kubernetes_clusters"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False, unique=True)
    api_url = Column(String(500), nullable=False)
    token = Column(Text, nullable=True)
    verify_ssl = Column(Boolean, nullable=False, default=True)


class KubernetesRelease(Base):
    """
    Cluster-facing materialization of a deploy.

    ``number`` is unique per stage; two executors materializing at the same
    time race on it and the loser retries with the next number.
    """

    __tablename__ = "kubernetes_releases"
    __table_args__ = (
        UniqueConstraint("stage_id", "number", name="uq_kubernetes_releases_stage_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    deploy_id = Column(UUID(as_uuid=True), ForeignKey("deploys.id", ondelete="CASCADE"), nullable=False, index=True)
    build_id = Column(UUID(as_uuid=True), ForeignKey("builds.id"), nullable=False)
    stage_id = Column(UUID(as_uuid=True), ForeignKey("stages.id", ondelete="CASCADE"), nullable=False)
    number = Column(Integer, nullable=False)
    git_sha = Column(String(40), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    release_docs = relationship(
        "KubernetesReleaseDoc",
        back_populates="release",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class KubernetesReleaseDoc(Base):
    """Rendered workload definition of a release for one deploy group."""

    __tablename__ = "kubernetes_release_docs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    release_id = Column(UUID(as_uuid=True), ForeignKey("kubernetes_releases.id", ondelete="CASCADE"), nullable=False, index=True)
    deploy_group_id = Column(UUID(as_uuid=True), ForeignKey("deploy_groups.id"), nullable=False)
    replica_target = Column(Integer, nullable=False, default=1)
    resource_template = Column(JSONB, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    release = relationship("KubernetesRelease", back_populates="release_docs")
    deploy_group = relationship("DeployGroup", lazy="joined")

    @property
    def namespace(self) -> str:
        return self.resource_template["metadata"]["namespace"]

    @property
    def deployment_name(self) -> str:
        return self.resource_template["metadata"]["name"]

    @property
    def pod_selector(self) -> str:
        """Label selector matching the pods this doc created."""
        labels = self.resource_template["spec"]["template"]["metadata"]["labels"]
        return f"release_id={labels['release_id']},deploy_group={labels['deploy_group']}"
