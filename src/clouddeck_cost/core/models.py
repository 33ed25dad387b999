"""SQLAlchemy ORM models for the CloudDeck cost analytics service.

All tables use the `cd_` prefix. The service only reads these tables: the
usage ledger is append-only and written by the billing pipeline, while
projects, deployments and metrics are owned by the platform API.

Domain model:
  UsageRecord: One billed unit of resource consumption (the usage ledger)
  Project: Project display names for the cost breakdown
  Deployment: Deployments scanned by the idle/oversized detectors
  Metric: CPU/memory utilisation samples per deployment
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from clouddeck_cost.database import Base

SERVICES: tuple[str, ...] = ("compute", "storage", "bandwidth", "builds", "functions")


class CloudDeckModel(Base):
    """Abstract base supplying the UUID primary key and creation timestamp."""

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )


class UsageRecord(CloudDeckModel):
    """A single row of the append-only billing usage ledger.

    Table: cd_usage_records
    """

    __tablename__ = "cd_usage_records"

    service: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="compute | storage | bandwidth | builds | functions",
    )
    amount: Mapped[float] = mapped_column(
        Numeric(18, 6, asdecimal=False),
        nullable=False,
        comment="Billed amount in USD (>= 0)",
    )
    quantity: Mapped[float] = mapped_column(
        Numeric(18, 6, asdecimal=False),
        nullable=False,
        default=0,
        comment="Consumed units: hours, GB, GB-months, build minutes or invocations",
    )
    region: Mapped[str] = mapped_column(String(64), nullable=False)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        Index("ix_cd_usage_records_team_created", "team_id", "created_at"),
        Index("ix_cd_usage_records_project_created", "project_id", "created_at"),
        Index("ix_cd_usage_records_service_created", "service", "created_at"),
        CheckConstraint("amount >= 0", name="ck_cd_usage_records_amount_non_negative"),
    )


class Project(Base):
    """Project display names, keyed by the platform project id.

    Table: cd_projects
    """

    __tablename__ = "cd_projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)


class Deployment(CloudDeckModel):
    """A deployment of a project, scanned for idle and oversized capacity.

    Table: cd_deployments
    """

    __tablename__ = "cd_deployments"

    project_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="queued | building | success | failed | cancelled",
    )
    instance_units: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=1.0,
        comment="Compute-hour multiplier of the deployment's instance size",
    )


class Metric(CloudDeckModel):
    """A utilisation sample (percent) for a deployment.

    Table: cd_metrics
    """

    __tablename__ = "cd_metrics"

    deployment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("cd_deployments.id", ondelete="CASCADE"),
        nullable=False,
    )
    metric_name: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="cpu_usage | memory_usage | ...",
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_cd_metrics_deployment_name_ts", "deployment_id", "metric_name", "timestamp"),
    )
