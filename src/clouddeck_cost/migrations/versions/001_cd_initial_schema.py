"""Create initial cd_ schema tables.

Revision ID: 001_cd_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "001_cd_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the usage ledger, project, deployment and metric tables."""

    # cd_usage_records (append-only billing ledger)
    op.create_table(
        "cd_usage_records",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("service", sa.String(32), nullable=False),
        sa.Column("amount", sa.Numeric(18, 6), nullable=False),
        sa.Column("quantity", sa.Numeric(18, 6), nullable=False, server_default="0"),
        sa.Column("region", sa.String(64), nullable=False),
        sa.Column("team_id", sa.String(64), nullable=False),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.CheckConstraint("amount >= 0", name="ck_cd_usage_records_amount_non_negative"),
        sa.CheckConstraint(
            "service IN ('compute', 'storage', 'bandwidth', 'builds', 'functions')",
            name="ck_cd_usage_records_service",
        ),
    )
    op.create_index("ix_cd_usage_records_created_at", "cd_usage_records", ["created_at"])
    op.create_index("ix_cd_usage_records_team_created", "cd_usage_records", ["team_id", "created_at"])
    op.create_index("ix_cd_usage_records_project_created", "cd_usage_records", ["project_id", "created_at"])
    op.create_index("ix_cd_usage_records_service_created", "cd_usage_records", ["service", "created_at"])

    # cd_projects
    op.create_table(
        "cd_projects",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("team_id", sa.String(64), nullable=False),
    )
    op.create_index("ix_cd_projects_team_id", "cd_projects", ["team_id"])

    # cd_deployments
    op.create_table(
        "cd_deployments",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("project_id", sa.String(64), nullable=False),
        sa.Column("team_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("instance_units", sa.Float, nullable=False, server_default="1.0"),
    )
    op.create_index("ix_cd_deployments_created_at", "cd_deployments", ["created_at"])
    op.create_index("ix_cd_deployments_project_id", "cd_deployments", ["project_id"])
    op.create_index("ix_cd_deployments_team_id", "cd_deployments", ["team_id"])

    # cd_metrics
    op.create_table(
        "cd_metrics",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column(
            "deployment_id",
            sa.Uuid,
            sa.ForeignKey("cd_deployments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("metric_name", sa.String(64), nullable=False),
        sa.Column("value", sa.Float, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_cd_metrics_created_at", "cd_metrics", ["created_at"])
    op.create_index("ix_cd_metrics_deployment_name_ts", "cd_metrics", ["deployment_id", "metric_name", "timestamp"])


def downgrade() -> None:
    """Drop all cd_ tables."""
    op.drop_table("cd_metrics")
    op.drop_table("cd_deployments")
    op.drop_table("cd_projects")
    op.drop_table("cd_usage_records")
