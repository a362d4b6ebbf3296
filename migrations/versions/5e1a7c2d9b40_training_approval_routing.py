"""training_approval_routing

Creates the approval routing tables:
  - profiles           : org directory identities (manager / entity links)
  - user_roles         : role assignments; effective level is derived from these
  - training_requests  : the routed artifact and its current routing state
  - approvals          : append-only per-level approval records
  - notifications      : in-app notifications raised by the workflow

Tables created conditionally (IF NOT EXISTS semantics) to support idempotent
execution against databases that already received these tables via db.create_all()
in a development environment.

Revision ID: 5e1a7c2d9b40
Revises:
Create Date: 2026-10-19 09:12:44.518203
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '5e1a7c2d9b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Profile ───────────────────────────────────────────────────────────
    if "profiles" not in existing:
        op.create_table(
            "profiles",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("full_name", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column(
                "entity_id", sa.String(length=36), nullable=True,
                comment="Organisational entity the profile belongs to",
            ),
            sa.Column("manager_id", sa.String(length=36), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["manager_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_profiles_email", "profiles", ["email"])
        op.create_index("ix_profiles_entity_id", "profiles", ["entity_id"])
        op.create_index("ix_profiles_manager_id", "profiles", ["manager_id"])

    # ── UserRole ──────────────────────────────────────────────────────────
    if "user_roles" not in existing:
        op.create_table(
            "user_roles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column(
                "role", sa.String(length=30), nullable=False,
                comment="employee | manager | hrbp | l_and_d | chro | admin | finance | committee",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        )
        op.create_index("ix_user_roles_user_id", "user_roles", ["user_id"])
        op.create_index("idx_user_roles_role", "user_roles", ["role"])

    # ── TrainingRequest ───────────────────────────────────────────────────
    if "training_requests" not in existing:
        op.create_table(
            "training_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_number", sa.String(length=30), nullable=True),
            sa.Column(
                "requester_id", sa.String(length=36), nullable=False,
                comment="The employee who will attend the training",
            ),
            sa.Column(
                "nominated_by_id", sa.String(length=36), nullable=True,
                comment="Who submitted the request; equals requester_id for self-submissions",
            ),
            sa.Column("course_name", sa.String(length=300), nullable=False, server_default=""),
            sa.Column("training_location", sa.String(length=20), nullable=False, server_default="local"),
            sa.Column("cost_level", sa.String(length=20), nullable=False, server_default="low"),
            sa.Column(
                "is_extended_workflow", sa.Boolean(), nullable=True,
                comment="Fixed at workflow initialisation; NULL until then",
            ),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("current_approval_level", sa.Integer(), nullable=True),
            sa.Column("current_approver_id", sa.String(length=36), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["requester_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["nominated_by_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["current_approver_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("request_number"),
        )
        op.create_index("ix_training_requests_requester_id", "training_requests", ["requester_id"])
        op.create_index("ix_training_requests_status", "training_requests", ["status"])
        op.create_index(
            "ix_training_requests_current_approver_id", "training_requests", ["current_approver_id"],
        )

    # ── Approval ──────────────────────────────────────────────────────────
    if "approvals" not in existing:
        op.create_table(
            "approvals",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("request_id", sa.String(length=36), nullable=False),
            sa.Column("approver_id", sa.String(length=36), nullable=True),
            sa.Column("approval_level", sa.Integer(), nullable=False),
            sa.Column("approver_role", sa.String(length=30), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("comments", sa.Text(), nullable=True),
            sa.Column("decision_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("delegated_from", sa.String(length=36), nullable=True),
            sa.Column("is_auto_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["request_id"], ["training_requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["approver_id"], ["profiles.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["delegated_from"], ["profiles.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("request_id", "approval_level", name="uq_approvals_request_level"),
        )
        op.create_index("ix_approvals_request_id", "approvals", ["request_id"])
        op.create_index("idx_approvals_approver_status", "approvals", ["approver_id", "status"])

    # ── Notification ──────────────────────────────────────────────────────
    if "notifications" not in existing:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("type", sa.String(length=30), nullable=True),
            sa.Column(
                "reference_type", sa.String(length=30), nullable=True,
                comment="training_request / approval",
            ),
            sa.Column("reference_id", sa.String(length=36), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=True),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_user_id", "notifications", ["user_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    for table in ("notifications", "approvals", "training_requests", "user_roles", "profiles"):
        if table in existing:
            op.drop_table(table)
