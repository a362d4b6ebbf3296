"""
Training Approval Routing Service
Org directory domain model.

Models:
    - Profile: an identity known to the organisation (employee, manager, ...)
    - UserRole: one role held by a profile; a profile may hold several

The directory is read-only from the routing engine's point of view; it is
populated by HR integrations or the ``flask seed-directory`` command.
"""

import uuid
from datetime import datetime, timezone

from training_workflow.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ────────────────────────────────────────────────────────────────

VALID_ROLES = frozenset({
    "employee", "manager", "hrbp", "l_and_d", "chro", "admin",
    "finance", "committee",
})


class Profile(db.Model):
    """
    Directory entry for one identity.

    ``manager_id`` is the directly-assigned line manager (level 1 approver).
    ``entity_id`` scopes HRBP routing to the employee's legal entity.
    """

    __tablename__ = "profiles"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    full_name = db.Column(db.String(255), nullable=False, default="")
    email = db.Column(db.String(255), nullable=True, index=True)
    entity_id = db.Column(
        db.String(36), nullable=True, index=True,
        comment="Organisational entity the profile belongs to",
    )
    manager_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    roles = db.relationship(
        "UserRole", back_populates="profile", cascade="all, delete-orphan", lazy="selectin",
    )

    def to_dict(self):
        return {
            "id": self.id,
            "full_name": self.full_name,
            "email": self.email,
            "entity_id": self.entity_id,
            "manager_id": self.manager_id,
            "roles": sorted(r.role for r in self.roles),
        }

    def __repr__(self):
        return f"<Profile {self.id}: {self.full_name}>"


class UserRole(db.Model):
    """Role assignment. Effective approval level is derived from the set."""

    __tablename__ = "user_roles"
    __table_args__ = (
        db.UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),
        db.Index("idx_user_roles_role", "role"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(
        db.String(30), nullable=False,
        comment="employee | manager | hrbp | l_and_d | chro | admin | finance | committee",
    )
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    profile = db.relationship("Profile", back_populates="roles")

    def __repr__(self):
        return f"<UserRole {self.user_id}={self.role}>"
