"""
Training Approval Routing Service
Training request & approval domain model.

Models:
    - TrainingRequest: the routed artifact; owned by the surrounding
      application, mutated only by the workflow service
    - Approval: append-only per-level approval record

Invariants maintained by ``training_workflow.services.workflow_service``:
    - status == "pending"  <=>  current_approver_id is not None
    - at most one Approval per request is pending at any time
    - one Approval per (request, level); levels strictly increase
"""

import uuid
from datetime import datetime, timezone

from training_workflow.models import db


def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


# ── Constants ────────────────────────────────────────────────────────────────

REQUEST_STATUSES = {"draft", "pending", "approved", "rejected", "cancelled", "completed"}
TERMINAL_REQUEST_STATUSES = {"approved", "rejected", "cancelled", "completed"}

APPROVAL_STATUSES = {"pending", "approved", "rejected"}
DECISIONS = ("approved", "rejected")

TRAINING_LOCATIONS = {"local", "abroad"}
COST_LEVELS = {"low", "medium", "high"}


class TrainingRequest(db.Model):
    """A request for an employee to attend a training course."""

    __tablename__ = "training_requests"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_number = db.Column(db.String(30), nullable=True, unique=True)
    requester_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="The employee who will attend the training",
    )
    nominated_by_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        comment="Who submitted the request; equals requester_id for self-submissions",
    )
    course_name = db.Column(db.String(300), nullable=False, default="")
    training_location = db.Column(db.String(20), nullable=False, default="local")
    cost_level = db.Column(db.String(20), nullable=False, default="low")

    is_extended_workflow = db.Column(
        db.Boolean, nullable=True,
        comment="Fixed at workflow initialisation; NULL until then",
    )
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    current_approval_level = db.Column(db.Integer, nullable=True)
    current_approver_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    approvals = db.relationship(
        "Approval",
        back_populates="request",
        order_by="Approval.approval_level",
        lazy="selectin",
    )

    @property
    def is_terminal(self):
        return self.status in TERMINAL_REQUEST_STATUSES

    def to_dict(self, include_approvals=False):
        d = {
            "id": self.id,
            "request_number": self.request_number,
            "requester_id": self.requester_id,
            "nominated_by_id": self.nominated_by_id,
            "course_name": self.course_name,
            "training_location": self.training_location,
            "cost_level": self.cost_level,
            "is_extended_workflow": self.is_extended_workflow,
            "status": self.status,
            "current_approval_level": self.current_approval_level,
            "current_approver_id": self.current_approver_id,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_approvals:
            d["approvals"] = [a.to_dict() for a in self.approvals]
        return d

    def __repr__(self):
        return f"<TrainingRequest {self.id}: {self.status}>"


class Approval(db.Model):
    """
    One approval step for a training request.

    Created either auto-approved (nominator credited at their own level) or
    pending a human decision. A decided record is never re-opened and
    records are never deleted.
    """

    __tablename__ = "approvals"
    __table_args__ = (
        db.UniqueConstraint("request_id", "approval_level", name="uq_approvals_request_level"),
        db.Index("idx_approvals_approver_status", "approver_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    request_id = db.Column(
        db.String(36),
        db.ForeignKey("training_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    approver_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    approval_level = db.Column(db.Integer, nullable=False)
    approver_role = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(20), nullable=False, default="pending")
    comments = db.Column(db.Text, nullable=True)
    decision_date = db.Column(db.DateTime(timezone=True), nullable=True)
    delegated_from = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_auto_approved = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    request = db.relationship("TrainingRequest", back_populates="approvals")

    def to_dict(self):
        return {
            "id": self.id,
            "request_id": self.request_id,
            "approver_id": self.approver_id,
            "approval_level": self.approval_level,
            "approver_role": self.approver_role,
            "status": self.status,
            "comments": self.comments,
            "decision_date": self.decision_date.isoformat() if self.decision_date else None,
            "delegated_from": self.delegated_from,
            "is_auto_approved": self.is_auto_approved,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Approval {self.request_id} L{self.approval_level}: {self.status}>"
