"""
Training request approval routing.

Approval chain for abroad / high-cost training (extended workflow):
    Employee -> Manager (1) -> HRBP (2) -> L&D (3) -> CHRO (4)
Local / low-cost training (simple workflow) needs the Manager only.

Entry points:
    initialize_workflow  once per request, at creation
    process_decision     once per human approve / reject
    delegate_approval    hand a pending approval to another approver

Rules:
  - A nominator is credited with an auto-approval at their own level; the
    request is routed to the first level above it that has an approver.
  - Both entry points advance through ``_advance_or_finalize`` so the
    simple and extended chains cannot drift apart.
  - The request row is locked (SELECT ... FOR UPDATE) and the approval
    transition is a conditional UPDATE ... WHERE status = 'pending'. A
    decision that loses the race fails with StaleApproval.
  - db.session.commit() / rollback() happen only in this file. Any error
    rolls the whole operation back; no request is ever left half-routed.
  - Notifications are queued during the transaction and sent after commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update

from training_workflow.core.exceptions import (
    ConflictError,
    InvalidTransition,
    NoApproverResolvable,
    NotFoundError,
    StaleApproval,
    ValidationError,
    WorkflowError,
)
from training_workflow.core.levels import (
    FIRST_APPROVAL_LEVEL,
    TERMINAL_LEVEL,
    ApprovalLevel,
    effective_level,
    requires_extended_workflow,
    role_label,
    role_of,
)
from training_workflow.models import db
from training_workflow.models.training import DECISIONS, Approval, TrainingRequest
from training_workflow.services.chain import Route, walk
from training_workflow.services.directory import ApproverLocator, OrgDirectory
from training_workflow.services.notification import NotificationService, Outbox

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Private helpers ───────────────────────────────────────────────────────────


def _lock_request(request_id: str) -> TrainingRequest:
    """Load the request with a row lock held until commit / rollback."""
    req = db.session.execute(
        select(TrainingRequest)
        .where(TrainingRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if req is None:
        raise NotFoundError(resource="TrainingRequest", resource_id=request_id)
    return req


def _add_approval(
    req: TrainingRequest,
    approver_id: str,
    level: int,
    status: str,
    comments: str | None = None,
    auto: bool = False,
) -> Approval:
    approval = Approval(
        request_id=req.id,
        approver_id=approver_id,
        approval_level=int(level),
        approver_role=role_of(level),
        status=status,
        comments=comments,
        is_auto_approved=auto,
        decision_date=None if status == "pending" else _utcnow(),
    )
    db.session.add(approval)
    return approval


def _set_state(req: TrainingRequest, status: str, level: int | None, approver_id: str | None) -> None:
    req.status = status
    req.current_approval_level = level
    req.current_approver_id = approver_id


def _route(req: TrainingRequest, route: Route, course_name: str, outbox: Outbox) -> None:
    """Park the request at ``route.level`` with one fresh pending approval."""
    _add_approval(req, route.approver_id, route.level, "pending")
    _set_state(req, "pending", route.level, route.approver_id)
    outbox.add(
        route.approver_id,
        "Training Approval Required",
        f'A training request for "{course_name}" requires your approval.',
        type="approval_required",
        reference_id=req.id,
    )
    logger.info(
        "Training request %s routed to %s (level %d, %s)",
        req.id, route.approver_id, route.level, route.role,
        extra={
            "training_request_id": req.id,
            "approver_id": route.approver_id,
            "approval_level": route.level,
            "event_type": "approval_routed",
        },
    )


def _finalize(req: TrainingRequest, level: int, course_name: str, outbox: Outbox) -> None:
    _set_state(req, "approved", level, None)
    outbox.add(
        req.requester_id,
        "Training Request Approved",
        f'Your training request for "{course_name}" has been fully approved.',
        type="request_approved",
        reference_id=req.id,
    )
    logger.info(
        "Training request %s fully approved at level %d", req.id, level,
        extra={"training_request_id": req.id, "approval_level": level, "event_type": "request_approved"},
    )


def _advance_or_finalize(
    req: TrainingRequest,
    current_level: int,
    course_name: str,
    outbox: Outbox,
    locator: ApproverLocator,
) -> Route | None:
    """Move the request past ``current_level``: route to the next approver or finish.

    The simple workflow ends once the Manager level is approved; the
    extended one at CHRO. An exhausted chain finalises an extended request
    but is an error for a simple one (nobody would ever approve it).

    Returns:
        The Route taken, or None when the request was finalised.
    """
    if current_level >= TERMINAL_LEVEL or (
        not req.is_extended_workflow and current_level >= FIRST_APPROVAL_LEVEL
    ):
        _finalize(req, current_level, course_name, outbox)
        return None

    route = walk(current_level, req.requester_id, locator)
    if route.exhausted:
        if not req.is_extended_workflow:
            raise NoApproverResolvable(req.id, req.requester_id)
        # nobody left up to CHRO: the chain is complete at the terminal level
        _finalize(req, int(TERMINAL_LEVEL), course_name, outbox)
        return None

    _route(req, route, course_name, outbox)
    return route


def _ensure_pending(req: TrainingRequest, approval: Approval) -> None:
    if approval.status != "pending":
        raise StaleApproval(req.id, approval.id, approval.status)
    if req.status != "pending":
        raise StaleApproval(req.id, approval.id, req.status)


# ── Public API ────────────────────────────────────────────────────────────────


def initialize_workflow(
    nominator_id: str,
    employee_id: str,
    request_id: str,
    course_name: str | None = None,
    is_extended_workflow: bool | None = None,
    *,
    locator: ApproverLocator | None = None,
) -> dict:
    """Start the approval chain for a newly created training request.

    Args:
        nominator_id:   Who submitted the request (the employee, or a
                        manager/HRBP/... nominating them).
        employee_id:    The employee attending; must be the request's requester.
        request_id:     TrainingRequest PK.
        course_name:    Used in notification text; defaults to the request's.
        is_extended_workflow: Variant override. When None it is derived from
                        the request's training_location / cost_level.

    Returns:
        Serialised request with its approval records.

    Raises:
        NotFoundError:        Unknown request or nominator.
        ValidationError:      employee_id is not the request's requester.
        ConflictError:        The workflow was already initialised.
        NoApproverResolvable: Simple self-submission with nobody to approve.
        DirectoryUnavailable: Org directory lookup failed.
    """
    locator = locator or ApproverLocator()
    directory = locator.directory
    outbox = Outbox()

    try:
        req = _lock_request(request_id)
        if req.requester_id != employee_id:
            raise ValidationError(
                "employee_id does not match the training request's requester",
                details={"employee_id": employee_id},
            )
        if req.approvals or req.current_approver_id or req.is_terminal:
            raise ConflictError(resource="Workflow", field="request_id", value=request_id)
        if not directory.exists(nominator_id):
            raise NotFoundError(resource="Profile", resource_id=nominator_id)

        if is_extended_workflow is None:
            is_extended_workflow = requires_extended_workflow(req.training_location, req.cost_level)
        course_name = course_name or req.course_name

        req.is_extended_workflow = bool(is_extended_workflow)
        req.nominated_by_id = nominator_id
        req.submitted_at = _utcnow()

        nominator_level = effective_level(directory.roles_of(nominator_id))
        start_level = int(ApprovalLevel.EMPLOYEE)

        if nominator_level >= FIRST_APPROVAL_LEVEL:
            if req.is_extended_workflow:
                start_level = nominator_level
                comment = f"Auto-approved by {role_label(role_of(start_level))} nomination"
            else:
                # The simple chain ends at the Manager: credit that level only.
                start_level = int(FIRST_APPROVAL_LEVEL)
                comment = "Auto-approved - local/low-cost training"
            _add_approval(req, nominator_id, start_level, "approved", comment, auto=True)

        route = _advance_or_finalize(req, start_level, course_name, outbox, locator)

        if route is not None and req.is_extended_workflow and nominator_id != employee_id:
            outbox.add(
                employee_id,
                "Training Nomination",
                f'You have been nominated for "{course_name}". '
                f"Pending {role_label(route.role)} approval.",
                type="request_nominated",
                reference_id=req.id,
            )

        db.session.commit()
    except WorkflowError as exc:
        db.session.rollback()
        if exc.request_id is None:
            exc.request_id = request_id
        raise
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Workflow initialised for request %s (nominator level %d, %s)",
        request_id, nominator_level, "extended" if req.is_extended_workflow else "simple",
        extra={"training_request_id": request_id, "event_type": "workflow_initialised"},
    )
    NotificationService.dispatch(outbox)
    return req.to_dict(include_approvals=True)


def process_decision(
    approval_id: str,
    request_id: str,
    employee_id: str | None,
    current_level: int,
    decision: str,
    comments: str | None = "",
    course_name: str | None = None,
    is_extended_workflow: bool | None = None,
    decided_by: str | None = None,
    *,
    locator: ApproverLocator | None = None,
) -> dict:
    """Record an approve / reject decision and move the chain on.

    Rejection is terminal. Approval finalises the request at the end of its
    chain, otherwise routes it to the next level with an approver.

    Args:
        approval_id:    The pending Approval being decided.
        request_id:     Its TrainingRequest.
        employee_id:    Requester, cross-checked when given.
        current_level:  Level the caller believes it is deciding.
        decision:       "approved" | "rejected".
        comments:       Free text; forwarded verbatim on rejection.
        is_extended_workflow: Cross-checked against the variant fixed at
                        initialisation; never changes it.
        decided_by:     Caller identity; must be the assigned approver when given.

    Raises:
        NotFoundError:     Unknown approval or request.
        ValidationError:   Bad decision value or mismatched request data.
        StaleApproval:     The approval or request is no longer pending.
        InvalidTransition: current_level is not the request's current level.
        DirectoryUnavailable / NoApproverResolvable: see initialize_workflow.
    """
    if decision not in DECISIONS:
        raise ValidationError(f"decision must be one of {list(DECISIONS)}", details={"status": decision})

    locator = locator or ApproverLocator()
    outbox = Outbox()
    comments = comments or ""

    try:
        req = _lock_request(request_id)
        approval = db.session.get(Approval, approval_id)
        if approval is None:
            raise NotFoundError(resource="Approval", resource_id=approval_id)
        if approval.request_id != req.id:
            raise ValidationError(
                "Approval does not belong to this training request",
                details={"approval_id": approval_id, "request_id": request_id},
            )
        if employee_id is not None and employee_id != req.requester_id:
            raise ValidationError(
                "employee_id does not match the training request's requester",
                details={"employee_id": employee_id},
            )

        _ensure_pending(req, approval)

        if current_level != req.current_approval_level or current_level != approval.approval_level:
            raise InvalidTransition(req.id, req.current_approval_level, current_level)
        if is_extended_workflow is not None and bool(is_extended_workflow) != bool(req.is_extended_workflow):
            raise ValidationError(
                "Workflow variant cannot change after initialisation",
                details={"isExtendedWorkflow": is_extended_workflow},
            )
        if decided_by is not None and decided_by != approval.approver_id:
            raise ValidationError(
                "Only the assigned approver can decide this approval",
                details={"decided_by": decided_by},
            )

        result = db.session.execute(
            update(Approval)
            .where(Approval.id == approval.id, Approval.status == "pending")
            .values(status=decision, comments=comments, decision_date=_utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleApproval(req.id, approval.id)

        course_name = course_name or req.course_name
        if decision == "rejected":
            _set_state(req, "rejected", current_level, None)
            reason = f" Reason: {comments}" if comments else ""
            outbox.add(
                req.requester_id,
                "Training Request Rejected",
                f'Your training request for "{course_name}" has been rejected.{reason}',
                type="request_rejected",
                reference_id=req.id,
            )
            logger.info(
                "Training request %s rejected at level %d", req.id, current_level,
                extra={
                    "training_request_id": req.id,
                    "approval_id": approval.id,
                    "approval_level": current_level,
                    "event_type": "request_rejected",
                },
            )
        else:
            _advance_or_finalize(req, current_level, course_name, outbox, locator)

        db.session.commit()
    except WorkflowError as exc:
        db.session.rollback()
        if exc.request_id is None:
            exc.request_id = request_id
        raise
    except Exception:
        db.session.rollback()
        raise

    NotificationService.dispatch(outbox)
    return req.to_dict(include_approvals=True)


def delegate_approval(
    approval_id: str,
    delegate_to: str,
    delegated_by: str,
    comments: str | None = "",
    *,
    directory: OrgDirectory | None = None,
) -> dict:
    """Hand a pending approval to another approver at the same level.

    The delegator must be the currently assigned approver. The level does
    not change; only who decides it.

    Returns:
        The updated approval record.
    """
    directory = directory or OrgDirectory()
    outbox = Outbox()

    try:
        approval = db.session.get(Approval, approval_id)
        if approval is None:
            raise NotFoundError(resource="Approval", resource_id=approval_id)
        req = _lock_request(approval.request_id)
        _ensure_pending(req, approval)

        if delegated_by != approval.approver_id:
            raise ValidationError(
                "Only the assigned approver can delegate this approval",
                details={"delegated_by": delegated_by},
            )
        if delegate_to in (approval.approver_id, req.requester_id):
            raise ValidationError(
                "Approval cannot be delegated to the current approver or the requester",
                details={"delegate_to": delegate_to},
            )
        if not directory.exists(delegate_to):
            raise NotFoundError(resource="Profile", resource_id=delegate_to)

        result = db.session.execute(
            update(Approval)
            .where(
                Approval.id == approval.id,
                Approval.status == "pending",
                Approval.approver_id == delegated_by,
            )
            .values(
                approver_id=delegate_to,
                delegated_from=delegated_by,
                comments=f"Delegated: {comments or ''}".strip(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleApproval(req.id, approval.id)

        req.current_approver_id = delegate_to
        outbox.add(
            delegate_to,
            "Approval Delegated to You",
            "A training request approval has been delegated to you.",
            type="approval_required",
            reference_type="approval",
            reference_id=approval.id,
        )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "Approval %s delegated from %s to %s", approval_id, delegated_by, delegate_to,
        extra={"approval_id": approval_id, "approver_id": delegate_to, "event_type": "approval_delegated"},
    )
    NotificationService.dispatch(outbox)
    db.session.refresh(approval)
    return approval.to_dict()


# ── Queries ───────────────────────────────────────────────────────────────────


def list_pending_approvals(approver_id: str) -> list[dict]:
    """Pending approvals assigned to a user, oldest first."""
    rows = db.session.execute(
        select(Approval, TrainingRequest)
        .join(TrainingRequest, TrainingRequest.id == Approval.request_id)
        .where(Approval.approver_id == approver_id, Approval.status == "pending")
        .order_by(Approval.created_at, Approval.id)
    ).all()
    return [{**approval.to_dict(), "request": req.to_dict()} for approval, req in rows]


def get_request_approvals(request_id: str) -> dict:
    """A training request with its approval history in level order."""
    req = db.session.get(TrainingRequest, request_id)
    if req is None:
        raise NotFoundError(resource="TrainingRequest", resource_id=request_id)
    return req.to_dict(include_approvals=True)
