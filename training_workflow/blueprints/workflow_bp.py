"""
Training Approval Workflow Blueprint.

Routes:
  POST   /workflows/initialize                 – start the chain for a new request
  POST   /workflows/decisions                  – approve / reject the pending step
  POST   /approvals/<aid>/delegate             – hand a pending step to someone else
  GET    /approvals/pending?approver_id=       – an approver's inbox
  GET    /training-requests/<rid>/approvals    – request + approval history

Payload keys are camelCase, matching the surrounding application.
The service layer owns all business rules and commits; this module only
parses input and maps exceptions to HTTP responses.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from training_workflow.core.exceptions import (
    ConflictError,
    DirectoryUnavailable,
    InvalidTransition,
    NoApproverResolvable,
    NotFoundError,
    StaleApproval,
    ValidationError,
)
from training_workflow.services import workflow_service as wfs
from training_workflow.utils.errors import E, api_error

logger = logging.getLogger(__name__)

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api/v1")


# ── helpers ──────────────────────────────────────────────────────────────

def _current_user():
    """Caller identity resolved upstream (no auth enforcement here)."""
    return (
        request.headers.get("X-User", "")
        or request.headers.get("X-Forwarded-User", "")
        or None
    )


def _missing(data, *fields):
    return [f for f in fields if data.get(f) in (None, "")]


def _optional_bool(data, key):
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value, None
    return None, api_error(E.VALIDATION_INVALID, f"{key} must be a boolean")


# ── Error handlers ───────────────────────────────────────────────────────


@workflow_bp.errorhandler(NotFoundError)
def _handle_not_found(error: NotFoundError):
    return api_error(E.NOT_FOUND, str(error))


@workflow_bp.errorhandler(ValidationError)
def _handle_validation(error: ValidationError):
    return api_error(E.VALIDATION_RULE, str(error), details=error.details)


@workflow_bp.errorhandler(ConflictError)
def _handle_conflict(error: ConflictError):
    return api_error(E.CONFLICT_DUPLICATE, str(error))


@workflow_bp.errorhandler(StaleApproval)
def _handle_stale(error: StaleApproval):
    return api_error(
        E.STALE_APPROVAL, str(error),
        details={"approval_id": error.approval_id, "request_id": error.request_id},
    )


@workflow_bp.errorhandler(InvalidTransition)
def _handle_invalid_transition(error: InvalidTransition):
    return api_error(
        E.INVALID_TRANSITION, str(error),
        details={"expected_level": error.expected_level, "actual_level": error.actual_level},
    )


@workflow_bp.errorhandler(NoApproverResolvable)
def _handle_no_approver(error: NoApproverResolvable):
    return api_error(
        E.NO_APPROVER, str(error),
        details={"request_id": error.request_id, "employee_id": error.employee_id},
    )


@workflow_bp.errorhandler(DirectoryUnavailable)
def _handle_directory_unavailable(error: DirectoryUnavailable):
    logger.warning("Directory unavailable: %s", error,
                   extra={"training_request_id": error.request_id})
    return api_error(E.DIRECTORY_UNAVAILABLE, "Org directory unavailable, retry later")


@workflow_bp.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    if isinstance(error, HTTPException):
        return error
    logger.exception("Unexpected error in workflow_bp endpoint=%s", request.endpoint)
    return api_error(E.INTERNAL, "Internal server error")


# ═════════════════════════════════════════════════════════════════════════════
# INITIALISE / DECIDE / DELEGATE
# ═════════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/workflows/initialize", methods=["POST"])
def initialize_workflow():
    """Start the approval chain for a freshly created training request.

    Body: { nominatorId, employeeId, requestId, courseName?, isExtendedWorkflow? }
    """
    data = request.get_json(silent=True) or {}
    missing = _missing(data, "nominatorId", "employeeId", "requestId")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    is_extended, err = _optional_bool(data, "isExtendedWorkflow")
    if err:
        return err

    result = wfs.initialize_workflow(
        nominator_id=data["nominatorId"],
        employee_id=data["employeeId"],
        request_id=data["requestId"],
        course_name=data.get("courseName"),
        is_extended_workflow=is_extended,
    )
    return jsonify(result)


@workflow_bp.route("/workflows/decisions", methods=["POST"])
def process_decision():
    """Approve or reject the request's pending approval.

    Body: { approvalId, requestId, employeeId, courseName?, currentLevel,
            status: "approved"|"rejected", comments?, isExtendedWorkflow? }
    """
    data = request.get_json(silent=True) or {}
    missing = _missing(data, "approvalId", "requestId", "currentLevel", "status")
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")

    current_level = data["currentLevel"]
    if isinstance(current_level, bool) or not isinstance(current_level, int):
        return api_error(E.VALIDATION_INVALID, "currentLevel must be an integer")
    if data["status"] not in ("approved", "rejected"):
        return api_error(E.VALIDATION_INVALID, "status must be 'approved' or 'rejected'")
    is_extended, err = _optional_bool(data, "isExtendedWorkflow")
    if err:
        return err

    result = wfs.process_decision(
        approval_id=data["approvalId"],
        request_id=data["requestId"],
        employee_id=data.get("employeeId"),
        current_level=current_level,
        decision=data["status"],
        comments=data.get("comments", ""),
        course_name=data.get("courseName"),
        is_extended_workflow=is_extended,
        decided_by=_current_user(),
    )
    return jsonify(result)


@workflow_bp.route("/approvals/<aid>/delegate", methods=["POST"])
def delegate_approval(aid):
    """Delegate a pending approval.

    Body: { delegateTo, comments?, delegatedBy? }  (delegator defaults to X-User)
    """
    data = request.get_json(silent=True) or {}
    delegated_by = _current_user() or data.get("delegatedBy")
    if not data.get("delegateTo") or not delegated_by:
        return api_error(E.VALIDATION_REQUIRED, "delegateTo and delegator identity are required")

    result = wfs.delegate_approval(
        approval_id=aid,
        delegate_to=data["delegateTo"],
        delegated_by=delegated_by,
        comments=data.get("comments", ""),
    )
    return jsonify(result)


# ═════════════════════════════════════════════════════════════════════════════
# QUERIES
# ═════════════════════════════════════════════════════════════════════════════

@workflow_bp.route("/approvals/pending", methods=["GET"])
def pending_approvals():
    """List pending approvals assigned to an approver."""
    approver_id = request.args.get("approver_id") or _current_user()
    if not approver_id:
        return api_error(E.VALIDATION_REQUIRED, "approver_id query parameter is required")
    return jsonify(wfs.list_pending_approvals(approver_id))


@workflow_bp.route("/training-requests/<rid>/approvals", methods=["GET"])
def request_approvals(rid):
    """Get a training request's routing state and approval history."""
    return jsonify(wfs.get_request_approvals(rid))
