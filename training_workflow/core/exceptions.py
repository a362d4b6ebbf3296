"""
Service-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Two families live here:
  - Generic service errors (NotFoundError, ValidationError, ConflictError)
  - Routing errors (WorkflowError subclasses) raised by the approval
    routing engine. They are surfaced to the caller as typed failures and
    never retried internally; retrying is the caller's decision.

Usage:
    from training_workflow.core.exceptions import NotFoundError, StaleApproval

    raise NotFoundError(resource="TrainingRequest", resource_id=request_id)
    raise StaleApproval(request_id, approval_id, status="approved")
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist.

    Args:
        resource: Human-readable model/entity name (e.g. "Approval").
        resource_id: The PK that was looked up.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Maps to HTTP 422 in blueprint error handlers.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate existing state. Maps to HTTP 409."""

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


# ── Routing errors ───────────────────────────────────────────────────────────


class WorkflowError(Exception):
    """Base class for approval routing failures.

    Args:
        message: Human-readable explanation.
        request_id: The training request the operation targeted.
    """

    def __init__(self, message: str, request_id: str | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)


class DirectoryUnavailable(WorkflowError):
    """The org directory / role lookup failed. Retryable by the caller.

    Raised instead of treating the failed lookup as "no approver", so a
    transient outage can never skip an approval level.
    """

    def __init__(self, operation: str, request_id: str | None = None) -> None:
        self.operation = operation
        super().__init__(f"Org directory unavailable during {operation}", request_id)


class NoApproverResolvable(WorkflowError):
    """No level of the chain has a resolvable approver for a simple-workflow
    self-submission. Nothing is persisted; the caller must assign an approver."""

    def __init__(self, request_id: str | None = None, employee_id: str | None = None) -> None:
        self.employee_id = employee_id
        super().__init__(
            f"No approver could be resolved for employee {employee_id}", request_id,
        )


class StaleApproval(WorkflowError):
    """A decision targeted an approval that is no longer pending, or a request
    that already reached a terminal state."""

    def __init__(
        self,
        request_id: str | None = None,
        approval_id: str | None = None,
        status: str | None = None,
    ) -> None:
        self.approval_id = approval_id
        self.status = status
        msg = f"Approval {approval_id} is no longer pending"
        if status:
            msg += f" (status={status})"
        super().__init__(msg, request_id)


class InvalidTransition(WorkflowError):
    """The decision's level does not match the request's current level."""

    def __init__(
        self,
        request_id: str | None = None,
        expected_level: int | None = None,
        actual_level: int | None = None,
    ) -> None:
        self.expected_level = expected_level
        self.actual_level = actual_level
        super().__init__(
            f"Decision for level {actual_level} does not match current level {expected_level}",
            request_id,
        )
