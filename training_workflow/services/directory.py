"""
Org directory lookups and approver resolution.

``OrgDirectory`` is the read-only record-store boundary for profiles and
role assignments. ``ApproverLocator`` answers "who approves at level N for
this employee?" on top of it.

Rules:
  - Lookups never write.
  - A failing lookup raises DirectoryUnavailable. It is never downgraded to
    "no approver", which would silently skip a level.
  - Role lookups pick the lowest profile id so routing is deterministic.
"""

from __future__ import annotations

import functools
import logging

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from training_workflow.core.exceptions import DirectoryUnavailable
from training_workflow.core.levels import ApprovalLevel
from training_workflow.models import db
from training_workflow.models.directory import Profile, UserRole

logger = logging.getLogger(__name__)


def _directory_call(fn):
    """Translate record-store failures into DirectoryUnavailable."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("Directory lookup %s failed: %s", fn.__name__, exc)
            raise DirectoryUnavailable(fn.__name__) from exc

    return wrapper


class OrgDirectory:
    """Point lookups against the profiles / user_roles tables."""

    @_directory_call
    def exists(self, user_id: str) -> bool:
        return db.session.execute(
            select(Profile.id).where(Profile.id == user_id)
        ).scalar_one_or_none() is not None

    @_directory_call
    def roles_of(self, user_id: str) -> list[str]:
        return list(db.session.execute(
            select(UserRole.role).where(UserRole.user_id == user_id)
        ).scalars())

    @_directory_call
    def manager_of(self, user_id: str) -> str | None:
        return db.session.execute(
            select(Profile.manager_id).where(Profile.id == user_id)
        ).scalar_one_or_none()

    @_directory_call
    def entity_of(self, user_id: str) -> str | None:
        return db.session.execute(
            select(Profile.entity_id).where(Profile.id == user_id)
        ).scalar_one_or_none()

    @_directory_call
    def find_hrbp(self, entity_id: str, exclude: str | None = None) -> str | None:
        stmt = (
            select(UserRole.user_id)
            .join(Profile, Profile.id == UserRole.user_id)
            .where(UserRole.role == "hrbp", Profile.entity_id == entity_id)
        )
        return self._first(stmt, exclude)

    @_directory_call
    def find_any_hrbp(self, exclude: str | None = None) -> str | None:
        return self.find_by_role("hrbp", exclude=exclude)

    @_directory_call
    def find_by_role(self, role: str, exclude: str | None = None) -> str | None:
        stmt = select(UserRole.user_id).where(UserRole.role == role)
        return self._first(stmt, exclude)

    @staticmethod
    def _first(stmt, exclude):
        if exclude is not None:
            stmt = stmt.where(UserRole.user_id != exclude)
        return db.session.execute(
            stmt.order_by(UserRole.user_id).limit(1)
        ).scalar_one_or_none()


class ApproverLocator:
    """Resolve the concrete approver for one level of the chain.

    Args:
        directory: OrgDirectory (or a stand-in with the same methods).
        hrbp_fallback: When True, an employee whose entity has no HRBP is
            routed to any HRBP in the organisation. Defaults to the
            ``HRBP_SYSTEM_WIDE_FALLBACK`` config value.
    """

    def __init__(self, directory: OrgDirectory | None = None, hrbp_fallback: bool | None = None):
        self.directory = directory or OrgDirectory()
        if hrbp_fallback is None:
            hrbp_fallback = current_app.config.get("HRBP_SYSTEM_WIDE_FALLBACK", True)
        self.hrbp_fallback = hrbp_fallback

    def locate(self, level: int, employee_id: str) -> str | None:
        """Return the approver id for ``level``, or None if nobody holds it.

        The employee is never their own approver at any level.
        """
        if level == ApprovalLevel.MANAGER:
            manager_id = self.directory.manager_of(employee_id)
            return manager_id if manager_id != employee_id else None

        if level == ApprovalLevel.HRBP:
            return self._locate_hrbp(employee_id)

        if level == ApprovalLevel.L_AND_D:
            return self.directory.find_by_role("l_and_d", exclude=employee_id)

        if level == ApprovalLevel.CHRO:
            return self.directory.find_by_role("chro", exclude=employee_id)

        return None

    def _locate_hrbp(self, employee_id: str) -> str | None:
        entity_id = self.directory.entity_of(employee_id)
        if entity_id:
            hrbp_id = self.directory.find_hrbp(entity_id, exclude=employee_id)
            if hrbp_id:
                return hrbp_id

        if not self.hrbp_fallback:
            logger.debug("No HRBP for entity %s and fallback disabled", entity_id)
            return None

        hrbp_id = self.directory.find_any_hrbp(exclude=employee_id)
        if hrbp_id:
            logger.info(
                "HRBP fallback used for employee %s (entity %s) -> %s",
                employee_id, entity_id, hrbp_id,
                extra={"approver_id": hrbp_id, "event_type": "hrbp_fallback"},
            )
        return hrbp_id
