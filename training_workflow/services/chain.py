"""
Chain walking: find the next level that has a resolvable approver.

Levels without an approver on file (e.g. an entity with no HRBP) are
skipped so a request never stalls on an organisational gap. Levels are
only ever walked upwards and never past the terminal CHRO level.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from training_workflow.core.levels import TERMINAL_LEVEL, role_of

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Route:
    """Outcome of a walk. ``approver_id is None`` means the chain is exhausted."""

    approver_id: str | None
    level: int
    role: str | None

    @property
    def exhausted(self) -> bool:
        return self.approver_id is None


def walk(from_level: int, employee_id: str, locator) -> Route:
    """Return the first approver above ``from_level``.

    Args:
        from_level: Last level already approved (0 when nobody has approved).
        employee_id: The employee the training is for.
        locator: ApproverLocator used to resolve each level.

    Returns:
        Route(approver_id, level, role) for the first resolvable level, or
        Route(None, from_level + 1, None) when no level up to CHRO resolves.
        The exhausted level is capped at CHRO.

    Raises:
        DirectoryUnavailable: propagated from the locator.
    """
    for level in range(from_level + 1, int(TERMINAL_LEVEL) + 1):
        approver_id = locator.locate(level, employee_id)
        if approver_id:
            return Route(approver_id, level, role_of(level))
        logger.debug("No %s approver for employee %s, skipping level %d",
                     role_of(level), employee_id, level)

    return Route(None, min(from_level + 1, int(TERMINAL_LEVEL)), None)
