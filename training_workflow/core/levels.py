"""
Approval levels and the role <-> level mapping.

Chain for abroad / high-cost training:
    Employee (0) -> Manager (1) -> HRBP (2) -> L&D (3) -> CHRO (4)

Local / low-cost training stops after the Manager. Level 0 is a starting
point only; nobody approves at level 0. The tables below are read-only
views built at import time.
"""

from __future__ import annotations

from enum import IntEnum
from types import MappingProxyType
from typing import Iterable


class ApprovalLevel(IntEnum):
    EMPLOYEE = 0
    MANAGER = 1
    HRBP = 2
    L_AND_D = 3
    CHRO = 4


FIRST_APPROVAL_LEVEL = ApprovalLevel.MANAGER
TERMINAL_LEVEL = ApprovalLevel.CHRO

ROLE_TO_LEVEL = MappingProxyType({
    "employee": ApprovalLevel.EMPLOYEE,
    "manager": ApprovalLevel.MANAGER,
    "hrbp": ApprovalLevel.HRBP,
    "l_and_d": ApprovalLevel.L_AND_D,
    "chro": ApprovalLevel.CHRO,
    "admin": ApprovalLevel.CHRO,  # admin is aliased to the CHRO level
})

LEVEL_TO_ROLE = MappingProxyType({
    ApprovalLevel.MANAGER: "manager",
    ApprovalLevel.HRBP: "hrbp",
    ApprovalLevel.L_AND_D: "l_and_d",
    ApprovalLevel.CHRO: "chro",
})

ROLE_LABELS = MappingProxyType({
    "manager": "Manager",
    "hrbp": "HRBP",
    "l_and_d": "L&D",
    "chro": "CHRO",
})


def level_of(role: str | None) -> int:
    """Approval level for a role; unrecognised roles carry no elevation."""
    return int(ROLE_TO_LEVEL.get((role or "").lower(), ApprovalLevel.EMPLOYEE))


def role_of(level: int) -> str | None:
    return LEVEL_TO_ROLE.get(level)


def effective_level(roles: Iterable[str]) -> int:
    """Highest level among a set of roles (0 for an empty set).

    A user holding both ``hrbp`` and ``manager`` is treated as level 2.
    """
    return max((level_of(r) for r in roles), default=int(ApprovalLevel.EMPLOYEE))


def role_label(role: str | None) -> str:
    if not role:
        return ""
    return ROLE_LABELS.get(role, role.replace("_", " ").title())


def requires_extended_workflow(training_location: str | None, cost_level: str | None) -> bool:
    """Abroad or high-cost training runs the full Manager -> CHRO chain."""
    return training_location == "abroad" or cost_level == "high"
