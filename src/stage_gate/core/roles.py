"""
Operator roles for Stage Gate.

Roles are plain labels selected by the operator; there is no authentication
behind them. SYSTEM_ADMIN is the administrator role and satisfies every
role check in every stage.
"""

from __future__ import annotations

import re
from enum import Enum


class Role(str, Enum):
    """
    Role labels available to an operator.

    The enum value is the display label shown on stage screens.
    """
    SYSTEM_ADMIN = "System Admin"
    ENGINEERING = "Design / Engineering"
    STORES = "Stores / Incoming QC"
    OPERATOR = "Production Operator"
    QA_ENGINEER = "QA Engineer"
    SUPERVISOR = "Supervisor"
    MANAGEMENT = "Management / Auditor"
    PROCUREMENT = "Commercial / Procurement"
    PLANNER = "Production Planner"
    LOGISTICS = "Logistics / Dispatch"
    SERVICE = "Service / Support"
    SUSTAINABILITY = "Sustainability / ESG"
    COMPLIANCE = "Compliance / Regulatory"

    @property
    def is_admin(self) -> bool:
        """Check if this is the administrator role."""
        return self is Role.SYSTEM_ADMIN

    @classmethod
    def parse(cls, text: str | Role) -> Role:
        """
        Resolve a role from a label, a member name, or a unique prefix of either.

        Matching is case-insensitive. "qa" resolves to QA_ENGINEER, "admin" to SYSTEM_ADMIN,
        "Design / Engineering" and "engineering" both resolve to ENGINEERING.

        Args:
            text: Role label, member name, or prefix

        Returns:
            The matching Role

        Raises:
            ValueError: If nothing matches or the prefix is ambiguous
        """
        if isinstance(text, Role):
            return text

        needle = text.strip().lower().replace("-", "_")
        if not needle:
            raise ValueError("Role must not be empty")

        for role in cls:
            if needle in (role.value.lower(), role.name.lower()):
                return role

        matches = [
            role for role in cls
            if role.name.lower().startswith(needle)
            or role.value.lower().startswith(needle)
            or any(word.startswith(needle) for word in re.split(r"[\s/]+", role.value.lower()))
        ]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise ValueError(f"Unknown role: {text!r}")
        names = ", ".join(sorted(m.name for m in matches))
        raise ValueError(f"Ambiguous role {text!r}: matches {names}")


ADMIN_ROLE = Role.SYSTEM_ADMIN
