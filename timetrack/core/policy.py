"""
Role based policy decisions used by the engine.
"""

from timetrack.database.database import Employee, EmployeeRole

#: Roles allowed to save overrides exceeding the clocked span (with a warning).
PRIVILEGED_ROLES = frozenset({EmployeeRole.TEAM_LEAD, EmployeeRole.COORDINATOR, EmployeeRole.ADMIN})


def can_override_beyond_span(actor_role: EmployeeRole | None) -> bool:
    """
    Check if an override may exceed the clocked span.

    Rules:
    - Team lead, coordinator, admin: yes, the caller gets a warning
    - Everyone else (or unknown actor): no, the write is rejected
    """
    return actor_role in PRIVILEGED_ROLES


def is_privileged(actor: Employee | None) -> bool:
    return actor is not None and actor.role in PRIVILEGED_ROLES
