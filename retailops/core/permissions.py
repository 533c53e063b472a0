"""
Role permission tables
Each permission is a table covering every Role member; building a table that
misses a role fails at import time, so adding a role forces a review here.
"""
from retailops.models.user import Role


def _exhaustive(name: str, table: dict[Role, bool]) -> dict[Role, bool]:
    missing = [role.value for role in Role if role not in table]
    if missing:
        raise RuntimeError(f"Permission table {name} is missing roles: {missing}")
    return table


SCHEDULE_EDIT = _exhaustive("SCHEDULE_EDIT", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: True,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

# Manager/admin edits apply directly; assistant manager edits need approval
AUTO_APPROVE = _exhaustive("AUTO_APPROVE", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

LOCK_DAY = _exhaustive("LOCK_DAY", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: True,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

LOCK_WEEK = _exhaustive("LOCK_WEEK", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: False,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

APPROVE_WEEK = _exhaustive("APPROVE_WEEK", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

MANAGE_TARGETS = _exhaustive("MANAGE_TARGETS", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

# Role weights are one table shared by every boutique
MANAGE_ROLE_WEIGHTS = _exhaustive("MANAGE_ROLE_WEIGHTS", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: False,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

MANAGE_LEAVES = _exhaustive("MANAGE_LEAVES", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

MANAGE_LEDGER = _exhaustive("MANAGE_LEDGER", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: True,
    Role.MANAGER: True,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

EDIT_COVERAGE_RULES = _exhaustive("EDIT_COVERAGE_RULES", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: False,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

MANAGE_EMPLOYEES = _exhaustive("MANAGE_EMPLOYEES", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: False,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})

ADMIN_ROLES = _exhaustive("ADMIN_ROLES", {
    Role.EMPLOYEE: False,
    Role.ASSISTANT_MANAGER: False,
    Role.MANAGER: False,
    Role.ADMIN: True,
    Role.SUPER_ADMIN: True,
})


def _role(role: Role | str) -> Role:
    return role if isinstance(role, Role) else Role(role)


def can_edit_schedule(role: Role | str) -> bool:
    return SCHEDULE_EDIT[_role(role)]


def can_auto_approve(role: Role | str) -> bool:
    return AUTO_APPROVE[_role(role)]


def requires_approval(role: Role | str) -> bool:
    """Schedule edits by this role go through approval instead of applying directly"""
    return can_edit_schedule(role) and not can_auto_approve(role)


def can_lock_day(role: Role | str) -> bool:
    return LOCK_DAY[_role(role)]


def can_lock_week(role: Role | str) -> bool:
    return LOCK_WEEK[_role(role)]


def can_unlock_week(role: Role | str) -> bool:
    return LOCK_WEEK[_role(role)]


def can_approve_week(role: Role | str) -> bool:
    return APPROVE_WEEK[_role(role)]


def can_manage_targets(role: Role | str) -> bool:
    return MANAGE_TARGETS[_role(role)]


def can_manage_role_weights(role: Role | str) -> bool:
    return MANAGE_ROLE_WEIGHTS[_role(role)]


def can_manage_leaves(role: Role | str) -> bool:
    return MANAGE_LEAVES[_role(role)]


def can_manage_ledger(role: Role | str) -> bool:
    return MANAGE_LEDGER[_role(role)]


def can_edit_coverage_rules(role: Role | str) -> bool:
    return EDIT_COVERAGE_RULES[_role(role)]


def can_manage_employees(role: Role | str) -> bool:
    return MANAGE_EMPLOYEES[_role(role)]


def is_admin_role(role: Role | str) -> bool:
    return ADMIN_ROLES[_role(role)]
