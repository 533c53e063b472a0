"""Tests for money formatting and role permission tables."""
import pytest

from retailops.core import permissions
from retailops.core.money import format_sar_from_halala, sar_to_halalas
from retailops.models.user import Role


def test_format_sar_from_halala() -> None:
    assert format_sar_from_halala(191950) == "1,919.50 SAR"
    assert format_sar_from_halala(5) == "0.05 SAR"
    assert format_sar_from_halala(-150) == "-1.50 SAR"


@pytest.mark.parametrize("value", [None, float("nan"), float("inf")])
def test_format_sar_placeholder(value) -> None:
    assert format_sar_from_halala(value) == "—"


def test_sar_to_halalas() -> None:
    assert sar_to_halalas(12) == 1200


@pytest.mark.parametrize(
    "table",
    [
        permissions.SCHEDULE_EDIT,
        permissions.AUTO_APPROVE,
        permissions.LOCK_DAY,
        permissions.LOCK_WEEK,
        permissions.APPROVE_WEEK,
        permissions.MANAGE_TARGETS,
        permissions.MANAGE_ROLE_WEIGHTS,
        permissions.MANAGE_LEAVES,
        permissions.MANAGE_LEDGER,
        permissions.EDIT_COVERAGE_RULES,
        permissions.MANAGE_EMPLOYEES,
        permissions.ADMIN_ROLES,
    ],
)
def test_permission_tables_cover_every_role(table) -> None:
    assert set(table) == set(Role)


def test_assistant_manager_edits_need_approval() -> None:
    assert permissions.requires_approval(Role.ASSISTANT_MANAGER)
    assert not permissions.requires_approval(Role.MANAGER)
    assert not permissions.requires_approval(Role.EMPLOYEE)


def test_week_locking_is_admin_only() -> None:
    assert not permissions.can_lock_week(Role.MANAGER)
    assert permissions.can_lock_week("ADMIN")
    assert permissions.can_lock_day(Role.ASSISTANT_MANAGER)


def test_role_weights_are_admin_only() -> None:
    assert permissions.can_manage_targets(Role.MANAGER)
    assert not permissions.can_manage_role_weights(Role.MANAGER)
    assert permissions.can_manage_role_weights(Role.SUPER_ADMIN)


def test_exhaustive_check_rejects_missing_role() -> None:
    with pytest.raises(RuntimeError):
        permissions._exhaustive("PARTIAL", {Role.ADMIN: True})
