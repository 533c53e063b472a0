"""Tests for target allocation arithmetic and KPI percentages."""
import pytest

from retailops.core.exceptions import ValidationError
from retailops.models.employee import Employee, SalesTargetRole
from retailops.services.metrics import percent_of
from retailops.services.targets import (
    allocate_largest_remainder,
    effective_target_role,
    emp_id_sort_key,
    get_daily_target_for_day,
    position_to_sales_target_role,
)


def test_equal_weights_leftover_goes_to_lowest_id() -> None:
    shares = allocate_largest_remainder(100, {"1": 1, "2": 1, "3": 1})
    assert shares == {"1": 34, "2": 33, "3": 33}


def test_largest_remainder_wins_leftover() -> None:
    assert allocate_largest_remainder(10, {"a": 1, "b": 2}) == {"a": 3, "b": 7}


def test_tie_break_is_numeric_aware() -> None:
    shares = allocate_largest_remainder(2, {"10": 1, "9": 1, "2": 1})
    assert shares == {"10": 0, "9": 1, "2": 1}


def test_allocation_sums_exactly_with_fractional_weights() -> None:
    weights = {"1001": 0.5 * 29 / 31, "1002": 1.0, "1003": 1.5 * 21 / 31, "S-7": 0.75}
    shares = allocate_largest_remainder(1_234_567, weights)
    assert sum(shares.values()) == 1_234_567


def test_zero_weights_rejected() -> None:
    with pytest.raises(ValidationError):
        allocate_largest_remainder(100, {"1": 0, "2": 0})


def test_negative_total_rejected() -> None:
    with pytest.raises(ValidationError):
        allocate_largest_remainder(-1, {"1": 1})


def test_empty_weights_allocate_nothing() -> None:
    assert allocate_largest_remainder(100, {}) == {}


def test_daily_target_spreads_remainder_over_first_days() -> None:
    assert [get_daily_target_for_day(1000, 3, day) for day in (1, 2, 3)] == [334, 333, 333]
    assert sum(get_daily_target_for_day(100_000, 31, day) for day in range(1, 32)) == 100_000
    assert get_daily_target_for_day(1000, 30, 31) == 0


def test_position_mapping() -> None:
    assert position_to_sales_target_role("boutique_manager") == SalesTargetRole.MANAGER
    assert position_to_sales_target_role("SENIOR_SALES") == SalesTargetRole.SENIOR_SALES_ADVISOR
    assert position_to_sales_target_role("Cashier") == SalesTargetRole.SALES_ADVISOR
    assert position_to_sales_target_role(None) == SalesTargetRole.SALES_ADVISOR


def test_explicit_target_role_wins() -> None:
    employee = Employee(
        emp_id="7", name="Hind", boutique_id="B1", position="SALES",
        sales_target_role=SalesTargetRole.HIGH_JEWELLERY_EXPERT,
    )
    assert effective_target_role(employee) == SalesTargetRole.HIGH_JEWELLERY_EXPERT


def test_emp_id_sort_key_orders_numbers_first() -> None:
    assert sorted(["E2", "10", "9", "A1"], key=emp_id_sort_key) == ["9", "10", "A1", "E2"]


def test_percent_of_rounds_half_up() -> None:
    assert percent_of(5, 8) == 63
    assert percent_of(1, 3) == 33
    assert percent_of(100, 0) == 0
