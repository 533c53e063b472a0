"""Tests for whole-SAR input validation and reconciliation rules."""
import pytest

from retailops.core.exceptions import ValidationError
from retailops.models.sales import SummaryStatus
from retailops.services.sales_ledger import (
    AMOUNT_NOT_INTEGER,
    AMOUNT_REQUIRED,
    can_lock,
    compute_diff,
    require_sar_integer,
    validate_sar_integer,
)


@pytest.mark.parametrize("value, expected", [(0, 0), (1500, 1500), (42.0, 42), ("  250 ", 250), ("007", 7)])
def test_accepts_whole_amounts(value, expected) -> None:
    checked = validate_sar_integer(value)
    assert checked.ok
    assert checked.value == expected


@pytest.mark.parametrize("value", [42.5, "42.5", -1, "-3", True, "1e3", "12 SAR"])
def test_rejects_non_integer_amounts(value) -> None:
    checked = validate_sar_integer(value)
    assert not checked.ok
    assert checked.error == AMOUNT_NOT_INTEGER


@pytest.mark.parametrize("value", [None, "", "   "])
def test_missing_amount(value) -> None:
    assert validate_sar_integer(value).error == AMOUNT_REQUIRED


def test_require_sar_integer_names_field() -> None:
    with pytest.raises(ValidationError) as exc:
        require_sar_integer("12.25", field="amount_sar")
    assert exc.value.field == "amount_sar"


def test_diff_sign_and_lockability() -> None:
    assert compute_diff(1000, 900) == 100
    assert compute_diff(900, 1000) == -100
    assert can_lock(0, SummaryStatus.DRAFT)
    assert not can_lock(0, SummaryStatus.LOCKED)
    assert not can_lock(1, SummaryStatus.DRAFT)
