import os
import sys
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from errors import (
    EmptyFieldError,
    InvalidRepsError,
    InvalidWeightError,
    ValidationCode,
)
from models import ActualSet
from workout_engine import SetValidator


@pytest.mark.parametrize("reps,weight", [("", "50"), ("10", ""), ("  ", "50"), (None, "5")])
def test_blank_fields_are_empty(reps, weight):
    with pytest.raises(EmptyFieldError) as info:
        SetValidator.validate(reps, weight)
    assert info.value.code is ValidationCode.EMPTY_FIELD


@pytest.mark.parametrize("reps", ["0", "-3", "2.5", "abc"])
def test_invalid_reps(reps):
    with pytest.raises(InvalidRepsError):
        SetValidator.validate(reps, "50")


@pytest.mark.parametrize("weight", ["-1", "heavy", "nan", "inf"])
def test_invalid_weight(weight):
    with pytest.raises(InvalidWeightError):
        SetValidator.validate("10", weight)


def test_reps_checked_before_weight():
    with pytest.raises(InvalidRepsError):
        SetValidator.validate("0", "-1")


def test_valid_set():
    assert SetValidator.validate("10", "50") == ActualSet(10, 50.0)
    assert SetValidator.validate(" 8 ", "0") == ActualSet(8, 0.0)
    assert SetValidator.validate("5", "62.5") == ActualSet(5, 62.5)


def test_lenient_rows_drop_half_filled_and_invalid():
    rows = [("10", "50"), ("", "50"), ("8", ""), ("0", "40"), ("6", "55")]
    assert SetValidator.parse_rows(rows) == [ActualSet(10, 50.0), ActualSet(6, 55.0)]
    assert SetValidator.try_parse("7", "") is None


def test_check_stored_set():
    SetValidator.check(ActualSet(5, 20.0))
    with pytest.raises(InvalidRepsError):
        SetValidator.check(ActualSet(0, 20.0))
    with pytest.raises(InvalidWeightError):
        SetValidator.check(ActualSet(5, -2.0))
