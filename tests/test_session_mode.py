import os
import sys
import datetime

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from models import ActualSet, Exercise, Training
from workout_engine import (
    SessionMode,
    SessionState,
    resolve_mode,
    resume_position,
    session_state,
)


def make_training(*logged: int, sets: int = 3, completed: bool = False) -> Training:
    exercises = [
        Exercise(
            id=f"ex{i}",
            name=f"Exercise {i}",
            sets=sets,
            reps=10,
            actual_sets=[ActualSet(10, 40.0)] * n,
        )
        for i, n in enumerate(logged)
    ]
    return Training(
        id="t1",
        trainee_id="trainee",
        name="Legs",
        scheduled_date=datetime.date(2024, 1, 1),
        exercises=exercises,
        is_completed=completed,
    )


def test_completed_is_normal():
    assert resolve_mode(make_training(3, 3, completed=True), "bulk") is SessionMode.NORMAL


def test_partial_exercise_forces_normal():
    for logged in [(1,), (3, 2), (0, 1, 3), (2, 0)]:
        assert resolve_mode(make_training(*logged), "bulk") is SessionMode.NORMAL


def test_full_without_partial_is_bulk():
    assert resolve_mode(make_training(3, 3), "normal") is SessionMode.BULK
    # one exercise done, the other untouched
    assert resolve_mode(make_training(3, 0), "normal") is SessionMode.BULK


def test_untouched_follows_preference():
    assert resolve_mode(make_training(0, 0), "bulk") is SessionMode.BULK
    assert resolve_mode(make_training(0, 0), SessionMode.BULK) is SessionMode.BULK
    assert resolve_mode(make_training(0, 0), "normal") is SessionMode.NORMAL
    assert resolve_mode(make_training(0, 0), None) is SessionMode.NORMAL
    assert resolve_mode(make_training(0, 0), "sideways") is SessionMode.NORMAL
    assert resolve_mode(make_training(), "bulk") is SessionMode.BULK


def test_session_state():
    assert session_state(make_training(0, 0)) is SessionState.NOT_STARTED
    assert session_state(make_training(1, 0)) is SessionState.IN_PROGRESS
    assert session_state(make_training(3, 3, completed=True)) is SessionState.COMPLETED


def test_resume_position():
    assert resume_position(make_training(0, 0)) == (0, 0)
    assert resume_position(make_training(2, 0)) == (0, 2)
    assert resume_position(make_training(3, 0)) == (1, 0)
    assert resume_position(make_training(3, 1)) == (1, 1)
    assert resume_position(make_training(3, 3)) is None
    assert resume_position(make_training()) is None
