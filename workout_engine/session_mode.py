from __future__ import annotations
from enum import Enum
from typing import Optional

from models import Training


class SessionMode(str, Enum):
    NORMAL = "normal"
    BULK = "bulk"

    @classmethod
    def parse(
        cls, value: str | None, default: Optional["SessionMode"] = None
    ) -> "SessionMode":
        default = default or cls.NORMAL
        if isinstance(value, cls):
            return value
        if value is None:
            return default
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


class SessionState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def resolve_mode(
    training: Training, preferred: SessionMode | str | None = None
) -> SessionMode:
    """Derive the logging mode of ``training`` from its recorded sets.

    Completed trainings and trainings with a partially logged exercise are
    resumed set by set. Otherwise any logged set means the sets were entered
    together. Untouched trainings follow the trainee's preference.
    """
    if training.is_completed:
        return SessionMode.NORMAL
    if any(ex.is_partial for ex in training.exercises):
        return SessionMode.NORMAL
    # also true when one exercise is full and the rest untouched
    if any(ex.actual_sets for ex in training.exercises):
        return SessionMode.BULK
    return SessionMode.parse(preferred)


def session_state(training: Training) -> SessionState:
    if training.is_completed:
        return SessionState.COMPLETED
    if any(ex.actual_sets for ex in training.exercises):
        return SessionState.IN_PROGRESS
    return SessionState.NOT_STARTED


def resume_position(training: Training) -> Optional[tuple[int, int]]:
    """Return ``(exercise_index, set_index)`` for the next set in normal mode.

    ``None`` means nothing is left to log.
    """
    if training.is_completed or not training.exercises:
        return None
    exercise_index = 0
    set_index = 0
    for i, ex in enumerate(training.exercises):
        if ex.actual_sets:
            exercise_index = i
            set_index = len(ex.actual_sets)
    if set_index >= training.exercises[exercise_index].sets:
        if exercise_index + 1 >= len(training.exercises):
            return None
        return exercise_index + 1, 0
    return exercise_index, set_index
