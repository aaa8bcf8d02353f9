from __future__ import annotations
import datetime
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class GoalType(str, Enum):
    WEIGHT = "weight"
    MEASUREMENT = "measurement"
    PERFORMANCE = "performance"


class StepsOrigin(str, Enum):
    MANUAL = "manual"
    DEVICE_SYNC = "device-sync"


BODY_DIMENSIONS = ("waist", "chest", "arms", "hips")


def _parse_date(value: str | datetime.date) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(value[:10])


def _parse_datetime(value: str | datetime.datetime | None) -> datetime.datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(value)


@dataclass(frozen=True)
class ActualSet:
    """One logged set: repetitions performed with a weight in kg."""

    reps: int
    weight: float

    def to_dict(self) -> dict:
        return {"reps": self.reps, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: dict) -> "ActualSet":
        return cls(int(data["reps"]), float(data["weight"]))


@dataclass
class Exercise:
    id: str
    name: str
    sets: int
    reps: int
    weight: Optional[float] = None
    instructions: str = ""
    actual_sets: list[ActualSet] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.sets <= 0:
            raise ValueError("sets must be positive")
        if self.reps <= 0:
            raise ValueError("reps must be positive")

    @property
    def is_partial(self) -> bool:
        return 0 < len(self.actual_sets) < self.sets

    @property
    def is_full(self) -> bool:
        return len(self.actual_sets) == self.sets

    def with_sets(self, actual_sets: list[ActualSet]) -> "Exercise":
        return replace(self, actual_sets=list(actual_sets))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sets": self.sets,
            "reps": self.reps,
            "weight": self.weight,
            "instructions": self.instructions,
            "actual_sets": [s.to_dict() for s in self.actual_sets],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Exercise":
        weight = data.get("weight")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            sets=int(data["sets"]),
            reps=int(data["reps"]),
            weight=float(weight) if weight is not None else None,
            instructions=data.get("instructions") or "",
            actual_sets=[ActualSet.from_dict(s) for s in data.get("actual_sets", [])],
        )


@dataclass
class Training:
    """A workout assigned to a trainee.

    Only ``exercises[*].actual_sets``, ``is_completed`` and ``completed_at``
    are changed by the session engine; everything else belongs to the
    trainer-facing system that authored the training.
    """

    id: str
    trainee_id: str
    name: str
    scheduled_date: datetime.date
    exercises: list[Exercise] = field(default_factory=list)
    description: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    notes: Optional[str] = None
    is_completed: bool = False
    completed_at: Optional[datetime.datetime] = None

    def exercise(self, exercise_id: str) -> Exercise:
        for ex in self.exercises:
            if ex.id == exercise_id:
                return ex
        raise KeyError(exercise_id)

    def with_exercise(self, updated: Exercise) -> "Training":
        exercises = [updated if ex.id == updated.id else ex for ex in self.exercises]
        return replace(self, exercises=exercises)

    def copy(self) -> "Training":
        return replace(
            self, exercises=[ex.with_sets(ex.actual_sets) for ex in self.exercises]
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trainee_id": self.trainee_id,
            "name": self.name,
            "description": self.description,
            "difficulty": self.difficulty.value,
            "scheduled_date": self.scheduled_date.isoformat(),
            "notes": self.notes,
            "is_completed": self.is_completed,
            "completed_at": (
                self.completed_at.isoformat(timespec="seconds")
                if self.completed_at
                else None
            ),
            "exercises": [ex.to_dict() for ex in self.exercises],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Training":
        return cls(
            id=str(data["id"]),
            trainee_id=str(data["trainee_id"]),
            name=data["name"],
            description=data.get("description") or "",
            difficulty=Difficulty(data.get("difficulty", "beginner")),
            scheduled_date=_parse_date(data["scheduled_date"]),
            notes=data.get("notes"),
            is_completed=bool(data.get("is_completed", False)),
            completed_at=_parse_datetime(data.get("completed_at")),
            exercises=[Exercise.from_dict(e) for e in data.get("exercises", [])],
        )


@dataclass
class Goal:
    id: str
    trainee_id: str
    goal_type: GoalType
    name: str
    current_value: float
    target_value: float
    unit: str
    deadline: datetime.date
    is_completed: bool = False

    @property
    def progress_percentage(self) -> float:
        if self.target_value == 0:
            return 0.0
        return self.current_value / self.target_value * 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trainee_id": self.trainee_id,
            "type": self.goal_type.value,
            "name": self.name,
            "current_value": self.current_value,
            "target_value": self.target_value,
            "unit": self.unit,
            "deadline": self.deadline.isoformat(),
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            id=str(data["id"]),
            trainee_id=str(data["trainee_id"]),
            goal_type=GoalType(data["type"]),
            name=data["name"],
            current_value=float(data["current_value"]),
            target_value=float(data["target_value"]),
            unit=data.get("unit", ""),
            deadline=_parse_date(data["deadline"]),
            is_completed=bool(data.get("is_completed", False)),
        )


@dataclass
class Measurement:
    trainee_id: str
    date: datetime.date
    weight: float
    body_measurements: dict[str, float] = field(default_factory=dict)
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trainee_id": self.trainee_id,
            "date": self.date.isoformat(),
            "weight": self.weight,
            "body_measurements": dict(self.body_measurements),
        }


@dataclass
class StepsEntry:
    trainee_id: str
    date: datetime.date
    steps: int
    origin: StepsOrigin = StepsOrigin.MANUAL
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trainee_id": self.trainee_id,
            "date": self.date.isoformat(),
            "steps": self.steps,
            "origin": self.origin.value,
        }


@dataclass(frozen=True)
class FoodItem:
    name: str
    calories: int

    def to_dict(self) -> dict:
        return {"name": self.name, "calories": self.calories}


@dataclass
class NutritionEntry:
    trainee_id: str
    date: datetime.date
    foods: list[FoodItem] = field(default_factory=list)
    id: Optional[int] = None

    @property
    def total_calories(self) -> int:
        return sum(f.calories for f in self.foods)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "trainee_id": self.trainee_id,
            "date": self.date.isoformat(),
            "foods": [f.to_dict() for f in self.foods],
            "total_calories": self.total_calories,
        }


@dataclass
class NutritionPlan:
    trainee_id: str
    name: str
    daily_calories: int


@dataclass
class HistoryRecord:
    """Performance of one exercise in one completed training."""

    trainee_id: str
    exercise_name: str
    date: datetime.date
    training_id: str
    completed_at: datetime.datetime
    actual_sets: list[ActualSet] = field(default_factory=list)

    @property
    def max_weight(self) -> float:
        return max((s.weight for s in self.actual_sets), default=0.0)

    @property
    def max_reps(self) -> int:
        return max((s.reps for s in self.actual_sets), default=0)

    @property
    def total_volume(self) -> float:
        return sum(s.weight * s.reps for s in self.actual_sets)

    @property
    def total_reps(self) -> int:
        return sum(s.reps for s in self.actual_sets)

    def to_dict(self) -> dict:
        return {
            "trainee_id": self.trainee_id,
            "exercise_name": self.exercise_name,
            "date": self.date.isoformat(),
            "training_id": self.training_id,
            "completed_at": self.completed_at.isoformat(timespec="seconds"),
            "actual_sets": [s.to_dict() for s in self.actual_sets],
        }
