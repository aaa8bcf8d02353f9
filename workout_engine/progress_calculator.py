from __future__ import annotations
import datetime
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from models import ActualSet, Exercise, Goal, HistoryRecord, Measurement, Training

T = TypeVar("T")


@dataclass(frozen=True)
class Completion:
    completed: int
    total: int

    @property
    def ratio(self) -> float:
        return self.completed / self.total if self.total else 0.0

    @property
    def percent(self) -> int:
        return int(round(self.ratio * 100))

    @property
    def label(self) -> str:
        return f"{self.completed}/{self.total} sets"

    @property
    def percent_label(self) -> str:
        return f"{self.percent}%"

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "ratio": round(self.ratio, 4),
            "label": self.label,
            "percent": self.percent_label,
        }


@dataclass(frozen=True)
class WeeklyAverage:
    value: float
    count: int


@dataclass(frozen=True)
class CalorieBalance:
    target: int
    consumed: int

    @property
    def remaining(self) -> int:
        return self.target - self.consumed

    @property
    def is_over(self) -> bool:
        return self.consumed > self.target

    @property
    def magnitude(self) -> int:
        return abs(self.remaining)

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "consumed": self.consumed,
            "remaining": self.remaining,
            "over_target": self.is_over,
            "display": self.magnitude,
        }


@dataclass(frozen=True)
class PerformanceComparison:
    """Current sets of an exercise against its previous history record."""

    exercise_name: str
    current: tuple[ActualSet, ...]
    previous: Optional[HistoryRecord] = None

    @property
    def weight_progress(self) -> float:
        if self.previous is None or not self.current:
            return 0.0
        return max(s.weight for s in self.current) - self.previous.max_weight

    @property
    def reps_progress(self) -> int:
        if self.previous is None or not self.current:
            return 0
        return max(s.reps for s in self.current) - self.previous.max_reps

    @property
    def volume_progress(self) -> float:
        if self.previous is None or not self.current:
            return 0.0
        volume = sum(s.weight * s.reps for s in self.current)
        return volume - self.previous.total_volume

    @property
    def weight_progress_percentage(self) -> float:
        if self.previous is None or self.previous.max_weight == 0 or not self.current:
            return 0.0
        return self.weight_progress / self.previous.max_weight * 100

    @property
    def has_improved(self) -> bool:
        return (
            self.weight_progress > 0
            or self.reps_progress > 0
            or self.volume_progress > 0
        )

    @property
    def description(self) -> str:
        if self.previous is None:
            return "First time doing this exercise"
        parts: list[str] = []
        if self.weight_progress > 0:
            parts.append(f"{self.weight_progress:.1f}kg weight increase")
        elif self.weight_progress < 0:
            parts.append(f"{-self.weight_progress:.1f}kg weight decrease")
        if self.reps_progress > 0:
            parts.append(f"{self.reps_progress} more reps")
        elif self.reps_progress < 0:
            parts.append(f"{-self.reps_progress} fewer reps")
        if not parts:
            return "Performance maintained"
        return ", ".join(parts)

    def to_dict(self) -> dict:
        return {
            "exercise_name": self.exercise_name,
            "weight_progress": round(self.weight_progress, 2),
            "reps_progress": self.reps_progress,
            "volume_progress": round(self.volume_progress, 2),
            "weight_progress_percentage": round(self.weight_progress_percentage, 2),
            "has_improved": self.has_improved,
            "description": self.description,
        }


class ProgressCalculator:
    """Derived progress figures over already loaded entities."""

    @staticmethod
    def clamp(value: float, min_value: float, max_value: float) -> float:
        """Clamp ``value`` to the inclusive range [min_value, max_value]."""
        if min_value > max_value:
            raise ValueError("min_value must not exceed max_value")
        return max(min_value, min(value, max_value))

    @staticmethod
    def exercise_completion(exercise: Exercise) -> Completion:
        return Completion(len(exercise.actual_sets), exercise.sets)

    @staticmethod
    def training_completion(training: Training) -> Completion:
        completed = sum(len(ex.actual_sets) for ex in training.exercises)
        total = sum(ex.sets for ex in training.exercises)
        return Completion(completed, total)

    @classmethod
    def goal_percentage(cls, goal: Goal) -> float:
        return cls.clamp(goal.progress_percentage, 0.0, 100.0)

    @classmethod
    def goal_label(cls, goal: Goal) -> str:
        return f"{cls.goal_percentage(goal):.0f}%"

    @staticmethod
    def week_start(today: datetime.date) -> datetime.date:
        return today - datetime.timedelta(days=today.isoweekday() - 1)

    @classmethod
    def in_current_week(cls, day: datetime.date, today: datetime.date) -> bool:
        return cls.week_start(today) <= day <= today

    @classmethod
    def weekly_average(
        cls,
        entries: Iterable[T],
        value: Callable[[T], Optional[float]],
        date_of: Callable[[T], datetime.date],
        today: datetime.date | None = None,
    ) -> Optional[WeeklyAverage]:
        """Mean of ``value`` over entries dated Monday..today; ``None`` if empty."""
        today = today or datetime.date.today()
        values = [
            v
            for e in entries
            if cls.in_current_week(date_of(e), today)
            and (v := value(e)) is not None
        ]
        if not values:
            return None
        return WeeklyAverage(sum(values) / len(values), len(values))

    @classmethod
    def weekly_weight_average(
        cls, measurements: Iterable[Measurement], today: datetime.date | None = None
    ) -> Optional[WeeklyAverage]:
        return cls.weekly_average(
            measurements, lambda m: m.weight, lambda m: m.date, today
        )

    @classmethod
    def weekly_body_averages(
        cls, measurements: Iterable[Measurement], today: datetime.date | None = None
    ) -> dict[str, WeeklyAverage]:
        """Average each body dimension independently over the current week."""
        items = list(measurements)
        keys: list[str] = []
        for m in items:
            for key in m.body_measurements:
                if key not in keys:
                    keys.append(key)
        result: dict[str, WeeklyAverage] = {}
        for key in keys:
            avg = cls.weekly_average(
                items, lambda m, k=key: m.body_measurements.get(k), lambda m: m.date, today
            )
            if avg is not None:
                result[key] = avg
        return result

    @staticmethod
    def calorie_balance(daily_target: int, consumed_total: int) -> CalorieBalance:
        return CalorieBalance(int(daily_target), int(consumed_total))

    @staticmethod
    def deltas(
        entries: Sequence[T],
        value: Callable[[T], Optional[float]],
        date_of: Callable[[T], datetime.date],
    ) -> list[tuple[T, Optional[float]]]:
        """Pair each entry with its change from the chronologically previous one.

        Entries without a value for the metric are skipped and do not break
        the chain. Output is oldest first.
        """
        ordered = sorted(entries, key=date_of)
        result: list[tuple[T, Optional[float]]] = []
        previous: Optional[float] = None
        for entry in ordered:
            current = value(entry)
            if current is None:
                continue
            delta = None if previous is None else round(current - previous, 2)
            result.append((entry, delta))
            previous = current
        return result

    @staticmethod
    def compare(
        exercise: Exercise, previous: Optional[HistoryRecord]
    ) -> PerformanceComparison:
        return PerformanceComparison(exercise.name, tuple(exercise.actual_sets), previous)

    @staticmethod
    def report(comparisons: Sequence[PerformanceComparison]) -> dict:
        total = len(comparisons)
        improved = sum(1 for c in comparisons if c.has_improved)
        if improved == 0:
            summary = "Performance maintained across all exercises"
        elif improved == total:
            summary = "Improvement in all exercises!"
        else:
            summary = f"Improvement in {improved} out of {total} exercises"
        return {
            "exercises": [c.to_dict() for c in comparisons],
            "total_exercises": total,
            "exercises_with_improvement": improved,
            "improvement_percentage": round(improved / total * 100, 2) if total else 0.0,
            "total_volume_increase": round(sum(c.volume_progress for c in comparisons), 2),
            "summary": summary,
        }
