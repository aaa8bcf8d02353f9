from __future__ import annotations
import datetime
from typing import Dict, List, Optional

from db import (
    AsyncHistoryRepository,
    GoalRepository,
    MeasurementRepository,
    SettingsRepository,
)
from models import HistoryRecord, Measurement, Training
from workout_engine import ProgressCalculator, WeightConverter, format_day


class StatisticsService:
    """Compute trainee progress figures for display."""

    def __init__(
        self,
        measurement_repo: MeasurementRepository,
        goal_repo: GoalRepository,
        history_repo: AsyncHistoryRepository | None = None,
        settings_repo: SettingsRepository | None = None,
    ) -> None:
        self.measurements = measurement_repo
        self.goals = goal_repo
        self.history = history_repo
        self.settings = settings_repo

    def _unit(self) -> str:
        if self.settings is None:
            return "kg"
        return self.settings.get_text("weight_unit", "kg")

    @staticmethod
    def training_progress(training: Training) -> Dict[str, object]:
        overall = ProgressCalculator.training_completion(training)
        return {
            **overall.to_dict(),
            "exercises": [
                {
                    "id": ex.id,
                    "name": ex.name,
                    **ProgressCalculator.exercise_completion(ex).to_dict(),
                }
                for ex in training.exercises
            ],
        }

    def measurement_history(
        self, trainee_id: str, today: Optional[datetime.date] = None
    ) -> List[Dict[str, object]]:
        """Newest-first rows with day labels and the change from the prior entry."""
        unit = self._unit()
        entries = self.measurements.get_for_trainee(trainee_id)
        paired = ProgressCalculator.deltas(entries, lambda m: m.weight, lambda m: m.date)
        rows = [
            {
                "date": m.date.isoformat(),
                "label": format_day(m.date, today),
                "weight": WeightConverter.for_display(m.weight, unit),
                "delta": WeightConverter.for_display(delta, unit) if delta is not None else None,
                "unit": unit,
                "body_measurements": dict(m.body_measurements),
            }
            for m, delta in paired
        ]
        rows.reverse()
        return rows

    def weekly_averages(
        self, trainee_id: str, today: Optional[datetime.date] = None
    ) -> Dict[str, object]:
        entries: List[Measurement] = self.measurements.get_for_trainee(trainee_id)
        unit = self._unit()
        weight = ProgressCalculator.weekly_weight_average(entries, today)
        body = ProgressCalculator.weekly_body_averages(entries, today)
        return {
            "week_start": ProgressCalculator.week_start(today or datetime.date.today()).isoformat(),
            "unit": unit,
            "weight": (
                {
                    "average": WeightConverter.for_display(weight.value, unit),
                    "count": weight.count,
                }
                if weight
                else None
            ),
            "body": {
                key: {"average": round(avg.value, 2), "count": avg.count}
                for key, avg in body.items()
            },
        }

    def goal_progress(self, trainee_id: str) -> List[Dict[str, object]]:
        return [
            {
                **goal.to_dict(),
                "percentage": round(ProgressCalculator.goal_percentage(goal), 2),
                "label": ProgressCalculator.goal_label(goal),
            }
            for goal in self.goals.get_for_trainee(trainee_id)
        ]

    async def _previous_record(
        self, training: Training, exercise_name: str
    ) -> Optional[HistoryRecord]:
        if self.history is None:
            return None
        for record in await self.history.get_history(training.trainee_id, exercise_name):
            if record.training_id != training.id:
                return record
        return None

    async def training_report(self, training: Training) -> Dict[str, object]:
        """Compare a completed training with each exercise's previous performance."""
        if not training.is_completed:
            raise ValueError("training must be completed to build a report")
        comparisons = [
            ProgressCalculator.compare(ex, await self._previous_record(training, ex.name))
            for ex in training.exercises
            if ex.actual_sets
        ]
        return {
            "training_id": training.id,
            "training_name": training.name,
            "trainee_id": training.trainee_id,
            "completed_at": training.completed_at.isoformat(timespec="seconds")
            if training.completed_at
            else None,
            **ProgressCalculator.report(comparisons),
        }

    async def exercise_stats(self, trainee_id: str, exercise_name: str) -> Dict[str, object]:
        history = await self.history.get_history(trainee_id, exercise_name) if self.history else []
        if not history:
            return {
                "total_sessions": 0,
                "max_weight": 0.0,
                "max_reps": 0,
                "average_volume": 0.0,
                "last_performed": None,
                "first_performed": None,
            }
        return {
            "total_sessions": len(history),
            "max_weight": max(r.max_weight for r in history),
            "max_reps": max(r.max_reps for r in history),
            "average_volume": round(sum(r.total_volume for r in history) / len(history), 2),
            "last_performed": history[0].date.isoformat(),
            "first_performed": history[-1].date.isoformat(),
        }
