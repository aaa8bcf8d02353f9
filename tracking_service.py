from __future__ import annotations
import datetime
import logging
from typing import Iterable, Optional

from db import (
    MeasurementRepository,
    NutritionRepository,
    SettingsRepository,
    StepsRepository,
)
from health_sync import HealthSyncClient
from models import FoodItem, Measurement, NutritionEntry, StepsEntry, StepsOrigin
from workout_engine import ProgressCalculator, WeightConverter

logger = logging.getLogger(__name__)


class TrackingService:
    """Daily trainee logs: body measurements, steps and meals."""

    def __init__(
        self,
        measurement_repo: MeasurementRepository,
        steps_repo: StepsRepository,
        nutrition_repo: NutritionRepository,
        settings_repo: SettingsRepository | None = None,
        health_sync: HealthSyncClient | None = None,
    ) -> None:
        self.measurements = measurement_repo
        self.steps = steps_repo
        self.nutrition = nutrition_repo
        self.settings = settings_repo
        self.health_sync = health_sync

    def log_measurement(
        self,
        trainee_id: str,
        weight: float,
        body_measurements: Optional[dict[str, float]] = None,
        unit: str | None = None,
        date: datetime.date | None = None,
    ) -> Measurement:
        unit = unit or (self.settings.get_text("weight_unit", "kg") if self.settings else "kg")
        kg = WeightConverter.to_storage(weight, unit)
        entry = self.measurements.upsert(trainee_id, kg, body_measurements, date)
        logger.debug("measurement stored for %s on %s", trainee_id, entry.date)
        return entry

    def log_steps(
        self, trainee_id: str, steps: int, date: datetime.date | None = None
    ) -> StepsEntry:
        return self.steps.log_manual(trainee_id, date, steps)

    def today_steps(
        self, trainee_id: str, today: datetime.date | None = None
    ) -> StepsEntry:
        """Manual entry for today if present, otherwise the device count."""
        today = today or datetime.date.today()
        entry = self.steps.get_today(trainee_id, today)
        if entry is not None and entry.origin is StepsOrigin.MANUAL:
            return entry
        synced = self.health_sync.get_today_steps(trainee_id) if self.health_sync else 0
        if synced > 0:
            return self.steps.record_sync(trainee_id, today, synced)
        if entry is not None:
            return entry
        return StepsEntry(trainee_id, today, 0, StepsOrigin.DEVICE_SYNC)

    def log_meal(
        self,
        trainee_id: str,
        foods: Iterable[FoodItem],
        date: datetime.date | None = None,
    ) -> NutritionEntry:
        return self.nutrition.log(trainee_id, date, foods)

    def daily_target(self, trainee_id: str) -> int:
        plan = self.nutrition.get_plan(trainee_id)
        if plan is not None:
            return plan.daily_calories
        if self.settings is not None:
            return self.settings.get_int("daily_calorie_target", 2000)
        return 2000

    def calorie_balance(
        self, trainee_id: str, date: datetime.date | None = None
    ) -> dict:
        entries = self.nutrition.get_for_day(trainee_id, date)
        consumed = sum(e.total_calories for e in entries)
        balance = ProgressCalculator.calorie_balance(self.daily_target(trainee_id), consumed)
        return {
            **balance.to_dict(),
            "date": (date or datetime.date.today()).isoformat(),
            "meals": [e.to_dict() for e in entries],
        }
