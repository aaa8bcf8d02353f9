import datetime
import logging
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Body, APIRouter
from pydantic import BaseModel, Field

from db import (
    AsyncHistoryRepository,
    AsyncTrainingRepository,
    GoalRepository,
    MeasurementRepository,
    NutritionRepository,
    SettingsRepository,
    StepsRepository,
)
from errors import NotFoundError, StoreError
from health_sync import HealthSyncClient
from models import FoodItem, Goal, Training
from session_service import SessionController, SessionResult
from stats_service import StatisticsService
from tracking_service import TrackingService
from workout_engine import HistoryMatcher, SessionMode

Text = Union[str, int, float, None]


class SetRow(BaseModel):
    reps: Text = None
    weight: Text = None

    def as_tuple(self) -> tuple[Optional[str], Optional[str]]:
        return _text(self.reps), _text(self.weight)


class PendingRows(BaseModel):
    exercises: Dict[str, List[SetRow]] = Field(default_factory=dict)

    def as_mapping(self) -> dict[str, list[tuple[Optional[str], Optional[str]]]]:
        return {ex_id: [r.as_tuple() for r in rows] for ex_id, rows in self.exercises.items()}


class MeasurementIn(BaseModel):
    weight: float
    body_measurements: Dict[str, float] = Field(default_factory=dict)
    unit: Optional[str] = None
    date: Optional[str] = None


class FoodIn(BaseModel):
    name: str
    calories: int


class MealIn(BaseModel):
    foods: List[FoodIn]
    date: Optional[str] = None


def _text(value: Text) -> Optional[str]:
    return None if value is None else str(value)


def _parse_date(value: Optional[str]) -> Optional[datetime.date]:
    if value is None:
        return None
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="date must be in YYYY-MM-DD format")


class TraineeAPI:
    """Provides REST endpoints for trainee workout sessions and daily logs."""

    def __init__(
        self,
        db_path: str = "trainee.db",
        yaml_path: str = "settings.yaml",
        health_sync: HealthSyncClient | None = None,
    ) -> None:
        self.db_path = db_path
        self.settings = SettingsRepository(db_path, yaml_path)
        self.trainings = AsyncTrainingRepository(db_path)
        self.history = AsyncHistoryRepository(db_path)
        self.measurements = MeasurementRepository(db_path)
        self.steps = StepsRepository(db_path)
        self.goals = GoalRepository(db_path)
        self.nutrition = NutritionRepository(db_path)
        self.health_sync = health_sync or HealthSyncClient.from_settings(self.settings)
        self.tracking = TrackingService(
            self.measurements,
            self.steps,
            self.nutrition,
            self.settings,
            self.health_sync,
        )
        self.statistics = StatisticsService(
            self.measurements,
            self.goals,
            self.history,
            self.settings,
        )
        self.matcher = HistoryMatcher(self.history)
        self._sessions: dict[str, SessionController] = {}
        self.app = FastAPI(
            title="Trainee API",
            description="REST API for trainee workout sessions and progress",
        )
        self._setup_routes()

    async def session(self, training_id: str, cache: bool = True) -> SessionController:
        """Return the live controller for a training, opening it on first use.

        Read-only callers pass ``cache=False`` so viewing a training does not
        keep a controller around.
        """
        preferred = self.settings.get_workout_mode()
        controller = self._sessions.get(training_id)
        if controller is None:
            opened = await SessionController.open(
                self.trainings, training_id, self.history, preferred
            )
            if not cache:
                return opened
            # another request may have opened the same training meanwhile
            controller = self._sessions.setdefault(training_id, opened)
        controller.preferred_mode = SessionMode.parse(preferred)
        return controller

    def _training_view(self, controller: SessionController) -> dict:
        position = controller.resume_position
        return {
            **controller.training.to_dict(),
            "mode": controller.mode.value,
            "state": controller.state.value,
            "progress": self.statistics.training_progress(controller.training),
            "resume_position": (
                {"exercise_index": position[0], "set_index": position[1]}
                if position
                else None
            ),
        }

    def _respond(self, controller: SessionController, result: SessionResult) -> dict:
        if result.store_failed:
            raise HTTPException(status_code=503, detail=result.error)
        if not result.ok:
            raise HTTPException(
                status_code=400,
                detail={"issues": [i.to_dict() for i in result.issues]},
            )
        return self._training_view(controller)

    def _setup_routes(self) -> None:
        trainings_router = APIRouter(prefix="/trainings", tags=["Trainings"])
        trainees_router = APIRouter(prefix="/trainees/{trainee_id}", tags=["Trainees"])

        @self.app.get("/health")
        def health():
            return {"status": "ok"}

        @self.app.get("/settings/workout_mode")
        def get_workout_mode():
            return {"workout_mode": self.settings.get_workout_mode()}

        @self.app.put("/settings/workout_mode")
        def set_workout_mode(mode: str):
            try:
                self.settings.set_workout_mode(mode)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"workout_mode": mode}

        @trainings_router.put("")
        async def upsert_training(data: Dict = Body(...)):
            try:
                training = Training.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                raise HTTPException(status_code=400, detail=f"invalid training: {e}")
            try:
                await self.trainings.upsert(training)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            self._sessions.pop(training.id, None)
            return {"id": training.id}

        @trainings_router.get("/{training_id}")
        async def get_training(training_id: str):
            try:
                controller = await self.session(training_id, cache=False)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return self._training_view(controller)

        @trainings_router.post("/{training_id}/exercises/{exercise_id}/sets/{set_index}")
        async def record_set(
            training_id: str,
            exercise_id: str,
            set_index: int,
            reps: str = "",
            weight: str = "",
            persist: bool = True,
        ):
            try:
                controller = await self.session(training_id)
                result = await controller.record_set(
                    exercise_id, set_index, reps, weight, persist=persist
                )
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return self._respond(controller, result)

        @trainings_router.put("/{training_id}/exercises/{exercise_id}/sets")
        async def record_bulk(training_id: str, exercise_id: str, rows: List[SetRow] = Body(...)):
            try:
                controller = await self.session(training_id)
                result = await controller.record_bulk(
                    exercise_id, [r.as_tuple() for r in rows]
                )
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return self._respond(controller, result)

        @trainings_router.post("/{training_id}/complete")
        async def complete_training(training_id: str, pending: Optional[PendingRows] = None):
            try:
                controller = await self.session(training_id)
                result = await controller.complete(
                    pending.as_mapping() if pending else None
                )
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            view = self._respond(controller, result)
            self._sessions.pop(training_id, None)
            return view

        @trainings_router.post("/{training_id}/save_and_exit")
        async def save_and_exit(training_id: str, pending: Optional[PendingRows] = None):
            try:
                controller = await self.session(training_id)
                result = await controller.save_and_exit(
                    pending.as_mapping() if pending else None
                )
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            view = self._respond(controller, result)
            self._sessions.pop(training_id, None)
            return view

        @trainings_router.get("/{training_id}/prefill")
        async def bulk_prefill(training_id: str):
            try:
                controller = await self.session(training_id, cache=False)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            training = controller.training
            last = await self.matcher.last_performances(training)
            rows = self.matcher.prefill(training)
            return [
                {
                    "exercise_id": ex.id,
                    "name": ex.name,
                    "rows": [r.to_dict() for r in rows[ex.id]],
                    "last_performance": (
                        last[ex.name].to_dict() if last.get(ex.name) else None
                    ),
                }
                for ex in training.exercises
            ]

        @trainings_router.get("/{training_id}/report")
        async def training_report(training_id: str):
            try:
                controller = await self.session(training_id, cache=False)
                return await self.statistics.training_report(controller.training)
            except NotFoundError as e:
                raise HTTPException(status_code=404, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        @trainees_router.get("/trainings")
        async def list_trainings(trainee_id: str):
            try:
                trainings = await self.trainings.get_for_trainee(trainee_id)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            preferred = self.settings.get_workout_mode()
            return [
                self._training_view(SessionController(t, self.trainings, preferred_mode=preferred))
                for t in trainings
            ]

        @trainees_router.get("/exercises/{exercise_name}/stats")
        async def exercise_stats(trainee_id: str, exercise_name: str):
            try:
                return await self.statistics.exercise_stats(trainee_id, exercise_name)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.post("/measurements")
        def log_measurement(trainee_id: str, entry: MeasurementIn):
            day = _parse_date(entry.date)
            try:
                m = self.tracking.log_measurement(
                    trainee_id, entry.weight, entry.body_measurements, entry.unit, day
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return m.to_dict()

        @trainees_router.get("/measurements")
        def list_measurements(trainee_id: str):
            try:
                return self.statistics.measurement_history(trainee_id)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.get("/measurements/weekly")
        def weekly_measurements(trainee_id: str):
            try:
                return self.statistics.weekly_averages(trainee_id)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.post("/steps")
        def log_steps(trainee_id: str, steps: int, date: str | None = None):
            day = _parse_date(date)
            try:
                return self.tracking.log_steps(trainee_id, steps, day).to_dict()
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.get("/steps/today")
        def today_steps(trainee_id: str):
            try:
                return self.tracking.today_steps(trainee_id).to_dict()
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.post("/nutrition")
        def log_meal(trainee_id: str, meal: MealIn):
            day = _parse_date(meal.date)
            try:
                entry = self.tracking.log_meal(
                    trainee_id, [FoodItem(f.name, f.calories) for f in meal.foods], day
                )
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return entry.to_dict()

        @trainees_router.get("/nutrition/today")
        def calorie_balance(trainee_id: str):
            try:
                return self.tracking.calorie_balance(trainee_id)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @trainees_router.put("/nutrition/plan")
        def upsert_plan(trainee_id: str, name: str, daily_calories: int):
            try:
                plan = self.nutrition.upsert_plan(trainee_id, name, daily_calories)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return {
                "trainee_id": plan.trainee_id,
                "name": plan.name,
                "daily_calories": plan.daily_calories,
            }

        @trainees_router.get("/goals")
        def list_goals(trainee_id: str):
            try:
                return self.statistics.goal_progress(trainee_id)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))

        @self.app.put("/goals")
        def upsert_goal(data: Dict = Body(...)):
            try:
                goal = Goal.from_dict(data)
            except (KeyError, TypeError, ValueError) as e:
                raise HTTPException(status_code=400, detail=f"invalid goal: {e}")
            try:
                self.goals.upsert(goal)
            except StoreError as e:
                raise HTTPException(status_code=503, detail=str(e))
            return {"id": goal.id}

        self.app.include_router(trainings_router)
        self.app.include_router(trainees_router)


api = TraineeAPI()
app = api.app

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=api.settings.get_text("log_level", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app)
