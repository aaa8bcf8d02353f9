from __future__ import annotations
import asyncio
import datetime
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Mapping, Optional, Protocol

from errors import (
    EmptyFieldError,
    NotFoundError,
    OutOfOrderSetError,
    StoreError,
    ValidationCode,
    ValidationError,
)
from models import ActualSet, Exercise, Training
from workout_engine import (
    ProgressCalculator,
    SessionMode,
    SessionState,
    SetValidator,
    resolve_mode,
    resume_position,
    session_state,
)

logger = logging.getLogger(__name__)

Rows = Iterable[tuple[Optional[str], Optional[str]]]


class TrainingStore(Protocol):
    async def get(self, training_id: str) -> Optional[Training]: ...

    async def upsert(self, training: Training) -> Training: ...


class HistoryWriter(Protocol):
    async def save(self, training: Training) -> object: ...


@dataclass(frozen=True)
class SetIssue:
    """One missing or invalid set, addressed by exercise and zero-based index."""

    exercise_id: str
    exercise_name: str
    set_index: int
    code: ValidationCode
    message: str

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "exercise_name": self.exercise_name,
            "set_index": self.set_index,
            "set_number": self.set_index + 1,
            "code": self.code.value,
            "message": self.message,
        }


@dataclass
class SessionResult:
    ok: bool
    training: Training
    issues: list[SetIssue] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def store_failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "issues": [i.to_dict() for i in self.issues],
            "error": self.error,
            "training": self.training.to_dict(),
        }


def _issue(exercise: Exercise, index: int, exc: ValidationError) -> SetIssue:
    return SetIssue(exercise.id, exercise.name, index, exc.code, str(exc))


class SessionController:
    """Drive one trainee's logging session over a single training.

    The controller owns a cached copy of the training. Validation and store
    failures are returned in a :class:`SessionResult` and leave the cached
    training as it was before the call. Unknown exercise ids raise
    :class:`NotFoundError`.
    """

    def __init__(
        self,
        training: Training,
        training_store: TrainingStore,
        history_store: HistoryWriter | None = None,
        preferred_mode: SessionMode | str | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self._training = training.copy()
        self.trainings = training_store
        self.history = history_store
        self.preferred_mode = SessionMode.parse(preferred_mode)
        self._clock = clock or datetime.datetime.now
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        training_store: TrainingStore,
        training_id: str,
        history_store: HistoryWriter | None = None,
        preferred_mode: SessionMode | str | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> "SessionController":
        training = await training_store.get(training_id)
        if training is None:
            raise NotFoundError(f"training {training_id} not found")
        return cls(training, training_store, history_store, preferred_mode, clock)

    @property
    def training(self) -> Training:
        return self._training.copy()

    @property
    def mode(self) -> SessionMode:
        return resolve_mode(self._training, self.preferred_mode)

    @property
    def state(self) -> SessionState:
        return session_state(self._training)

    @property
    def resume_position(self) -> Optional[tuple[int, int]]:
        return resume_position(self._training)

    def progress(self) -> dict:
        return ProgressCalculator.training_completion(self._training).to_dict()

    def _exercise(self, exercise_id: str) -> Exercise:
        try:
            return self._training.exercise(exercise_id)
        except KeyError:
            raise NotFoundError(f"exercise {exercise_id} not found")

    async def _persist(self, updated: Training) -> SessionResult:
        previous = self._training
        self._training = updated
        try:
            await self.trainings.upsert(updated)
        except StoreError as exc:
            logger.warning("saving training %s failed: %s", updated.id, exc)
            self._training = previous
            return SessionResult(False, previous.copy(), error=str(exc))
        return SessionResult(True, updated.copy())

    async def record_set(
        self,
        exercise_id: str,
        set_index: int,
        reps_text: str | None,
        weight_text: str | None,
        persist: bool = True,
    ) -> SessionResult:
        """Replace or append the set at ``set_index`` of one exercise.

        Indexes beyond the next free slot or the exercise's target fail with
        an out-of-order issue. With ``persist=False`` the edit stays in the
        cached training until the next persisted call.
        """
        async with self._lock:
            exercise = self._exercise(exercise_id)
            logged = len(exercise.actual_sets)
            if set_index < 0 or set_index >= exercise.sets:
                gap = OutOfOrderSetError(f"set {set_index + 1} is outside 1..{exercise.sets}")
                return SessionResult(False, self.training, [_issue(exercise, set_index, gap)])
            if set_index > logged:
                gap = OutOfOrderSetError(
                    f"set {set_index + 1} cannot be logged before set {logged + 1}"
                )
                return SessionResult(False, self.training, [_issue(exercise, set_index, gap)])
            try:
                parsed = SetValidator.validate(reps_text, weight_text)
            except ValidationError as exc:
                return SessionResult(
                    False, self.training, [_issue(exercise, set_index, exc)]
                )
            sets = list(exercise.actual_sets)
            if set_index == len(sets):
                sets.append(parsed)
            else:
                sets[set_index] = parsed
            updated = self._training.with_exercise(exercise.with_sets(sets))
            if not persist:
                self._training = updated
                return SessionResult(True, updated.copy())
            return await self._persist(updated)

    async def record_bulk(self, exercise_id: str, rows: Rows) -> SessionResult:
        """Autosave all rows of one exercise; incomplete rows are dropped.

        Rows for a completed training are validated strictly instead, so the
        training never loses sets it was completed with.
        """
        async with self._lock:
            updated, issues = self._apply({exercise_id: list(rows)})
            if issues:
                return SessionResult(False, self.training, issues)
            return await self._persist(updated)

    def _apply(
        self, pending: Mapping[str, Rows] | None
    ) -> tuple[Training, list[SetIssue]]:
        if self._training.is_completed:
            return self._collect_strict(pending)
        return self._apply_lenient(pending), []

    def _apply_lenient(self, pending: Mapping[str, Rows] | None) -> Training:
        training = self._training
        for exercise_id, rows in (pending or {}).items():
            exercise = self._exercise(exercise_id)
            sets = SetValidator.parse_rows(rows)[: exercise.sets]
            training = training.with_exercise(exercise.with_sets(sets))
        return training

    def _collect_strict(
        self, pending: Mapping[str, Rows] | None
    ) -> tuple[Training, list[SetIssue]]:
        pending = pending or {}
        for exercise_id in pending:
            self._exercise(exercise_id)
        issues: list[SetIssue] = []
        exercises: list[Exercise] = []
        for exercise in self._training.exercises:
            if exercise.id in pending:
                rows = list(pending[exercise.id])
                sets: list[ActualSet] = []
                for index in range(exercise.sets):
                    reps_text, weight_text = rows[index] if index < len(rows) else ("", "")
                    try:
                        sets.append(SetValidator.validate(reps_text, weight_text))
                    except ValidationError as exc:
                        issues.append(_issue(exercise, index, exc))
                exercises.append(exercise.with_sets(sets))
                continue
            for index, actual in enumerate(exercise.actual_sets):
                try:
                    SetValidator.check(actual)
                except ValidationError as exc:
                    issues.append(_issue(exercise, index, exc))
            for index in range(len(exercise.actual_sets), exercise.sets):
                issues.append(
                    _issue(exercise, index, EmptyFieldError(f"set {index + 1} is missing"))
                )
            exercises.append(exercise)
        return replace(self._training, exercises=exercises), issues

    async def complete(self, pending: Mapping[str, Rows] | None = None) -> SessionResult:
        """Mark the training completed once every target set is logged and valid.

        ``pending`` maps exercise ids to the full list of entered rows and
        replaces the logged sets of those exercises after strict validation.
        All outstanding issues are reported together.
        """
        async with self._lock:
            candidate, issues = self._collect_strict(pending)
            if issues:
                return SessionResult(False, self.training, issues)
            completed = replace(
                candidate.copy(), is_completed=True, completed_at=self._clock().replace(microsecond=0)
            )
            result = await self._persist(completed)
            if not result.ok:
                return result
            logger.info(
                "training %s completed by %s", completed.id, completed.trainee_id
            )
            if self.history is not None:
                try:
                    await self.history.save(completed)
                except StoreError as exc:
                    logger.warning(
                        "history for training %s not recorded: %s", completed.id, exc
                    )
            return result

    async def save_and_exit(self, pending: Mapping[str, Rows] | None = None) -> SessionResult:
        """Persist the current state, applying ``pending`` rows leniently.

        A completed training only accepts a full, valid set of rows.
        """
        async with self._lock:
            updated, issues = self._apply(pending)
            if issues:
                return SessionResult(False, self.training, issues)
            return await self._persist(updated)
