import os
import sys
import asyncio
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from db import AsyncHistoryRepository, AsyncTrainingRepository
from errors import NotFoundError, StoreError, ValidationCode
from models import ActualSet, Exercise, Training
from session_service import SessionController
from workout_engine import SessionMode, SessionState, resolve_mode

NOW = datetime.datetime(2024, 1, 8, 18, 30, 0)


def two_by_three() -> Training:
    return Training(
        "t1",
        "trainee",
        "Pull",
        datetime.date(2024, 1, 8),
        exercises=[
            Exercise("row", "Barbell Row", 3, 10, weight=50.0),
            Exercise("curl", "Curl", 3, 12, weight=12.5),
        ],
    )


class FlakyStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.saved: list[Training] = []

    async def get(self, training_id):
        return self.saved[-1] if self.saved else None

    async def upsert(self, training):
        await asyncio.sleep(0)
        if self.fail:
            raise StoreError("disk I/O error")
        self.saved.append(training.copy())
        return training


class FailingHistory:
    async def save(self, training):
        raise StoreError("history table locked")


async def fill(controller: SessionController, count: int) -> None:
    done = 0
    for ex in controller.training.exercises:
        for i in range(ex.sets):
            if done == count:
                return
            result = await controller.record_set(ex.id, i, "10", "50")
            assert result.ok
            done += 1


@pytest.mark.asyncio
async def test_complete_requires_every_set(tmp_path):
    db_file = str(tmp_path / "trainee.db")
    trainings = AsyncTrainingRepository(db_file)
    history = AsyncHistoryRepository(db_file)
    await trainings.upsert(two_by_three())
    controller = await SessionController.open(
        trainings, "t1", history, "normal", clock=lambda: NOW
    )
    await fill(controller, 5)

    result = await controller.complete()
    assert not result.ok
    assert len(result.issues) == 1
    issue = result.issues[0]
    assert (issue.exercise_id, issue.set_index) == ("curl", 2)
    assert issue.code is ValidationCode.EMPTY_FIELD

    assert (await controller.record_set("curl", 2, "12", "12.5")).ok
    result = await controller.complete()
    assert result.ok
    assert result.training.is_completed
    assert result.training.completed_at == NOW
    stored = await trainings.get("t1")
    assert stored.is_completed
    assert resolve_mode(stored, "bulk") is SessionMode.NORMAL
    last = await history.get_last("trainee", "Curl")
    assert last.actual_sets[-1] == ActualSet(12, 12.5)
    assert last.date == NOW.date()


@pytest.mark.asyncio
async def test_record_set_rejects_gaps_and_bad_input():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store)
    result = await controller.record_set("row", 1, "10", "50")
    assert result.issues[0].code is ValidationCode.OUT_OF_ORDER_SET
    result = await controller.record_set("row", 3, "10", "50")
    assert result.issues[0].code is ValidationCode.OUT_OF_ORDER_SET
    result = await controller.record_set("row", 0, "10", "")
    assert result.issues[0].code is ValidationCode.EMPTY_FIELD
    assert store.saved == []
    assert controller.state is SessionState.NOT_STARTED
    with pytest.raises(NotFoundError):
        await controller.record_set("squat", 0, "5", "100")


@pytest.mark.asyncio
async def test_record_set_replaces_existing_index():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store)
    await controller.record_set("row", 0, "10", "50")
    await controller.record_set("row", 1, "9", "50")
    await controller.record_set("row", 0, "8", "55")
    sets = controller.training.exercise("row").actual_sets
    assert sets == [ActualSet(8, 55.0), ActualSet(9, 50.0)]
    assert len(store.saved) == 3
    assert controller.mode is SessionMode.NORMAL


@pytest.mark.asyncio
async def test_edits_are_applied_in_issue_order():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store)
    await controller.record_set("row", 0, "10", "50")
    await asyncio.gather(
        controller.record_set("row", 1, "8", "50"),
        controller.record_set("row", 1, "6", "50"),
    )
    assert store.saved[-1].exercise("row").actual_sets[1] == ActualSet(6, 50.0)


@pytest.mark.asyncio
async def test_deferred_edit_persists_on_save_and_exit():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store)
    result = await controller.record_set("row", 0, "10", "50", persist=False)
    assert result.ok
    assert store.saved == []
    result = await controller.save_and_exit({"curl": [("12", "10"), ("12", ""), ("", "")]})
    assert result.ok
    saved = store.saved[-1]
    assert saved.exercise("row").actual_sets == [ActualSet(10, 50.0)]
    assert saved.exercise("curl").actual_sets == [ActualSet(12, 10.0)]
    assert not saved.is_completed


@pytest.mark.asyncio
async def test_store_failure_restores_previous_state():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store)
    await controller.record_set("row", 0, "10", "50")
    store.fail = True
    result = await controller.record_set("row", 1, "10", "50")
    assert not result.ok
    assert result.store_failed
    assert controller.training.exercise("row").actual_sets == [ActualSet(10, 50.0)]
    result = await controller.save_and_exit()
    assert result.store_failed


@pytest.mark.asyncio
async def test_bulk_rows_and_strict_pending_completion():
    store = FlakyStore()
    controller = SessionController(two_by_three(), store, preferred_mode="bulk", clock=lambda: NOW)
    assert controller.mode is SessionMode.BULK
    result = await controller.record_bulk("row", [("10", "50"), ("", "50"), ("8", "50")])
    assert controller.training.exercise("row").actual_sets == [
        ActualSet(10, 50.0),
        ActualSet(8, 50.0),
    ]
    assert result.ok

    pending = {
        "row": [("10", "50"), ("10", "50"), ("0", "50")],
        "curl": [("12", "10"), ("12", "")],
    }
    result = await controller.complete(pending)
    assert not result.ok
    found = sorted((i.exercise_id, i.set_index, i.code) for i in result.issues)
    assert found == [
        ("curl", 1, ValidationCode.EMPTY_FIELD),
        ("curl", 2, ValidationCode.EMPTY_FIELD),
        ("row", 2, ValidationCode.INVALID_REPS),
    ]
    assert not controller.training.is_completed

    pending["row"][2] = ("9", "50")
    pending["curl"] = [("12", "10")] * 3
    result = await controller.complete(pending)
    assert result.ok
    assert store.saved[-1].is_completed


@pytest.mark.asyncio
async def test_history_failure_does_not_fail_completion():
    store = FlakyStore()
    done = two_by_three()
    for ex in done.exercises:
        ex.actual_sets = [ActualSet(10, 20.0)] * ex.sets
    controller = SessionController(done, store, FailingHistory(), clock=lambda: NOW)
    result = await controller.complete()
    assert result.ok
    assert store.saved[-1].completed_at == NOW


@pytest.mark.asyncio
async def test_editing_completed_training_keeps_it_completed():
    store = FlakyStore()
    done = two_by_three()
    for ex in done.exercises:
        ex.actual_sets = [ActualSet(10, 20.0)] * ex.sets
    done.is_completed = True
    done.completed_at = datetime.datetime(2024, 1, 1, 8, 0)
    controller = SessionController(done, store, clock=lambda: NOW)
    assert (await controller.record_set("row", 2, "12", "22.5")).ok
    assert controller.state is SessionState.COMPLETED
    result = await controller.complete()
    assert result.training.completed_at == NOW


@pytest.mark.asyncio
async def test_completed_training_rejects_incomplete_rows():
    store = FlakyStore()
    done = two_by_three()
    for ex in done.exercises:
        ex.actual_sets = [ActualSet(10, 20.0)] * ex.sets
    done.is_completed = True
    controller = SessionController(done, store, clock=lambda: NOW)

    result = await controller.record_bulk("row", [("10", "50"), ("", "")])
    assert not result.ok
    assert [(i.set_index, i.code) for i in result.issues] == [
        (1, ValidationCode.EMPTY_FIELD),
        (2, ValidationCode.EMPTY_FIELD),
    ]
    assert len(controller.training.exercise("row").actual_sets) == 3
    assert store.saved == []

    result = await controller.save_and_exit({"curl": [("12", "x")]})
    assert not result.ok
    assert result.issues[0].code is ValidationCode.INVALID_WEIGHT
    assert len(controller.training.exercise("curl").actual_sets) == 3

    rows = [("12", "22.5")] * 3
    result = await controller.record_bulk("row", rows)
    assert result.ok
    assert result.training.is_completed
    assert result.training.exercise("row").actual_sets == [ActualSet(12, 22.5)] * 3
