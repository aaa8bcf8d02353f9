import os
import sys
import asyncio
import datetime
import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from errors import HistoryLookupError
from models import ActualSet, Exercise, HistoryRecord, Training
from workout_engine import HistoryMatcher, PrefillRow


class FakeHistoryStore:
    def __init__(self, records: dict, failing: set | None = None, delay: float = 0.0):
        self.records = records
        self.failing = failing or set()
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def get_last(self, trainee_id, exercise_name):
        self.calls.append((trainee_id, exercise_name))
        await asyncio.sleep(self.delay)
        if exercise_name in self.failing:
            raise HistoryLookupError("database is locked")
        return self.records.get((trainee_id, exercise_name))


def record(name: str, weight: float) -> HistoryRecord:
    return HistoryRecord(
        "t",
        name,
        datetime.date(2024, 1, 1),
        "old",
        datetime.datetime(2024, 1, 1, 9, 0),
        [ActualSet(8, weight)],
    )


def training() -> Training:
    return Training(
        "t1",
        "t",
        "Push",
        datetime.date(2024, 1, 8),
        exercises=[
            Exercise("a", "Bench Press", 3, 8, weight=60.0, actual_sets=[ActualSet(8, 62.5)]),
            Exercise("b", "Dips", 2, 10),
        ],
    )


@pytest.mark.asyncio
async def test_exact_name_match():
    store = FakeHistoryStore({("t", "Bench Press"): record("Bench Press", 60.0)})
    matcher = HistoryMatcher(store)
    assert (await matcher.find_last_performance("t", "Bench Press")).max_weight == 60.0
    assert await matcher.find_last_performance("t", "bench press") is None
    assert await matcher.find_last_performance("other", "Bench Press") is None


@pytest.mark.asyncio
async def test_failure_reads_as_no_history():
    store = FakeHistoryStore(
        {("t", "Bench Press"): record("Bench Press", 60.0)}, failing={"Dips"}, delay=0.01
    )
    matcher = HistoryMatcher(store)
    found = await matcher.last_performances(training())
    assert found["Dips"] is None
    assert found["Bench Press"].max_weight == 60.0
    assert sorted(store.calls) == [("t", "Bench Press"), ("t", "Dips")]


def test_prefill_rows():
    rows = HistoryMatcher.prefill(training())
    assert rows["a"] == [
        PrefillRow("8", "62.5"),
        PrefillRow("", "60.0"),
        PrefillRow("", "60.0"),
    ]
    assert rows["b"] == [PrefillRow("", ""), PrefillRow("", "")]
