from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from models import HistoryRecord, Training

logger = logging.getLogger(__name__)


class HistoryStore(Protocol):
    async def get_last(
        self, trainee_id: str, exercise_name: str
    ) -> Optional[HistoryRecord]: ...


@dataclass(frozen=True)
class PrefillRow:
    reps: str
    weight: str

    def to_dict(self) -> dict:
        return {"reps": self.reps, "weight": self.weight}


def _number_text(value: float | None) -> str:
    if value is None:
        return ""
    return str(value)


class HistoryMatcher:
    """Resolve previous performances by exact trainee and exercise name."""

    def __init__(self, history_store: HistoryStore) -> None:
        self.store = history_store

    async def find_last_performance(
        self, trainee_id: str, exercise_name: str
    ) -> Optional[HistoryRecord]:
        try:
            return await self.store.get_last(trainee_id, exercise_name)
        except Exception as exc:
            logger.warning("history lookup failed for %r: %s", exercise_name, exc)
            return None

    async def last_performances(
        self, training: Training
    ) -> dict[str, Optional[HistoryRecord]]:
        names = list(dict.fromkeys(ex.name for ex in training.exercises))
        results = await asyncio.gather(
            *(self.find_last_performance(training.trainee_id, n) for n in names),
            return_exceptions=True,
        )
        found: dict[str, Optional[HistoryRecord]] = {}
        for name, result in zip(names, results):
            found[name] = None if isinstance(result, BaseException) else result
        return found

    @staticmethod
    def prefill(training: Training) -> dict[str, list[PrefillRow]]:
        """Rows for bulk entry: logged sets first, then blank reps at target weight."""
        rows: dict[str, list[PrefillRow]] = {}
        for ex in training.exercises:
            ex_rows: list[PrefillRow] = []
            for i in range(ex.sets):
                if i < len(ex.actual_sets):
                    logged = ex.actual_sets[i]
                    ex_rows.append(PrefillRow(str(logged.reps), str(logged.weight)))
                else:
                    ex_rows.append(PrefillRow("", _number_text(ex.weight)))
            rows[ex.id] = ex_rows
        return rows
