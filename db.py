import sqlite3
import aiosqlite
import datetime
import json
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import List, Tuple, Optional, Iterable

from config import YamlConfig
from errors import HistoryLookupError, StoreError
from models import (
    BODY_DIMENSIONS,
    ActualSet,
    Exercise,
    FoodItem,
    Goal,
    HistoryRecord,
    Measurement,
    NutritionEntry,
    NutritionPlan,
    StepsEntry,
    StepsOrigin,
    Training,
)
from settings_schema import validate_settings

logger = logging.getLogger(__name__)


class Database:
    """Provides SQLite connection management and schema initialization."""

    _TABLE_DEFINITIONS = {
        "trainings": (
            """CREATE TABLE trainings (
                    id TEXT PRIMARY KEY,
                    trainee_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    difficulty TEXT NOT NULL DEFAULT 'beginner',
                    scheduled_date TEXT NOT NULL,
                    notes TEXT,
                    is_completed INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT
                );""",
            [
                "id",
                "trainee_id",
                "name",
                "description",
                "difficulty",
                "scheduled_date",
                "notes",
                "is_completed",
                "completed_at",
            ],
        ),
        "training_exercises": (
            """CREATE TABLE training_exercises (
                    training_id TEXT NOT NULL,
                    id TEXT NOT NULL,
                    position INTEGER NOT NULL DEFAULT 0,
                    name TEXT NOT NULL,
                    sets INTEGER NOT NULL,
                    reps INTEGER NOT NULL,
                    weight REAL,
                    instructions TEXT NOT NULL DEFAULT '',
                    PRIMARY KEY (training_id, id),
                    FOREIGN KEY(training_id) REFERENCES trainings(id) ON DELETE CASCADE
                );""",
            [
                "training_id",
                "id",
                "position",
                "name",
                "sets",
                "reps",
                "weight",
                "instructions",
            ],
        ),
        "actual_sets": (
            """CREATE TABLE actual_sets (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    training_id TEXT NOT NULL,
                    exercise_id TEXT NOT NULL,
                    set_index INTEGER NOT NULL,
                    reps INTEGER NOT NULL,
                    weight REAL NOT NULL,
                    UNIQUE(training_id, exercise_id, set_index),
                    FOREIGN KEY(training_id) REFERENCES trainings(id) ON DELETE CASCADE
                );""",
            ["id", "training_id", "exercise_id", "set_index", "reps", "weight"],
        ),
        "exercise_history": (
            """CREATE TABLE exercise_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    trainee_id TEXT NOT NULL,
                    exercise_name TEXT NOT NULL,
                    date TEXT NOT NULL,
                    training_id TEXT NOT NULL,
                    completed_at TEXT NOT NULL,
                    sets TEXT NOT NULL,
                    UNIQUE(trainee_id, exercise_name, date)
                );""",
            [
                "id",
                "trainee_id",
                "exercise_name",
                "date",
                "training_id",
                "completed_at",
                "sets",
            ],
        ),
        "measurements": (
            """CREATE TABLE measurements (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    trainee_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    weight REAL NOT NULL,
                    body TEXT NOT NULL DEFAULT '{}',
                    UNIQUE(trainee_id, date)
                );""",
            ["id", "trainee_id", "date", "weight", "body"],
        ),
        "steps_entries": (
            """CREATE TABLE steps_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    trainee_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    steps INTEGER NOT NULL,
                    origin TEXT NOT NULL DEFAULT 'manual',
                    UNIQUE(trainee_id, date)
                );""",
            ["id", "trainee_id", "date", "steps", "origin"],
        ),
        "goals": (
            """CREATE TABLE goals (
                    id TEXT PRIMARY KEY,
                    trainee_id TEXT NOT NULL,
                    type TEXT NOT NULL,
                    name TEXT NOT NULL,
                    current_value REAL NOT NULL,
                    target_value REAL NOT NULL,
                    unit TEXT NOT NULL DEFAULT '',
                    deadline TEXT NOT NULL,
                    is_completed INTEGER NOT NULL DEFAULT 0
                );""",
            [
                "id",
                "trainee_id",
                "type",
                "name",
                "current_value",
                "target_value",
                "unit",
                "deadline",
                "is_completed",
            ],
        ),
        "nutrition_entries": (
            """CREATE TABLE nutrition_entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    trainee_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    foods TEXT NOT NULL
                );""",
            ["id", "trainee_id", "date", "foods"],
        ),
        "nutrition_plans": (
            """CREATE TABLE nutrition_plans (
                    trainee_id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    daily_calories INTEGER NOT NULL
                );""",
            ["trainee_id", "name", "daily_calories"],
        ),
        "settings": (
            """CREATE TABLE settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                );""",
            ["key", "value"],
        ),
    }

    _COLUMN_DEFAULTS = {
        "description": "''",
        "difficulty": "'beginner'",
        "is_completed": "0",
        "position": "0",
        "instructions": "''",
        "body": "'{}'",
        "origin": "'manual'",
        "unit": "''",
    }

    def __init__(self, db_path: str = "trainee.db") -> None:
        self._db_path = db_path
        self._ensure_schema()
        self._init_settings()

    @contextmanager
    def _connection(self):
        try:
            connection = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self._db_path}: {exc}") from exc
        try:
            yield connection
            connection.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            connection.close()

    def _ensure_schema(self) -> None:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("PRAGMA foreign_keys=off;")
            cursor.execute("PRAGMA legacy_alter_table=on;")
            for table, (sql, columns) in self._TABLE_DEFINITIONS.items():
                self._ensure_table(conn, table, sql, columns)
            cursor.execute("PRAGMA foreign_keys=on;")

    def _ensure_table(
        self, conn: sqlite3.Connection, table: str, sql: str, columns: List[str]
    ) -> None:
        cur = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;", (table,)
        )
        if cur.fetchone() is None:
            conn.execute(sql)
            return

        cur = conn.execute(f"PRAGMA table_info({table});")
        existing_cols = [row[1] for row in cur.fetchall()]
        if existing_cols == columns:
            return

        logger.info("migrating table %s", table)
        conn.execute(f"ALTER TABLE {table} RENAME TO {table}_old;")
        conn.execute(sql)

        common = [c for c in existing_cols if c in columns]
        if common:
            cols = ", ".join(common)
            missing = [c for c in columns if c not in existing_cols and c != "id"]
            if missing:
                defaults = ", ".join(
                    self._COLUMN_DEFAULTS.get(c, "NULL") for c in missing
                )
                conn.execute(
                    f"INSERT INTO {table} ({cols}, {', '.join(missing)}) "
                    f"SELECT {cols}, {defaults} FROM {table}_old;"
                )
            else:
                conn.execute(
                    f"INSERT INTO {table} ({cols}) SELECT {cols} FROM {table}_old;"
                )
        conn.execute(f"DROP TABLE {table}_old;")

    def _init_settings(self) -> None:
        defaults = {
            "workout_mode": "normal",
            "log_level": "INFO",
            "weight_unit": "kg",
            "daily_calorie_target": "2000",
            "health_sync_url": "",
            "health_sync_token": "",
            "timezone": "UTC",
        }
        with self._connection() as conn:
            for key, value in defaults.items():
                conn.execute(
                    "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?);",
                    (key, value),
                )

    def vacuum(self) -> None:
        """Run SQLite VACUUM to reduce database size."""
        with self._connection() as conn:
            conn.execute("VACUUM;")


class BaseRepository(Database):
    """Base repository providing helper methods."""

    def execute(self, query: str, params: Tuple = ()) -> int:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.lastrowid

    def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor.fetchall()

    def _delete_all(self, table: str) -> None:
        self.execute(f"DELETE FROM {table};")


class AsyncDatabase(Database):
    """Provides asynchronous connection management."""

    @asynccontextmanager
    async def _async_connection(self):
        try:
            conn = await aiosqlite.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self._db_path}: {exc}") from exc
        try:
            yield conn
            await conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            await conn.close()


class AsyncBaseRepository(AsyncDatabase):
    """Asynchronous variant of BaseRepository using aiosqlite."""

    async def execute(self, query: str, params: Tuple = ()) -> int:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.lastrowid

    async def fetch_all(self, query: str, params: Tuple = ()) -> List[Tuple]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
            return list(rows)

    async def _delete_all(self, table: str) -> None:
        await self.execute(f"DELETE FROM {table};")


def _today_iso(today: datetime.date | str | None) -> str:
    if today is None:
        return datetime.date.today().isoformat()
    if isinstance(today, (datetime.date, datetime.datetime)):
        return today.isoformat()[:10]
    return datetime.date.fromisoformat(today[:10]).isoformat()


class AsyncTrainingRepository(AsyncBaseRepository):
    """Trainings with their exercises and logged sets.

    :meth:`upsert` rewrites exercises and sets inside one transaction so a
    failed write leaves the stored training unchanged.
    """

    async def _load(self, conn: aiosqlite.Connection, rows: Iterable[Tuple]) -> list[Training]:
        trainings: list[Training] = []
        for tid, trainee_id, name, description, difficulty, scheduled, notes, done, completed_at in rows:
            cursor = await conn.execute(
                "SELECT exercise_id, reps, weight FROM actual_sets "
                "WHERE training_id = ? ORDER BY exercise_id, set_index;",
                (tid,),
            )
            sets: dict[str, list[dict]] = {}
            for ex_id, reps, weight in await cursor.fetchall():
                sets.setdefault(ex_id, []).append({"reps": reps, "weight": weight})
            cursor = await conn.execute(
                "SELECT id, name, sets, reps, weight, instructions "
                "FROM training_exercises WHERE training_id = ? ORDER BY position;",
                (tid,),
            )
            exercises = [
                {
                    "id": ex_id,
                    "name": ex_name,
                    "sets": ex_sets,
                    "reps": ex_reps,
                    "weight": ex_weight,
                    "instructions": instructions,
                    "actual_sets": sets.get(ex_id, []),
                }
                for ex_id, ex_name, ex_sets, ex_reps, ex_weight, instructions in await cursor.fetchall()
            ]
            trainings.append(
                Training.from_dict(
                    {
                        "id": tid,
                        "trainee_id": trainee_id,
                        "name": name,
                        "description": description,
                        "difficulty": difficulty,
                        "scheduled_date": scheduled,
                        "notes": notes,
                        "is_completed": bool(done),
                        "completed_at": completed_at,
                        "exercises": exercises,
                    }
                )
            )
        return trainings

    _SELECT = (
        "SELECT id, trainee_id, name, description, difficulty, scheduled_date, "
        "notes, is_completed, completed_at FROM trainings"
    )

    async def get(self, training_id: str) -> Optional[Training]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(f"{self._SELECT} WHERE id = ?;", (training_id,))
            found = await self._load(conn, await cursor.fetchall())
        return found[0] if found else None

    async def get_for_trainee(self, trainee_id: str) -> list[Training]:
        async with self._async_connection() as conn:
            cursor = await conn.execute(
                f"{self._SELECT} WHERE trainee_id = ? ORDER BY scheduled_date, id;",
                (trainee_id,),
            )
            return await self._load(conn, await cursor.fetchall())

    async def upsert(self, training: Training) -> Training:
        async with self._async_connection() as conn:
            await conn.execute("PRAGMA foreign_keys=on;")
            await conn.execute(
                "INSERT INTO trainings (id, trainee_id, name, description, difficulty, "
                "scheduled_date, notes, is_completed, completed_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET trainee_id=excluded.trainee_id, "
                "name=excluded.name, description=excluded.description, "
                "difficulty=excluded.difficulty, scheduled_date=excluded.scheduled_date, "
                "notes=excluded.notes, is_completed=excluded.is_completed, "
                "completed_at=excluded.completed_at;",
                (
                    training.id,
                    training.trainee_id,
                    training.name,
                    training.description,
                    training.difficulty.value,
                    training.scheduled_date.isoformat(),
                    training.notes,
                    int(training.is_completed),
                    training.completed_at.isoformat(timespec="seconds")
                    if training.completed_at
                    else None,
                ),
            )
            await conn.execute(
                "DELETE FROM actual_sets WHERE training_id = ?;", (training.id,)
            )
            await conn.execute(
                "DELETE FROM training_exercises WHERE training_id = ?;", (training.id,)
            )
            await conn.executemany(
                "INSERT INTO training_exercises (training_id, id, position, name, sets, "
                "reps, weight, instructions) VALUES (?, ?, ?, ?, ?, ?, ?, ?);",
                [
                    (
                        training.id,
                        ex.id,
                        pos,
                        ex.name,
                        ex.sets,
                        ex.reps,
                        ex.weight,
                        ex.instructions,
                    )
                    for pos, ex in enumerate(training.exercises)
                ],
            )
            await conn.executemany(
                "INSERT INTO actual_sets (training_id, exercise_id, set_index, reps, weight) "
                "VALUES (?, ?, ?, ?, ?);",
                [
                    (training.id, ex.id, idx, s.reps, s.weight)
                    for ex in training.exercises
                    for idx, s in enumerate(ex.actual_sets)
                ],
            )
        return training.copy()

    async def delete(self, training_id: str) -> None:
        async with self._async_connection() as conn:
            await conn.execute("DELETE FROM actual_sets WHERE training_id = ?;", (training_id,))
            await conn.execute(
                "DELETE FROM training_exercises WHERE training_id = ?;", (training_id,)
            )
            await conn.execute("DELETE FROM trainings WHERE id = ?;", (training_id,))


class AsyncHistoryRepository(AsyncBaseRepository):
    """Per-exercise performance keyed by trainee, exact exercise name and day."""

    @staticmethod
    def _record(row: Tuple) -> HistoryRecord:
        trainee_id, name, date, training_id, completed_at, sets = row
        return HistoryRecord(
            trainee_id=trainee_id,
            exercise_name=name,
            date=datetime.date.fromisoformat(date),
            training_id=training_id,
            completed_at=datetime.datetime.fromisoformat(completed_at),
            actual_sets=[ActualSet.from_dict(s) for s in json.loads(sets)],
        )

    async def get_last(
        self, trainee_id: str, exercise_name: str
    ) -> Optional[HistoryRecord]:
        try:
            rows = await self.fetch_all(
                "SELECT trainee_id, exercise_name, date, training_id, completed_at, sets "
                "FROM exercise_history WHERE trainee_id = ? AND exercise_name = ? "
                "ORDER BY date DESC, completed_at DESC LIMIT 1;",
                (trainee_id, exercise_name),
            )
            return self._record(rows[0]) if rows else None
        except (StoreError, ValueError) as exc:
            raise HistoryLookupError(str(exc)) from exc

    async def get_history(
        self, trainee_id: str, exercise_name: str | None = None
    ) -> list[HistoryRecord]:
        query = (
            "SELECT trainee_id, exercise_name, date, training_id, completed_at, sets "
            "FROM exercise_history WHERE trainee_id = ?"
        )
        params: list = [trainee_id]
        if exercise_name is not None:
            query += " AND exercise_name = ?"
            params.append(exercise_name)
        query += " ORDER BY date DESC, exercise_name;"
        rows = await self.fetch_all(query, tuple(params))
        return [self._record(r) for r in rows]

    async def save(self, training: Training) -> list[HistoryRecord]:
        """Record every exercise of a completed training; same day replaces."""
        completed_at = training.completed_at or datetime.datetime.now()
        day = completed_at.date()
        records = [
            HistoryRecord(
                trainee_id=training.trainee_id,
                exercise_name=ex.name,
                date=day,
                training_id=training.id,
                completed_at=completed_at,
                actual_sets=list(ex.actual_sets),
            )
            for ex in training.exercises
            if ex.actual_sets
        ]
        async with self._async_connection() as conn:
            await conn.executemany(
                "INSERT INTO exercise_history (trainee_id, exercise_name, date, "
                "training_id, completed_at, sets) VALUES (?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(trainee_id, exercise_name, date) DO UPDATE SET "
                "training_id=excluded.training_id, completed_at=excluded.completed_at, "
                "sets=excluded.sets;",
                [
                    (
                        r.trainee_id,
                        r.exercise_name,
                        r.date.isoformat(),
                        r.training_id,
                        r.completed_at.isoformat(timespec="seconds"),
                        json.dumps([s.to_dict() for s in r.actual_sets]),
                    )
                    for r in records
                ],
            )
        return records


class MeasurementRepository(BaseRepository):
    """Body weight and dimensions, at most one entry per trainee and day."""

    @staticmethod
    def _row(row: Tuple) -> Measurement:
        mid, trainee_id, date, weight, body = row
        return Measurement(
            id=mid,
            trainee_id=trainee_id,
            date=datetime.date.fromisoformat(date),
            weight=weight,
            body_measurements=json.loads(body or "{}"),
        )

    def upsert(
        self,
        trainee_id: str,
        weight: float,
        body_measurements: Optional[dict[str, float]] = None,
        date: datetime.date | str | None = None,
    ) -> Measurement:
        if weight <= 0:
            raise ValueError("weight must be positive")
        body = dict(body_measurements or {})
        for key, value in body.items():
            if key not in BODY_DIMENSIONS:
                raise ValueError(f"unknown body dimension: {key}")
            if value <= 0:
                raise ValueError(f"{key} must be positive")
        day = _today_iso(date)
        self.execute(
            "INSERT INTO measurements (trainee_id, date, weight, body) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(trainee_id, date) DO UPDATE SET weight=excluded.weight, "
            "body=excluded.body;",
            (trainee_id, day, float(weight), json.dumps(body, sort_keys=True)),
        )
        found = self.get_today(trainee_id, day)
        if found is None:
            raise StoreError(f"measurement for {trainee_id} on {day} was not stored")
        return found

    def get_today(
        self, trainee_id: str, today: datetime.date | str | None = None
    ) -> Optional[Measurement]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, date, weight, body FROM measurements "
            "WHERE trainee_id = ? AND date = ?;",
            (trainee_id, _today_iso(today)),
        )
        return self._row(rows[0]) if rows else None

    def get_for_trainee(self, trainee_id: str) -> list[Measurement]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, date, weight, body FROM measurements "
            "WHERE trainee_id = ? ORDER BY date DESC;",
            (trainee_id,),
        )
        return [self._row(r) for r in rows]

    def delete(self, measurement_id: int) -> None:
        self.execute("DELETE FROM measurements WHERE id = ?;", (measurement_id,))


class StepsRepository(BaseRepository):
    """Daily step counts. Manual entries are never replaced by device data."""

    @staticmethod
    def _row(row: Tuple) -> StepsEntry:
        sid, trainee_id, date, steps, origin = row
        return StepsEntry(
            id=sid,
            trainee_id=trainee_id,
            date=datetime.date.fromisoformat(date),
            steps=steps,
            origin=StepsOrigin(origin),
        )

    def get_today(
        self, trainee_id: str, today: datetime.date | str | None = None
    ) -> Optional[StepsEntry]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, date, steps, origin FROM steps_entries "
            "WHERE trainee_id = ? AND date = ?;",
            (trainee_id, _today_iso(today)),
        )
        return self._row(rows[0]) if rows else None

    def log_manual(
        self, trainee_id: str, date: datetime.date | str | None, steps: int
    ) -> StepsEntry:
        if steps < 0:
            raise ValueError("steps must be non-negative")
        day = _today_iso(date)
        self.execute(
            "INSERT INTO steps_entries (trainee_id, date, steps, origin) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(trainee_id, date) DO UPDATE SET steps=excluded.steps, "
            "origin=excluded.origin;",
            (trainee_id, day, int(steps), StepsOrigin.MANUAL.value),
        )
        found = self.get_today(trainee_id, day)
        if found is None:
            raise StoreError(f"steps for {trainee_id} on {day} were not stored")
        return found

    def record_sync(
        self, trainee_id: str, date: datetime.date | str | None, steps: int
    ) -> StepsEntry:
        if steps < 0:
            raise ValueError("steps must be non-negative")
        day = _today_iso(date)
        self.execute(
            "INSERT INTO steps_entries (trainee_id, date, steps, origin) VALUES (?, ?, ?, ?) "
            "ON CONFLICT(trainee_id, date) DO UPDATE SET steps=excluded.steps "
            "WHERE steps_entries.origin != 'manual';",
            (trainee_id, day, int(steps), StepsOrigin.DEVICE_SYNC.value),
        )
        found = self.get_today(trainee_id, day)
        if found is None:
            raise StoreError(f"steps for {trainee_id} on {day} were not stored")
        return found

    def get_for_trainee(self, trainee_id: str) -> list[StepsEntry]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, date, steps, origin FROM steps_entries "
            "WHERE trainee_id = ? ORDER BY date DESC;",
            (trainee_id,),
        )
        return [self._row(r) for r in rows]


class GoalRepository(BaseRepository):
    """Trainer-authored goals; only delivered here through :meth:`upsert`."""

    def upsert(self, goal: Goal) -> Goal:
        self.execute(
            "INSERT INTO goals (id, trainee_id, type, name, current_value, target_value, "
            "unit, deadline, is_completed) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(id) DO UPDATE SET trainee_id=excluded.trainee_id, "
            "type=excluded.type, name=excluded.name, current_value=excluded.current_value, "
            "target_value=excluded.target_value, unit=excluded.unit, "
            "deadline=excluded.deadline, is_completed=excluded.is_completed;",
            (
                goal.id,
                goal.trainee_id,
                goal.goal_type.value,
                goal.name,
                goal.current_value,
                goal.target_value,
                goal.unit,
                goal.deadline.isoformat(),
                int(goal.is_completed),
            ),
        )
        return goal

    def get_for_trainee(self, trainee_id: str) -> list[Goal]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, type, name, current_value, target_value, unit, "
            "deadline, is_completed FROM goals WHERE trainee_id = ? ORDER BY deadline, id;",
            (trainee_id,),
        )
        return [
            Goal.from_dict(
                {
                    "id": gid,
                    "trainee_id": tid,
                    "type": gtype,
                    "name": name,
                    "current_value": cur,
                    "target_value": target,
                    "unit": unit,
                    "deadline": deadline,
                    "is_completed": bool(done),
                }
            )
            for gid, tid, gtype, name, cur, target, unit, deadline, done in rows
        ]


class NutritionRepository(BaseRepository):
    """Logged meals and the trainee's calorie plan."""

    def log(
        self,
        trainee_id: str,
        date: datetime.date | str | None,
        foods: Iterable[FoodItem],
    ) -> NutritionEntry:
        items = list(foods)
        if not items:
            raise ValueError("at least one food is required")
        for food in items:
            if not food.name.strip():
                raise ValueError("food name is required")
            if food.calories < 0:
                raise ValueError("calories must be non-negative")
        day = _today_iso(date)
        entry_id = self.execute(
            "INSERT INTO nutrition_entries (trainee_id, date, foods) VALUES (?, ?, ?);",
            (trainee_id, day, json.dumps([f.to_dict() for f in items])),
        )
        return NutritionEntry(
            id=entry_id,
            trainee_id=trainee_id,
            date=datetime.date.fromisoformat(day),
            foods=items,
        )

    def get_for_day(
        self, trainee_id: str, date: datetime.date | str | None = None
    ) -> list[NutritionEntry]:
        rows = self.fetch_all(
            "SELECT id, trainee_id, date, foods FROM nutrition_entries "
            "WHERE trainee_id = ? AND date = ? ORDER BY id;",
            (trainee_id, _today_iso(date)),
        )
        return [
            NutritionEntry(
                id=eid,
                trainee_id=tid,
                date=datetime.date.fromisoformat(day),
                foods=[FoodItem(f["name"], int(f["calories"])) for f in json.loads(foods)],
            )
            for eid, tid, day, foods in rows
        ]

    def consumed_total(
        self, trainee_id: str, date: datetime.date | str | None = None
    ) -> int:
        return sum(e.total_calories for e in self.get_for_day(trainee_id, date))

    def get_plan(self, trainee_id: str) -> Optional[NutritionPlan]:
        rows = self.fetch_all(
            "SELECT trainee_id, name, daily_calories FROM nutrition_plans "
            "WHERE trainee_id = ?;",
            (trainee_id,),
        )
        return NutritionPlan(*rows[0]) if rows else None

    def upsert_plan(self, trainee_id: str, name: str, daily_calories: int) -> NutritionPlan:
        if daily_calories < 0:
            raise ValueError("daily_calories must be non-negative")
        self.execute(
            "INSERT INTO nutrition_plans (trainee_id, name, daily_calories) VALUES (?, ?, ?) "
            "ON CONFLICT(trainee_id) DO UPDATE SET name=excluded.name, "
            "daily_calories=excluded.daily_calories;",
            (trainee_id, name, int(daily_calories)),
        )
        return NutritionPlan(trainee_id, name, int(daily_calories))


class SettingsRepository(BaseRepository):
    """Repository for general application settings synchronized with YAML."""

    NUMERIC_KEYS = {"daily_calorie_target"}
    WORKOUT_MODES = ("normal", "bulk")

    def __init__(
        self, db_path: str = "trainee.db", yaml_path: str = "settings.yaml"
    ) -> None:
        super().__init__(db_path)
        self._yaml = YamlConfig(yaml_path)
        self._sync_from_yaml()
        self._sync_to_yaml()

    def _raw_all_settings(self) -> dict:
        rows = self.fetch_all("SELECT key, value FROM settings ORDER BY key;")
        result: dict[str, int | str] = {}
        for k, v in rows:
            if k in self.NUMERIC_KEYS:
                try:
                    result[k] = int(float(v))
                    continue
                except ValueError:
                    pass
            result[k] = v
        return result

    def _sync_from_yaml(self) -> None:
        data = self._yaml.load()
        if not data:
            return
        validate_settings(data)
        with self._connection() as conn:
            for key, value in data.items():
                conn.execute(
                    "INSERT INTO settings (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
                    (key, "" if value is None else str(value)),
                )

    def _sync_to_yaml(self) -> None:
        self._yaml.save(self._raw_all_settings())

    def all_settings(self) -> dict:
        self._sync_from_yaml()
        return self._raw_all_settings()

    def get_text(self, key: str, default: str) -> str:
        self._sync_from_yaml()
        rows = self.fetch_all("SELECT value FROM settings WHERE key = ?;", (key,))
        return rows[0][0] if rows else default

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(float(self.get_text(key, str(default))))
        except ValueError:
            return default

    def set_text(self, key: str, value: str) -> None:
        candidate = self._raw_all_settings()
        candidate[key] = value
        validate_settings(candidate)
        self.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value=excluded.value;",
            (key, str(value)),
        )
        self._sync_to_yaml()

    def get_workout_mode(self) -> str:
        mode = self.get_text("workout_mode", "normal")
        return mode if mode in self.WORKOUT_MODES else "normal"

    def set_workout_mode(self, mode: str) -> None:
        if mode not in self.WORKOUT_MODES:
            raise ValueError(f"invalid workout mode: {mode}")
        self.set_text("workout_mode", mode)
