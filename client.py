import requests
from typing import Iterable, Optional


class TraineeClient:
    """Simple REST client for the trainee API."""

    def __init__(self, base_url: str = "http://localhost:8000") -> None:
        self.base_url = base_url.rstrip("/")

    def get_workout_mode(self) -> str:
        resp = requests.get(f"{self.base_url}/settings/workout_mode")
        resp.raise_for_status()
        return resp.json()["workout_mode"]

    def set_workout_mode(self, mode: str) -> None:
        resp = requests.put(
            f"{self.base_url}/settings/workout_mode", params={"mode": mode}
        )
        resp.raise_for_status()

    def list_trainings(self, trainee_id: str) -> list:
        resp = requests.get(f"{self.base_url}/trainees/{trainee_id}/trainings")
        resp.raise_for_status()
        return resp.json()

    def get_training(self, training_id: str) -> dict:
        resp = requests.get(f"{self.base_url}/trainings/{training_id}")
        resp.raise_for_status()
        return resp.json()

    def record_set(
        self, training_id: str, exercise_id: str, set_index: int, reps: str, weight: str
    ) -> dict:
        resp = requests.post(
            f"{self.base_url}/trainings/{training_id}/exercises/{exercise_id}/sets/{set_index}",
            params={"reps": reps, "weight": weight},
        )
        resp.raise_for_status()
        return resp.json()

    def record_bulk(
        self, training_id: str, exercise_id: str, rows: Iterable[tuple[str, str]]
    ) -> dict:
        resp = requests.put(
            f"{self.base_url}/trainings/{training_id}/exercises/{exercise_id}/sets",
            json=[{"reps": r, "weight": w} for r, w in rows],
        )
        resp.raise_for_status()
        return resp.json()

    def complete(self, training_id: str, pending: Optional[dict] = None) -> dict:
        """Complete a training; on HTTP 400 the body lists every outstanding set."""
        resp = requests.post(
            f"{self.base_url}/trainings/{training_id}/complete",
            json={"exercises": pending} if pending else None,
        )
        resp.raise_for_status()
        return resp.json()

    def save_and_exit(self, training_id: str, pending: Optional[dict] = None) -> dict:
        resp = requests.post(
            f"{self.base_url}/trainings/{training_id}/save_and_exit",
            json={"exercises": pending} if pending else None,
        )
        resp.raise_for_status()
        return resp.json()

    def log_measurement(
        self, trainee_id: str, weight: float, body_measurements: Optional[dict] = None
    ) -> dict:
        resp = requests.post(
            f"{self.base_url}/trainees/{trainee_id}/measurements",
            json={"weight": weight, "body_measurements": body_measurements or {}},
        )
        resp.raise_for_status()
        return resp.json()

    def weekly_measurements(self, trainee_id: str) -> dict:
        resp = requests.get(f"{self.base_url}/trainees/{trainee_id}/measurements/weekly")
        resp.raise_for_status()
        return resp.json()

    def log_steps(self, trainee_id: str, steps: int) -> dict:
        resp = requests.post(
            f"{self.base_url}/trainees/{trainee_id}/steps", params={"steps": steps}
        )
        resp.raise_for_status()
        return resp.json()
