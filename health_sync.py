import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class HealthSyncClient:
    """Read today's step count from a device health bridge over HTTP.

    The bridge is a fallback source only. Any failure, including a missing
    configuration, reads as zero steps.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 5.0,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token or None
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "HealthSyncClient":
        return cls(
            settings.get_text("health_sync_url", ""),
            settings.get_text("health_sync_token", ""),
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def get_today_steps(self, trainee_id: Optional[str] = None) -> int:
        if not self.configured:
            return 0
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        params = {"trainee_id": trainee_id} if trainee_id else None
        try:
            resp = requests.get(
                f"{self.base_url}/steps/today",
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            steps = int(resp.json().get("steps", 0))
        except (requests.RequestException, ValueError, TypeError, AttributeError) as exc:
            logger.warning("health sync unavailable: %s", exc)
            return 0
        return max(steps, 0)
