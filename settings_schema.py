from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    workout_mode: Literal["normal", "bulk"] = "normal"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    weight_unit: Literal["kg", "lb"] = "kg"
    daily_calorie_target: int = Field(2000, ge=0)
    health_sync_url: Optional[str] = None
    health_sync_token: Optional[str] = None
    timezone: str = "UTC"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
