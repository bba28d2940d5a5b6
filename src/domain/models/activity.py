"""Manual activity-control audit model."""

from datetime import datetime

from pydantic import BaseModel

from src.domain.models.enums import ActivityLevel


class ActivityLevelChange(BaseModel):
    """One entry of a user's bounded activity-level audit log."""

    user_id: str
    previous_level: ActivityLevel
    new_level: ActivityLevel
    timestamp: datetime
    reason: str
