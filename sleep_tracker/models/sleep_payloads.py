from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sleep_tracker.utils.time_utils import parse_time_string


class SleepRecordPayload(BaseModel):
    """
    Body of POST/PUT /api/sleep.

    Datetimes are ISO-8601; naive values are read in the configured local
    timezone and everything is normalized to UTC. No range checks are applied
    to quality and wakeTime may precede sleepTime.
    """
    model_config = ConfigDict(populate_by_name=True)

    sleep_time: datetime = Field(alias="sleepTime")
    wake_time: datetime = Field(alias="wakeTime")
    quality: Optional[int] = None
    notes: Optional[str] = None

    @field_validator("sleep_time", "wake_time", mode="before")
    @classmethod
    def _normalize_to_utc(cls, value):
        if not isinstance(value, (str, datetime)):
            raise ValueError(f"Expected an ISO-8601 datetime, got {type(value).__name__}")
        return parse_time_string(value)
