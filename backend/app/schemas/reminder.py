"""
MemoTap Backend — Reminder Request/Response Schemas
=====================================================

What:  API contract for /api/reminders.

A `remind_at` sent without a UTC offset is read in EXTRACTION_TIMEZONE,
the same rule the extraction parser applies to model output.
"""

import uuid
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator

from app.config import settings


def _with_default_timezone(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(settings.extraction_timezone))
    return value


class ReminderResponse(BaseModel):
    id: uuid.UUID
    recording_id: Optional[uuid.UUID] = None
    message: str
    remind_at: datetime
    notified: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ReminderCreate(BaseModel):
    """Body for POST /api/reminders. `message` and `remind_at` are required."""
    message: str = Field(min_length=1, max_length=2000)
    remind_at: datetime

    model_config = {"str_strip_whitespace": True}

    @field_validator("remind_at")
    @classmethod
    def apply_default_timezone(cls, v: datetime) -> datetime:
        return _with_default_timezone(v)


class ReminderUpdate(BaseModel):
    message: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    remind_at: Optional[datetime] = None
    notified: Optional[bool] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("remind_at")
    @classmethod
    def apply_default_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _with_default_timezone(v)


class ReminderEnvelope(BaseModel):
    reminder: ReminderResponse


class ReminderListResponse(BaseModel):
    reminders: List[ReminderResponse]
