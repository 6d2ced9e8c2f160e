"""
MemoTap Backend — Task Request/Response Schemas
=================================================

What:  API contract for /api/tasks.
How:   Create/Update models validate input; TaskResponse is built from the
       ORM row with from_attributes.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

# 24h "HH:MM"
HOUR_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TaskResponse(BaseModel):
    id: uuid.UUID
    recording_id: Optional[uuid.UUID] = None
    task: str
    day: date
    hour: Optional[str] = None
    done: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskCreate(BaseModel):
    """Body for POST /api/tasks. `task` and `day` are required."""
    task: str = Field(min_length=1, max_length=2000)
    day: date = Field(description="Due day (YYYY-MM-DD)")
    hour: Optional[str] = Field(default=None, pattern=HOUR_PATTERN, description="HH:MM (24h)")

    model_config = {"str_strip_whitespace": True}


class TaskUpdate(BaseModel):
    """Body for PATCH /api/tasks/{id}. Only fields that are sent are changed."""
    task: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    day: Optional[date] = None
    hour: Optional[str] = Field(default=None, pattern=HOUR_PATTERN)
    done: Optional[bool] = None

    model_config = {"str_strip_whitespace": True}


class TaskEnvelope(BaseModel):
    task: TaskResponse


class TaskListResponse(BaseModel):
    tasks: List[TaskResponse]
