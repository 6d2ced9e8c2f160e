"""
MemoTap Backend — Recording Request/Response Schemas
======================================================

What:  API contract for /api/recordings, including the response of the main
       POST /api/recordings/process endpoint.

ProcessRecordingResponse shape:
    {
        "success": true,
        "recording": {"id": "...", "transcription": "..."},
        "extracted": {
            "tasks":     [TaskResponse, ...],
            "notes":     [NoteResponse, ...],
            "reminders": [ReminderResponse, ...]
        }
    }
The extracted lists hold the persisted rows (with ids), not the raw model
output, so the client can edit them immediately.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from app.schemas.note import NoteResponse
from app.schemas.reminder import ReminderResponse
from app.schemas.task import TaskResponse


class RecordingSummary(BaseModel):
    id: uuid.UUID
    transcription: str

    model_config = {"from_attributes": True}


class RecordingResponse(BaseModel):
    id: uuid.UUID
    transcription: str
    processed_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class ExtractedItems(BaseModel):
    tasks: List[TaskResponse] = Field(default_factory=list)
    notes: List[NoteResponse] = Field(default_factory=list)
    reminders: List[ReminderResponse] = Field(default_factory=list)


class ProcessRecordingResponse(BaseModel):
    """Returned by POST /api/recordings/process with HTTP 201."""
    success: bool = True
    recording: RecordingSummary
    extracted: ExtractedItems


class RecordingDetailResponse(BaseModel):
    """A recording plus everything extracted from it."""
    recording: RecordingResponse
    extracted: ExtractedItems


class RecordingListResponse(BaseModel):
    recordings: List[RecordingResponse]


class RecordingUpdate(BaseModel):
    """Body for PUT /api/recordings/{id}: a corrected transcript."""
    transcription: str = Field(min_length=1)

    model_config = {"str_strip_whitespace": True}


class RecordingEnvelope(BaseModel):
    recording: RecordingResponse
