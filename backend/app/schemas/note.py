"""
MemoTap Backend — Note Request/Response Schemas
=================================================

What:  API contract for /api/notes.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class NoteResponse(BaseModel):
    id: uuid.UUID
    recording_id: Optional[uuid.UUID] = None
    title: Optional[str] = None
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteCreate(BaseModel):
    """Body for POST /api/notes. Only `content` is required."""
    title: Optional[str] = Field(default=None, max_length=255)
    content: str = Field(min_length=1)

    model_config = {"str_strip_whitespace": True}


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)

    model_config = {"str_strip_whitespace": True}


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NoteListResponse(BaseModel):
    notes: List[NoteResponse]
