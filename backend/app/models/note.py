"""
MemoTap Backend — Note SQLAlchemy Model
=========================================

What:  ORM model for the `notes` table: ideas and information that are
       neither tasks nor reminders.
Who:   RecordingService (extracted) and NoteService (manual CRUD).
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.recording import utcnow


class Note(Base):
    """A free-form note with an optional short title."""

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    recording_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=True,
    )

    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, default=None)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("idx_notes_created_at", "created_at"),
        Index("idx_notes_recording_id", "recording_id"),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, title='{self.title}')>"
