"""
MemoTap Backend — Recording SQLAlchemy Model
==============================================

What:  ORM model for the `recordings` table: one row per processed voice note.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Written by RecordingService after the extraction pipeline succeeds;
       read by the recordings routes.

Table Design:
    - UUID primary key, generated in Python (portable across PostgreSQL/SQLite)
    - transcription: full transcript text returned by Gemini
    - processed_at: when the pipeline finished
    - Tasks, notes and reminders point back here with ON DELETE CASCADE
    - Audio bytes are never stored
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Recording(Base):
    """A transcribed voice recording."""

    __tablename__ = "recordings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    transcription: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Verbatim transcript produced by Gemini",
    )

    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        comment="When the extraction pipeline finished (UTC)",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # Recordings are listed newest first; a B-tree serves both scan directions
    __table_args__ = (
        Index("idx_recordings_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Recording(id={self.id}, created_at='{self.created_at}')>"
