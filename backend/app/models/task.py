"""
MemoTap Backend — Task SQLAlchemy Model
=========================================

What:  ORM model for the `tasks` table: action items, either extracted from
       a recording or created by hand.
Who:   RecordingService (extracted) and TaskService (manual CRUD).

Query Patterns:
    - Open tasks:    WHERE done = false ORDER BY day, hour
    - Tasks per day: WHERE day = :day
    Both are served by the (done, day) and (day) indexes.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, String, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.recording import utcnow


class Task(Base):
    """An action item with a due day and an optional time of day."""

    __tablename__ = "tasks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Null for tasks created by hand
    recording_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=True,
    )

    task: Mapped[str] = mapped_column(Text, nullable=False)

    day: Mapped[date] = mapped_column(Date, nullable=False)

    # "HH:MM" 24h; null when no time was mentioned
    hour: Mapped[Optional[str]] = mapped_column(String(5), nullable=True, default=None)

    done: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("idx_tasks_done_day", "done", "day"),
        Index("idx_tasks_day", "day"),
        Index("idx_tasks_recording_id", "recording_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, day='{self.day}', hour='{self.hour}', done={self.done})>"
