"""
MemoTap Backend — Reminder SQLAlchemy Model
=============================================

What:  ORM model for the `reminders` table.
Who:   RecordingService (extracted) and ReminderService (manual CRUD).

`notified` is flipped by whatever delivers the reminder; the
(notified, remind_at) index serves "what is due and not yet sent".
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.recording import utcnow


class Reminder(Base):
    """Something to be reminded about at an absolute moment."""

    __tablename__ = "reminders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    recording_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=True,
    )

    message: Mapped[str] = mapped_column(Text, nullable=False)

    remind_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    notified: Mapped[bool] = mapped_column(
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
        Index("idx_reminders_remind_at", "remind_at"),
        Index("idx_reminders_notified_remind_at", "notified", "remind_at"),
        Index("idx_reminders_recording_id", "recording_id"),
    )

    def __repr__(self) -> str:
        return f"<Reminder(id={self.id}, remind_at='{self.remind_at}', notified={self.notified})>"
