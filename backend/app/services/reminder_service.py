"""
MemoTap Backend — Reminder Service
====================================

What:  CRUD business logic for reminders, ordered by remind_at (soonest first).
Who:   Called by the /api/reminders route handlers.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, MemoTapError, NotFoundError
from app.models.reminder import Reminder
from app.schemas.reminder import (
    ReminderCreate,
    ReminderListResponse,
    ReminderResponse,
    ReminderUpdate,
)

logger = logging.getLogger(__name__)


class ReminderService:
    """Business logic layer for reminder operations."""

    async def _get_or_404(self, db: AsyncSession, reminder_id: uuid.UUID) -> Reminder:
        result = await db.execute(select(Reminder).where(Reminder.id == reminder_id))
        reminder = result.scalar_one_or_none()
        if reminder is None:
            raise NotFoundError(resource="reminder", resource_id=str(reminder_id))
        return reminder

    async def list_reminders(
        self,
        db: AsyncSession,
        notified: Optional[bool] = None,
    ) -> ReminderListResponse:
        """List reminders, optionally only those (not) yet delivered."""
        try:
            query = select(Reminder)
            if notified is not None:
                query = query.where(Reminder.notified == notified)
            query = query.order_by(Reminder.remind_at.asc())

            result = await db.execute(query)
            return ReminderListResponse(
                reminders=[ReminderResponse.model_validate(r) for r in result.scalars().all()]
            )
        except Exception as e:
            logger.error("Database error listing reminders: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get reminders",
                context={"error_type": type(e).__name__},
            )

    async def get_reminder(self, db: AsyncSession, reminder_id: uuid.UUID) -> ReminderResponse:
        try:
            return ReminderResponse.model_validate(await self._get_or_404(db, reminder_id))
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error fetching reminder %s: %s", reminder_id, str(e))
            raise DatabaseError(
                message="Failed to get reminder",
                context={"reminder_id": str(reminder_id)},
            )

    async def create_reminder(
        self,
        db: AsyncSession,
        payload: ReminderCreate,
        recording_id: Optional[uuid.UUID] = None,
    ) -> ReminderResponse:
        """Insert a reminder; `notified` always starts False."""
        try:
            now = datetime.now(timezone.utc)
            reminder = Reminder(
                id=uuid.uuid4(),
                recording_id=recording_id,
                message=payload.message,
                remind_at=payload.remind_at,
                notified=False,
                created_at=now,
                updated_at=now,
            )
            db.add(reminder)
            await db.flush()
            logger.info("Reminder created: %s (at %s)", reminder.id, reminder.remind_at.isoformat())
            return ReminderResponse.model_validate(reminder)
        except Exception as e:
            logger.error("Database error creating reminder: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create reminder",
                context={"error_type": type(e).__name__},
            )

    async def update_reminder(
        self,
        db: AsyncSession,
        reminder_id: uuid.UUID,
        payload: ReminderUpdate,
    ) -> ReminderResponse:
        """Partial update of message, remind_at and/or notified; nulls are ignored."""
        try:
            reminder = await self._get_or_404(db, reminder_id)
            for field, value in payload.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(reminder, field, value)
            reminder.updated_at = datetime.now(timezone.utc)
            await db.flush()
            return ReminderResponse.model_validate(reminder)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error updating reminder %s: %s", reminder_id, str(e))
            raise DatabaseError(
                message="Failed to update reminder",
                context={"reminder_id": str(reminder_id)},
            )

    async def delete_reminder(self, db: AsyncSession, reminder_id: uuid.UUID) -> None:
        try:
            reminder = await self._get_or_404(db, reminder_id)
            await db.delete(reminder)
            await db.flush()
            logger.info("Reminder deleted: %s", reminder_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error deleting reminder %s: %s", reminder_id, str(e))
            raise DatabaseError(
                message="Failed to delete reminder",
                context={"reminder_id": str(reminder_id)},
            )


reminder_service = ReminderService()
