"""
MemoTap Backend — Note Service
================================

What:  CRUD business logic for notes (newest first).
Who:   Called by the /api/notes route handlers.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, MemoTapError, NotFoundError
from app.models.note import Note
from app.schemas.note import NoteCreate, NoteListResponse, NoteResponse, NoteUpdate

logger = logging.getLogger(__name__)


class NoteService:

    async def _get_or_404(self, db: AsyncSession, note_id: uuid.UUID) -> Note:
        result = await db.execute(select(Note).where(Note.id == note_id))
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def list_notes(self, db: AsyncSession) -> NoteListResponse:
        try:
            result = await db.execute(select(Note).order_by(Note.created_at.desc()))
            return NoteListResponse(
                notes=[NoteResponse.model_validate(n) for n in result.scalars().all()]
            )
        except Exception as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get notes",
                context={"error_type": type(e).__name__},
            )

    async def get_note(self, db: AsyncSession, note_id: uuid.UUID) -> NoteResponse:
        try:
            return NoteResponse.model_validate(await self._get_or_404(db, note_id))
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(message="Failed to get note", context={"note_id": str(note_id)})

    async def create_note(
        self,
        db: AsyncSession,
        payload: NoteCreate,
        recording_id: Optional[uuid.UUID] = None,
    ) -> NoteResponse:
        try:
            now = datetime.now(timezone.utc)
            note = Note(
                id=uuid.uuid4(),
                recording_id=recording_id,
                title=payload.title or None,
                content=payload.content,
                created_at=now,
                updated_at=now,
            )
            db.add(note)
            await db.flush()
            logger.info("Note created: %s", note.id)
            return NoteResponse.model_validate(note)
        except Exception as e:
            logger.error("Database error creating note: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create note",
                context={"error_type": type(e).__name__},
            )

    async def update_note(
        self,
        db: AsyncSession,
        note_id: uuid.UUID,
        payload: NoteUpdate,
    ) -> NoteResponse:
        """Partial update; `title` may be cleared with null, `content` may not."""
        try:
            note = await self._get_or_404(db, note_id)
            updates = payload.model_dump(exclude_unset=True)
            if "title" in updates:
                note.title = updates["title"] or None
            if updates.get("content") is not None:
                note.content = updates["content"]
            note.updated_at = datetime.now(timezone.utc)
            await db.flush()
            return NoteResponse.model_validate(note)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(message="Failed to update note", context={"note_id": str(note_id)})

    async def delete_note(self, db: AsyncSession, note_id: uuid.UUID) -> None:
        try:
            note = await self._get_or_404(db, note_id)
            await db.delete(note)
            await db.flush()
            logger.info("Note deleted: %s", note_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(message="Failed to delete note", context={"note_id": str(note_id)})


note_service = NoteService()
