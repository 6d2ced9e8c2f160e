"""
MemoTap Backend — Recording Service (Business Logic Orchestrator)
===================================================================

What:  Orchestrates upload → validate → extract → persist for voice notes,
       plus read/update/delete of stored recordings.
How:   Composes AudioService, the ExtractionPipeline (passed in per call)
       and database operations on the request's AsyncSession.
Who:   Called by the /api/recordings route handlers.
When:  For every recording submission and retrieval.

Orchestration Flow (POST /api/recordings/process):
    ┌──────────┐    ┌────────────┐    ┌──────────────────┐    ┌──────────┐
    │  Upload  │───▶│  Validate  │───▶│ ExtractionPipeline│───▶│  Store   │
    │  (Route) │    │ (AudioServ)│    │ transcribe+extract│    │  (DB)    │
    └──────────┘    └────────────┘    └──────────────────┘    └──────────┘

    Nothing is written until the pipeline has returned; the recording and
    every extracted item then go into the database in the request's single
    transaction (committed by get_db_session).

Error Recovery:
    Validation fails        → ValidationError (400), nothing stored
    Transcript empty        → ValidationError (400), nothing stored
    Gemini / key pool fails → LLMServiceError family (503), nothing stored
    Database fails          → DatabaseError (500), transaction rolled back
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, MemoTapError, NotFoundError, ValidationError
from app.models.note import Note
from app.models.recording import Recording
from app.models.reminder import Reminder
from app.models.task import Task
from app.schemas.extraction import ExtractionResult
from app.schemas.note import NoteResponse
from app.schemas.recording import (
    ExtractedItems,
    ProcessRecordingResponse,
    RecordingDetailResponse,
    RecordingListResponse,
    RecordingResponse,
    RecordingSummary,
    RecordingUpdate,
)
from app.schemas.reminder import ReminderResponse
from app.schemas.task import TaskResponse
from app.services.audio_service import audio_service
from app.services.extraction_service import ExtractionPipeline

logger = logging.getLogger(__name__)

EMPTY_TRANSCRIPT_MESSAGE = "Could not transcribe audio. Please try again."


class RecordingService:
    """
    Business logic layer for recordings.

    Responsibilities:
        - process_recording(): complete upload-to-persisted-items workflow
        - list_recordings() / get_recording(): retrieval
        - update_recording(): transcript correction
        - delete_recording(): removal, together with extracted items

    Stateless: the DB session and the pipeline are passed in for each call,
    so tests can substitute either independently.
    """

    async def process_recording(
        self,
        db: AsyncSession,
        pipeline: ExtractionPipeline,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> ProcessRecordingResponse:
        """
        Complete workflow: validate → transcribe → extract → save.

        Returns:
            ProcessRecordingResponse with the persisted recording and items.

        Raises:
            ValidationError: bad upload, or audio that produced no transcript
            LLMServiceError (and subclasses): Gemini or key-pool failure
            DatabaseError: persisting the results failed
        """
        # ── Step 1: Validate upload ──────────────────────────────────────
        mime_type = audio_service.validate(
            filename=filename,
            content_type=content_type,
            content=content,
            content_length=content_length,
        )

        # ── Step 2: Transcribe + extract ─────────────────────────────────
        processed = await pipeline.process_recording(content, mime_type)

        if not processed.transcript:
            raise ValidationError(
                message=EMPTY_TRANSCRIPT_MESSAGE,
                field="audio",
                context={"filename": filename, "mime_type": mime_type},
            )

        # ── Step 3: Persist recording and items ──────────────────────────
        try:
            return await self._store(db, processed.transcript, processed.extraction)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Unexpected error storing recording: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to process recording",
                context={"original_error": type(e).__name__},
            )

    async def _store(
        self,
        db: AsyncSession,
        transcript: str,
        extraction: ExtractionResult,
    ) -> ProcessRecordingResponse:
        now = datetime.now(timezone.utc)
        recording = Recording(
            id=uuid.uuid4(),
            transcription=transcript,
            processed_at=now,
            created_at=now,
        )
        db.add(recording)

        tasks: List[Task] = [
            Task(
                id=uuid.uuid4(),
                recording_id=recording.id,
                task=item.task,
                day=item.day,
                hour=item.hour,
                done=False,
                created_at=now,
                updated_at=now,
            )
            for item in extraction.tasks
        ]
        notes: List[Note] = [
            Note(
                id=uuid.uuid4(),
                recording_id=recording.id,
                title=item.title,
                content=item.content,
                created_at=now,
                updated_at=now,
            )
            for item in extraction.notes
        ]
        reminders: List[Reminder] = [
            Reminder(
                id=uuid.uuid4(),
                recording_id=recording.id,
                message=item.message,
                remind_at=item.remind_at,
                notified=False,
                created_at=now,
                updated_at=now,
            )
            for item in extraction.reminders
        ]
        db.add_all([*tasks, *notes, *reminders])
        await db.flush()

        logger.info(
            "Recording %s stored with %d task(s), %d note(s), %d reminder(s)",
            recording.id,
            len(tasks),
            len(notes),
            len(reminders),
        )

        return ProcessRecordingResponse(
            success=True,
            recording=RecordingSummary.model_validate(recording),
            extracted=ExtractedItems(
                tasks=[TaskResponse.model_validate(t) for t in tasks],
                notes=[NoteResponse.model_validate(n) for n in notes],
                reminders=[ReminderResponse.model_validate(r) for r in reminders],
            ),
        )

    async def _get_or_404(self, db: AsyncSession, recording_id: uuid.UUID) -> Recording:
        result = await db.execute(select(Recording).where(Recording.id == recording_id))
        recording = result.scalar_one_or_none()
        if recording is None:
            raise NotFoundError(resource="recording", resource_id=str(recording_id))
        return recording

    async def list_recordings(self, db: AsyncSession, limit: int = 50) -> RecordingListResponse:
        """Most recent recordings first, capped at `limit`."""
        try:
            result = await db.execute(
                select(Recording).order_by(Recording.created_at.desc()).limit(limit)
            )
            return RecordingListResponse(
                recordings=[RecordingResponse.model_validate(r) for r in result.scalars().all()]
            )
        except Exception as e:
            logger.error("Database error listing recordings: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get recordings",
                context={"error_type": type(e).__name__},
            )

    async def get_recording(self, db: AsyncSession, recording_id: uuid.UUID) -> RecordingDetailResponse:
        """
        A recording with everything extracted from it.

        Query plan: one lookup by primary key, then one indexed query per
        item table (recording_id).
        """
        try:
            recording = await self._get_or_404(db, recording_id)

            tasks = (await db.execute(
                select(Task).where(Task.recording_id == recording_id).order_by(Task.day.asc())
            )).scalars().all()
            notes = (await db.execute(
                select(Note).where(Note.recording_id == recording_id).order_by(Note.created_at.asc())
            )).scalars().all()
            reminders = (await db.execute(
                select(Reminder).where(Reminder.recording_id == recording_id).order_by(Reminder.remind_at.asc())
            )).scalars().all()

            return RecordingDetailResponse(
                recording=RecordingResponse.model_validate(recording),
                extracted=ExtractedItems(
                    tasks=[TaskResponse.model_validate(t) for t in tasks],
                    notes=[NoteResponse.model_validate(n) for n in notes],
                    reminders=[ReminderResponse.model_validate(r) for r in reminders],
                ),
            )
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error fetching recording %s: %s", recording_id, str(e))
            raise DatabaseError(
                message="Failed to get recording",
                context={"recording_id": str(recording_id)},
            )

    async def update_recording(
        self,
        db: AsyncSession,
        recording_id: uuid.UUID,
        payload: RecordingUpdate,
    ) -> RecordingResponse:
        """Replace the stored transcript. Extracted items are not re-derived."""
        try:
            recording = await self._get_or_404(db, recording_id)
            recording.transcription = payload.transcription
            await db.flush()
            return RecordingResponse.model_validate(recording)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error updating recording %s: %s", recording_id, str(e))
            raise DatabaseError(
                message="Failed to update recording",
                context={"recording_id": str(recording_id)},
            )

    async def delete_recording(self, db: AsyncSession, recording_id: uuid.UUID) -> None:
        """Delete a recording and every task, note and reminder extracted from it."""
        try:
            recording = await self._get_or_404(db, recording_id)
            # Explicit so the cascade also holds on SQLite without foreign_keys=ON
            for model in (Task, Note, Reminder):
                await db.execute(delete(model).where(model.recording_id == recording_id))
            await db.delete(recording)
            await db.flush()
            logger.info("Recording deleted with its items: %s", recording_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error deleting recording %s: %s", recording_id, str(e))
            raise DatabaseError(
                message="Failed to delete recording",
                context={"recording_id": str(recording_id)},
            )


recording_service = RecordingService()
