"""
MemoTap Backend — Recording Route Handlers
============================================

What:  POST /api/recordings/process (upload and extract) plus list, detail,
       update and delete of stored recordings.
How:   Reads the multipart upload, delegates to RecordingService, returns JSON.
Who:   Called by the frontend recorder and history views.

Request Flow (process):
    1. Client sends multipart/form-data with an 'audio' field
    2. FastAPI extracts the UploadFile
    3. Bytes are read into memory (bounded by MAX_AUDIO_SIZE validation)
    4. RecordingService: validate → transcribe → extract → persist
    5. 201 Created with ProcessRecordingResponse
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_extraction_pipeline
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.recording import (
    ProcessRecordingResponse,
    RecordingDetailResponse,
    RecordingEnvelope,
    RecordingListResponse,
    RecordingUpdate,
)
from app.services.extraction_service import ExtractionPipeline
from app.services.recording_service import recording_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recordings", tags=["Recordings"])


@router.post(
    "/process",
    status_code=201,
    response_model=ProcessRecordingResponse,
    responses={
        201: {"description": "Recording transcribed and items extracted", "model": ProcessRecordingResponse},
        400: {"description": "Invalid audio, or nothing could be transcribed", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        503: {"description": "AI service unavailable (all API keys exhausted)", "model": ErrorResponse},
    },
    summary="Process a voice recording",
    description=(
        "Upload an audio recording (mp3, wav, webm, ogg, m4a, aac; max 25MB). "
        "It is transcribed by Gemini and split into tasks, notes and reminders, "
        "which are stored and returned."
    ),
)
async def process_recording(
    audio: UploadFile = File(..., description="Voice recording"),
    db: AsyncSession = Depends(get_db_session),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
) -> ProcessRecordingResponse:
    """
    Error responses (handled by global exception handlers):
        HTTP 400: ValidationError (bad type/size, empty transcript)
        HTTP 503: LLMServiceError family (Gemini failure, key pool exhausted)
        HTTP 500: DatabaseError
    """
    content = await audio.read()
    logger.info(
        "Received recording: filename=%s, type=%s, size=%d bytes",
        audio.filename or "unknown",
        audio.content_type,
        len(content),
    )

    try:
        return await recording_service.process_recording(
            db=db,
            pipeline=pipeline,
            filename=audio.filename,
            content_type=audio.content_type,
            content=content,
            content_length=audio.size,
        )
    finally:
        await audio.close()


@router.get(
    "",
    response_model=RecordingListResponse,
    responses={500: {"description": "Server error", "model": ErrorResponse}},
    summary="List recordings (newest first)",
)
async def list_recordings(
    limit: int = Query(default=50, ge=1, le=200, description="Maximum recordings to return"),
    db: AsyncSession = Depends(get_db_session),
) -> RecordingListResponse:
    return await recording_service.list_recordings(db=db, limit=limit)


@router.get(
    "/{recording_id}",
    response_model=RecordingDetailResponse,
    responses={404: {"description": "Recording not found", "model": ErrorResponse}},
    summary="Get a recording with its extracted items",
)
async def get_recording(
    recording_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RecordingDetailResponse:
    return await recording_service.get_recording(db=db, recording_id=recording_id)


@router.put(
    "/{recording_id}",
    response_model=RecordingEnvelope,
    responses={404: {"description": "Recording not found", "model": ErrorResponse}},
    summary="Correct a recording's transcription",
)
async def update_recording(
    recording_id: UUID,
    payload: RecordingUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> RecordingEnvelope:
    recording = await recording_service.update_recording(db=db, recording_id=recording_id, payload=payload)
    return RecordingEnvelope(recording=recording)


@router.delete(
    "/{recording_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Recording not found", "model": ErrorResponse}},
    summary="Delete a recording and everything extracted from it",
)
async def delete_recording(
    recording_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await recording_service.delete_recording(db=db, recording_id=recording_id)
    return MessageResponse(message="Recording deleted successfully")
