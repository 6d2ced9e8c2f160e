"""
MemoTap Backend — Notes Route Handlers
========================================

What:  CRUD endpoints for /api/notes (newest first).
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.note import NoteCreate, NoteEnvelope, NoteListResponse, NoteUpdate
from app.services.note_service import note_service

router = APIRouter(prefix="/api/notes", tags=["Notes"])

_NOT_FOUND = {404: {"description": "Note not found", "model": ErrorResponse}}


@router.get("", response_model=NoteListResponse, summary="List notes (newest first)")
async def list_notes(db: AsyncSession = Depends(get_db_session)) -> NoteListResponse:
    return await note_service.list_notes(db=db)


@router.post("", status_code=201, response_model=NoteEnvelope, summary="Create a note")
async def create_note(
    payload: NoteCreate,
    db: AsyncSession = Depends(get_db_session),
) -> NoteEnvelope:
    return NoteEnvelope(note=await note_service.create_note(db=db, payload=payload))


@router.get("/{note_id}", response_model=NoteEnvelope, responses=_NOT_FOUND, summary="Get a note")
async def get_note(note_id: UUID, db: AsyncSession = Depends(get_db_session)) -> NoteEnvelope:
    return NoteEnvelope(note=await note_service.get_note(db=db, note_id=note_id))


@router.patch("/{note_id}", response_model=NoteEnvelope, responses=_NOT_FOUND, summary="Update a note")
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> NoteEnvelope:
    return NoteEnvelope(note=await note_service.update_note(db=db, note_id=note_id, payload=payload))


@router.delete("/{note_id}", response_model=MessageResponse, responses=_NOT_FOUND, summary="Delete a note")
async def delete_note(note_id: UUID, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await note_service.delete_note(db=db, note_id=note_id)
    return MessageResponse(message="Note deleted successfully")
