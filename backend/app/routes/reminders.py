"""
MemoTap Backend — Reminder Route Handlers
===========================================

What:  CRUD endpoints for /api/reminders, soonest first.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.reminder import (
    ReminderCreate,
    ReminderEnvelope,
    ReminderListResponse,
    ReminderUpdate,
)
from app.services.reminder_service import reminder_service

router = APIRouter(prefix="/api/reminders", tags=["Reminders"])

_NOT_FOUND = {404: {"description": "Reminder not found", "model": ErrorResponse}}


@router.get("", response_model=ReminderListResponse, summary="List reminders (soonest first)")
async def list_reminders(
    notified: Optional[bool] = Query(default=None, description="Filter on delivery state"),
    db: AsyncSession = Depends(get_db_session),
) -> ReminderListResponse:
    return await reminder_service.list_reminders(db=db, notified=notified)


@router.post("", status_code=201, response_model=ReminderEnvelope, summary="Create a reminder")
async def create_reminder(
    payload: ReminderCreate,
    db: AsyncSession = Depends(get_db_session),
) -> ReminderEnvelope:
    return ReminderEnvelope(reminder=await reminder_service.create_reminder(db=db, payload=payload))


@router.get("/{reminder_id}", response_model=ReminderEnvelope, responses=_NOT_FOUND, summary="Get a reminder")
async def get_reminder(reminder_id: UUID, db: AsyncSession = Depends(get_db_session)) -> ReminderEnvelope:
    return ReminderEnvelope(reminder=await reminder_service.get_reminder(db=db, reminder_id=reminder_id))


@router.patch("/{reminder_id}", response_model=ReminderEnvelope, responses=_NOT_FOUND, summary="Update a reminder")
async def update_reminder(
    reminder_id: UUID,
    payload: ReminderUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> ReminderEnvelope:
    return ReminderEnvelope(
        reminder=await reminder_service.update_reminder(db=db, reminder_id=reminder_id, payload=payload)
    )


@router.delete("/{reminder_id}", response_model=MessageResponse, responses=_NOT_FOUND, summary="Delete a reminder")
async def delete_reminder(reminder_id: UUID, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await reminder_service.delete_reminder(db=db, reminder_id=reminder_id)
    return MessageResponse(message="Reminder deleted successfully")
