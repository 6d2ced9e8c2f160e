"""
MemoTap Backend — Task Route Handlers
=======================================

What:  CRUD endpoints for /api/tasks.
How:   Thin handlers; all logic lives in TaskService.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.task import TaskCreate, TaskEnvelope, TaskListResponse, TaskUpdate
from app.services.task_service import task_service

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])

_NOT_FOUND = {404: {"description": "Task not found", "model": ErrorResponse}}


@router.get(
    "",
    response_model=TaskListResponse,
    summary="List tasks",
    description="Sorted by day, then hour (untimed last), then newest first.",
)
async def list_tasks(
    done: Optional[bool] = Query(default=None, description="Only completed (true) or open (false) tasks"),
    day: Optional[date] = Query(default=None, description="Only tasks due on this day (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db_session),
) -> TaskListResponse:
    return await task_service.list_tasks(db=db, done=done, day=day)


@router.post("", status_code=201, response_model=TaskEnvelope, summary="Create a task")
async def create_task(
    payload: TaskCreate,
    db: AsyncSession = Depends(get_db_session),
) -> TaskEnvelope:
    return TaskEnvelope(task=await task_service.create_task(db=db, payload=payload))


@router.get("/{task_id}", response_model=TaskEnvelope, responses=_NOT_FOUND, summary="Get a task")
async def get_task(task_id: UUID, db: AsyncSession = Depends(get_db_session)) -> TaskEnvelope:
    return TaskEnvelope(task=await task_service.get_task(db=db, task_id=task_id))


@router.patch("/{task_id}", response_model=TaskEnvelope, responses=_NOT_FOUND, summary="Update a task")
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> TaskEnvelope:
    return TaskEnvelope(task=await task_service.update_task(db=db, task_id=task_id, payload=payload))


@router.delete("/{task_id}", response_model=MessageResponse, responses=_NOT_FOUND, summary="Delete a task")
async def delete_task(task_id: UUID, db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    await task_service.delete_task(db=db, task_id=task_id)
    return MessageResponse(message="Task deleted successfully")
