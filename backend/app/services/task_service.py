"""
MemoTap Backend — Task Service
================================

What:  CRUD business logic for tasks.
How:   Stateless class; every method receives the request's AsyncSession.
       Database failures are wrapped in DatabaseError, missing rows become
       NotFoundError. The transaction is committed by get_db_session.
Who:   Called by the /api/tasks route handlers.

Ordering (GET /api/tasks):
    day ascending, then hour ascending (tasks without an hour last),
    then newest first.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DatabaseError, MemoTapError, NotFoundError
from app.models.task import Task
from app.schemas.task import TaskCreate, TaskListResponse, TaskResponse, TaskUpdate

logger = logging.getLogger(__name__)

# Columns a PATCH may set to null
_NULLABLE_FIELDS = {"hour"}


class TaskService:
    """Business logic layer for task operations."""

    async def _get_or_404(self, db: AsyncSession, task_id: uuid.UUID) -> Task:
        result = await db.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if task is None:
            raise NotFoundError(resource="task", resource_id=str(task_id))
        return task

    async def list_tasks(
        self,
        db: AsyncSession,
        done: Optional[bool] = None,
        day: Optional[date] = None,
    ) -> TaskListResponse:
        """
        List tasks, optionally filtered by completion state and/or due day.
        """
        try:
            query = select(Task)
            if done is not None:
                query = query.where(Task.done == done)
            if day is not None:
                query = query.where(Task.day == day)
            query = query.order_by(
                Task.day.asc(),
                Task.hour.asc().nulls_last(),
                Task.created_at.desc(),
            )

            result = await db.execute(query)
            tasks = result.scalars().all()
            return TaskListResponse(tasks=[TaskResponse.model_validate(t) for t in tasks])

        except Exception as e:
            logger.error("Database error listing tasks: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to get tasks",
                context={"error_type": type(e).__name__},
            )

    async def get_task(self, db: AsyncSession, task_id: uuid.UUID) -> TaskResponse:
        try:
            task = await self._get_or_404(db, task_id)
            return TaskResponse.model_validate(task)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error fetching task %s: %s", task_id, str(e))
            raise DatabaseError(message="Failed to get task", context={"task_id": str(task_id)})

    async def create_task(
        self,
        db: AsyncSession,
        payload: TaskCreate,
        recording_id: Optional[uuid.UUID] = None,
    ) -> TaskResponse:
        """Insert a task; `done` always starts False."""
        try:
            now = datetime.now(timezone.utc)
            task = Task(
                id=uuid.uuid4(),
                recording_id=recording_id,
                task=payload.task,
                day=payload.day,
                hour=payload.hour,
                done=False,
                created_at=now,
                updated_at=now,
            )
            db.add(task)
            await db.flush()
            logger.info("Task created: %s (day=%s)", task.id, task.day)
            return TaskResponse.model_validate(task)
        except Exception as e:
            logger.error("Database error creating task: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Failed to create task",
                context={"error_type": type(e).__name__},
            )

    async def update_task(
        self,
        db: AsyncSession,
        task_id: uuid.UUID,
        payload: TaskUpdate,
    ) -> TaskResponse:
        """
        Apply a partial update. Fields absent from the request body are left
        alone; only `hour` can be cleared with an explicit null.
        """
        try:
            task = await self._get_or_404(db, task_id)
            for field, value in payload.model_dump(exclude_unset=True).items():
                if value is None and field not in _NULLABLE_FIELDS:
                    continue
                setattr(task, field, value)
            task.updated_at = datetime.now(timezone.utc)
            await db.flush()
            return TaskResponse.model_validate(task)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error updating task %s: %s", task_id, str(e))
            raise DatabaseError(message="Failed to update task", context={"task_id": str(task_id)})

    async def delete_task(self, db: AsyncSession, task_id: uuid.UUID) -> None:
        try:
            task = await self._get_or_404(db, task_id)
            await db.delete(task)
            await db.flush()
            logger.info("Task deleted: %s", task_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("Database error deleting task %s: %s", task_id, str(e))
            raise DatabaseError(message="Failed to delete task", context={"task_id": str(task_id)})


task_service = TaskService()
