"""
MemoTap Backend — Task / Note / Reminder Service Unit Tests
=============================================================

What:  CRUD business logic for the three extracted item types.
How:   Mock DB sessions; rows are real ORM instances so responses validate
       exactly as they would against PostgreSQL.

What we test:
    ✅ Create sets defaults (done / notified False) and flushes
    ✅ Partial updates only touch fields that were sent
    ✅ Missing rows raise NotFoundError
    ✅ Unexpected DB failures become DatabaseError
"""

import uuid
from datetime import date, datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.exceptions import DatabaseError, NotFoundError
from app.models.note import Note
from app.models.reminder import Reminder
from app.models.task import Task
from app.schemas.note import NoteCreate, NoteUpdate
from app.schemas.reminder import ReminderCreate, ReminderUpdate
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.note_service import NoteService
from app.services.reminder_service import ReminderService
from app.services.task_service import TaskService

UTC = timezone.utc
NOW = datetime(2024, 1, 19, 14, 5, tzinfo=UTC)


def _found(row):
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    return result


def _rows(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def _task(**overrides):
    fields = dict(
        id=uuid.uuid4(), recording_id=None, task="Buy milk", day=date(2024, 1, 20),
        hour="09:00", done=False, created_at=NOW, updated_at=NOW,
    )
    fields.update(overrides)
    return Task(**fields)


def _note(**overrides):
    fields = dict(id=uuid.uuid4(), recording_id=None, title="Ideas", content="Paint the fence",
                  created_at=NOW, updated_at=NOW)
    fields.update(overrides)
    return Note(**fields)


def _reminder(**overrides):
    fields = dict(id=uuid.uuid4(), recording_id=None, message="Call mum",
                  remind_at=datetime(2024, 1, 19, 18, 0, tzinfo=UTC), notified=False,
                  created_at=NOW, updated_at=NOW)
    fields.update(overrides)
    return Reminder(**fields)


class TestTaskService:

    def setup_method(self):
        self.service = TaskService()

    @pytest.mark.asyncio
    async def test_create_task(self, mock_db_session):
        payload = TaskCreate(task="  Buy milk ", day=date(2024, 1, 20), hour="08:15")

        task = await self.service.create_task(mock_db_session, payload)

        assert task.task == "Buy milk"
        assert task.hour == "08:15"
        assert task.done is False
        assert task.recording_id is None
        mock_db_session.add.assert_called_once()
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_tasks(self, mock_db_session):
        mock_db_session.execute.return_value = _rows([_task(), _task(task="Walk dog", hour=None)])

        listing = await self.service.list_tasks(mock_db_session, done=False)

        assert [t.task for t in listing.tasks] == ["Buy milk", "Walk dog"]
        mock_db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_task_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = _found(None)

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_task(mock_db_session, uuid.uuid4())
        assert "task" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_mark_done_leaves_other_fields(self, mock_db_session):
        row = _task()
        mock_db_session.execute.return_value = _found(row)

        updated = await self.service.update_task(mock_db_session, row.id, TaskUpdate(done=True))

        assert updated.done is True
        assert updated.task == "Buy milk"
        assert updated.hour == "09:00"

    @pytest.mark.asyncio
    async def test_hour_can_be_cleared(self, mock_db_session):
        row = _task()
        mock_db_session.execute.return_value = _found(row)

        updated = await self.service.update_task(
            mock_db_session, row.id, TaskUpdate.model_validate({"hour": None, "task": None})
        )

        assert updated.hour is None
        assert updated.task == "Buy milk"

    @pytest.mark.asyncio
    async def test_delete_task(self, mock_db_session):
        row = _task()
        mock_db_session.execute.return_value = _found(row)

        await self.service.delete_task(mock_db_session, row.id)

        mock_db_session.delete.assert_awaited_once_with(row)

    @pytest.mark.asyncio
    async def test_database_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = RuntimeError("connection lost")

        with pytest.raises(DatabaseError):
            await self.service.list_tasks(mock_db_session)


class TestNoteService:

    def setup_method(self):
        self.service = NoteService()

    @pytest.mark.asyncio
    async def test_create_note_blank_title(self, mock_db_session):
        note = await self.service.create_note(mock_db_session, NoteCreate(title="", content="Body"))

        assert note.title is None
        assert note.content == "Body"

    @pytest.mark.asyncio
    async def test_list_notes(self, mock_db_session):
        mock_db_session.execute.return_value = _rows([_note(), _note(title=None)])

        listing = await self.service.list_notes(mock_db_session)

        assert len(listing.notes) == 2
        assert listing.notes[1].title is None

    @pytest.mark.asyncio
    async def test_update_clears_title_keeps_content(self, mock_db_session):
        row = _note()
        mock_db_session.execute.return_value = _found(row)

        updated = await self.service.update_note(
            mock_db_session, row.id, NoteUpdate.model_validate({"title": None, "content": None})
        )

        assert updated.title is None
        assert updated.content == "Paint the fence"

    @pytest.mark.asyncio
    async def test_delete_note_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = _found(None)

        with pytest.raises(NotFoundError):
            await self.service.delete_note(mock_db_session, uuid.uuid4())
        mock_db_session.delete.assert_not_awaited()


class TestReminderService:

    def setup_method(self):
        self.service = ReminderService()

    @pytest.mark.asyncio
    async def test_create_reminder_naive_time_gets_timezone(self, mock_db_session):
        payload = ReminderCreate(message="Call mum", remind_at=datetime(2024, 1, 19, 18, 0))

        reminder = await self.service.create_reminder(mock_db_session, payload)

        assert reminder.notified is False
        assert reminder.remind_at.utcoffset() is not None
        assert reminder.remind_at.replace(tzinfo=None) == datetime(2024, 1, 19, 18, 0)

    @pytest.mark.asyncio
    async def test_mark_notified(self, mock_db_session):
        row = _reminder()
        mock_db_session.execute.return_value = _found(row)

        updated = await self.service.update_reminder(
            mock_db_session, row.id, ReminderUpdate(notified=True)
        )

        assert updated.notified is True
        assert updated.message == "Call mum"

    @pytest.mark.asyncio
    async def test_list_reminders(self, mock_db_session):
        mock_db_session.execute.return_value = _rows([_reminder()])

        listing = await self.service.list_reminders(mock_db_session, notified=False)

        assert [r.message for r in listing.reminders] == ["Call mum"]

    @pytest.mark.asyncio
    async def test_get_reminder_not_found(self, mock_db_session):
        mock_db_session.execute.return_value = _found(None)

        with pytest.raises(NotFoundError):
            await self.service.get_reminder(mock_db_session, uuid.uuid4())
