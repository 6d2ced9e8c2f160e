"""Create recordings, tasks, notes and reminders tables

Revision ID: 001
Revises: None
Create Date: 2026-10-17 00:00:00.000000+00:00

What:  Initial MemoTap schema.
How:   recordings is created first; the three item tables reference it with
       ON DELETE CASCADE so deleting a recording removes what was extracted
       from it. Manually created items have recording_id NULL.

Rollback: downgrade() drops all four tables (all data lost).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def _recording_fk() -> sa.Column:
    return sa.Column(
        "recording_id",
        sa.Uuid(),
        sa.ForeignKey("recordings.id", ondelete="CASCADE"),
        nullable=True,
    )


def upgrade() -> None:
    op.create_table(
        "recordings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("transcription", sa.Text(), nullable=False,
                  comment="Verbatim transcript produced by Gemini"),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=False,
                  comment="When the extraction pipeline finished (UTC)"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id", name="pk_recordings"),
    )
    op.create_index("idx_recordings_created_at", "recordings", ["created_at"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        _recording_fk(),
        sa.Column("task", sa.Text(), nullable=False),
        sa.Column("day", sa.Date(), nullable=False),
        sa.Column("hour", sa.String(5), nullable=True),
        sa.Column("done", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_tasks"),
    )
    op.create_index("idx_tasks_done_day", "tasks", ["done", "day"])
    op.create_index("idx_tasks_day", "tasks", ["day"])
    op.create_index("idx_tasks_recording_id", "tasks", ["recording_id"])

    op.create_table(
        "notes",
        sa.Column("id", sa.Uuid(), nullable=False),
        _recording_fk(),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_notes"),
    )
    op.create_index("idx_notes_created_at", "notes", ["created_at"])
    op.create_index("idx_notes_recording_id", "notes", ["recording_id"])

    op.create_table(
        "reminders",
        sa.Column("id", sa.Uuid(), nullable=False),
        _recording_fk(),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("remind_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_reminders"),
    )
    op.create_index("idx_reminders_remind_at", "reminders", ["remind_at"])
    op.create_index("idx_reminders_notified_remind_at", "reminders", ["notified", "remind_at"])
    op.create_index("idx_reminders_recording_id", "reminders", ["recording_id"])


def downgrade() -> None:
    for table in ("reminders", "notes", "tasks"):
        op.drop_table(table)
    op.drop_index("idx_recordings_created_at", table_name="recordings")
    op.drop_table("recordings")
