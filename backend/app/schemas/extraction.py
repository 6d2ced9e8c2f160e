"""
MemoTap Backend — Extraction Domain Types
===========================================

What:  Pydantic models for what the extraction pipeline produces.
How:   Frozen models with tuple fields — once the pipeline returns an
       ExtractionResult nothing can append to or edit it. The three category
       tuples are always present, possibly empty.
Who:   Built by response_parser; returned by ExtractionPipeline; consumed by
       RecordingService, which persists each item.

Field conventions (mirrored in the extraction prompt):
    - task.day:          calendar day (YYYY-MM-DD)
    - task.hour:         "HH:MM" 24h, or null when no time was mentioned
    - note.title:        short title, or null
    - reminder.remind_at: absolute timestamp; naive values are interpreted in
                          the timezone passed as validation context ("tz")
"""

import re
from datetime import date, datetime, time, tzinfo
from typing import Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field, ValidationInfo, field_validator

_HOUR_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


class ExtractedTask(BaseModel):
    """An action item pulled from the transcript."""
    task: str = Field(min_length=1, description="Task description, in the transcript's language")
    day: date = Field(description="Day the task is due (YYYY-MM-DD)")
    hour: Optional[str] = Field(default=None, description="Time of day (HH:MM, 24h) or null")

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("hour", mode="before")
    @classmethod
    def normalize_hour(cls, v):
        """Accepts H:MM / HH:MM / HH:MM:SS; anything unreadable becomes null."""
        if v is None or not isinstance(v, str):
            return None
        match = _HOUR_PATTERN.match(v.strip())
        if not match:
            return None
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            return None
        return f"{hours:02d}:{minutes:02d}"


class ExtractedNote(BaseModel):
    """An idea or piece of information that is neither a task nor a reminder."""
    title: Optional[str] = Field(default=None, description="Short title or null")
    content: str = Field(min_length=1, description="Full note text, in the transcript's language")

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("title", mode="before")
    @classmethod
    def blank_title_is_null(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ExtractedReminder(BaseModel):
    """Something the user wants to be reminded about at a specific moment."""
    message: str = Field(min_length=1, description="Reminder text, in the transcript's language")
    remind_at: datetime = Field(
        validation_alias=AliasChoices("remindAt", "remind_at"),
        description="When to remind (timezone-aware)",
    )

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("remind_at")
    @classmethod
    def attach_timezone(cls, v: datetime, info: ValidationInfo) -> datetime:
        """Naive timestamps are read in the request's timezone (context key "tz")."""
        if v.tzinfo is None:
            tz: Optional[tzinfo] = (info.context or {}).get("tz")
            if tz is None:
                raise ValueError("remind_at has no timezone and no default timezone was given")
            v = v.replace(tzinfo=tz)
        return v


class ExtractionResult(BaseModel):
    """
    Categorized content of one transcript.

    Invariant: tasks, notes and reminders are always present (possibly
    empty) — the parser substitutes empty tuples rather than leaving a
    category out.
    """
    tasks: Tuple[ExtractedTask, ...] = Field(default=())
    notes: Tuple[ExtractedNote, ...] = Field(default=())
    reminders: Tuple[ExtractedReminder, ...] = Field(default=())

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "ExtractionResult":
        return cls(tasks=(), notes=(), reminders=())

    @property
    def is_empty(self) -> bool:
        return not (self.tasks or self.notes or self.reminders)


class TranscriptionContext(BaseModel):
    """
    Snapshot of "now" taken once per extraction request.

    Embedded in the prompt so that "tomorrow" or "next Monday" resolve
    against a single fixed moment for the whole request.
    """
    today: date
    weekday: int = Field(ge=0, le=6, description="Monday=0 … Sunday=6")
    now: time
    timezone: str

    model_config = {"frozen": True}

    @classmethod
    def capture(cls, tz: tzinfo, tz_name: str, at: Optional[datetime] = None) -> "TranscriptionContext":
        """Build the snapshot from `at` (default: the current time) in `tz`."""
        moment = (at or datetime.now(tz)).astimezone(tz)
        return cls(
            today=moment.date(),
            weekday=moment.weekday(),
            now=moment.time().replace(second=0, microsecond=0),
            timezone=tz_name,
        )

    @property
    def weekday_name(self) -> str:
        return self.today.strftime("%A")

    def describe(self) -> str:
        """Prompt sentence, e.g. 'Today is Friday, 2024-01-19. The current time is 14:05 (UTC).'"""
        return (
            f"Today is {self.weekday_name}, {self.today.isoformat()}. "
            f"The current time is {self.now.strftime('%H:%M')} ({self.timezone})."
        )


class ProcessedRecording(BaseModel):
    """What the pipeline hands back for one audio submission."""
    transcript: str
    extraction: ExtractionResult

    model_config = {"frozen": True}
