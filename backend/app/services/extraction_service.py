"""
MemoTap Backend — AI Extraction Pipeline
==========================================

What:  Turns one audio recording into a transcript plus categorized tasks,
       notes and reminders, using Gemini with API-key failover.
How:   Two sequential model calls — transcribe, then extract — each wrapped
       in a tenacity retry loop bound to the shared CredentialPool.
Who:   Built once in the application lifespan (stored on app.state) and
       injected into RecordingService via a FastAPI dependency.
When:  For every POST /api/recordings/process.

State Machine (one submission):
    Received → Transcribing ─┬─▶ TranscriptionEmpty → Done (empty result)
                             └─▶ Transcribed → Extracting → Done

Failover loop (each model call independently):
    attempt with current key
      ├─ success                         → return reply
      ├─ non-quota error                 → fail now (no rotation consumed)
      └─ quota / rate-limit error        → pool.mark_current_failed()
            ├─ True  (another key ready) → retry with the new key
            └─ False (all keys failed)   → PoolExhaustedError
    more than max_attempts attempts      → RetryBudgetExceededError
"""

import logging
import uuid
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, TypeVar
from zoneinfo import ZoneInfo

from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

from app.exceptions import (
    ExtractionFailedError,
    MemoTapError,
    PoolExhaustedError,
    RetryBudgetExceededError,
    TranscriptionFailedError,
)
from app.schemas.extraction import ExtractionResult, ProcessedRecording, TranscriptionContext
from app.services.key_pool import CredentialPool, is_retryable_failure
from app.services.llm_base import GenerativeTransport
from app.services.response_parser import parse_extraction_response

logger = logging.getLogger(__name__)

T = TypeVar("T")


TRANSCRIPTION_INSTRUCTION = (
    "Transcribe this audio recording exactly as spoken. "
    "Only output the transcription, nothing else."
)

EXTRACTION_PROMPT_TEMPLATE = """{context}

Analyze the following voice transcription and extract structured data. Categorize the content into:

1. **Tasks**: Action items with specific things to do. Include:
   - task: The task description
   - day: The date in ISO format (YYYY-MM-DD). Resolve relative dates like "tomorrow" or "next Monday" against today's date.
   - hour: Time in 24h format (HH:MM) if one was mentioned, otherwise null

2. **Notes**: Ideas, thoughts, information to remember that aren't tasks or reminders. Include:
   - title: A short descriptive title (generate one if not explicit), or null
   - content: The full note content

3. **Reminders**: Things to be reminded about at a specific time/date. Include:
   - message: What to be reminded about
   - remindAt: Local datetime (YYYY-MM-DDTHH:MM:SS) for when to send the reminder

Guidelines:
- If no specific date is mentioned for a task, use today's date
- If no specific time is mentioned for a reminder, default to 09:00
- Separate content appropriately - one voice recording may contain multiple items
- If content doesn't fit any category, make it a note
- Be smart about natural language dates and times ("tomorrow", "next week", "in 2 hours")
- Write every task, title, content and message in the SAME language as the transcription. Do not translate; keep the speaker's wording
- Never omit a field: use null for an unknown hour or title

Transcription:
"{transcript}"

Respond ONLY with a valid JSON object in this exact format (no markdown, no explanation):
{{
  "tasks": [
    {{ "task": "string", "day": "YYYY-MM-DD", "hour": "HH:MM" or null }}
  ],
  "notes": [
    {{ "title": "string" or null, "content": "string" }}
  ],
  "reminders": [
    {{ "message": "string", "remindAt": "YYYY-MM-DDTHH:MM:SS" }}
  ]
}}

If a category has no items, use an empty array []."""


def build_extraction_prompt(transcript: str, context: TranscriptionContext) -> str:
    """Fill the extraction prompt with the request's time snapshot and transcript."""
    return EXTRACTION_PROMPT_TEMPLATE.format(context=context.describe(), transcript=transcript)


class ExtractionPipeline:
    """
    Transcribe → extract orchestration with key failover.

    Dependencies are passed in explicitly; the pool is shared by every
    request the pipeline serves, so one exhausted key is skipped by all of
    them from then on.

    Example:
        pipeline = ExtractionPipeline(transport, CredentialPool(["k1", "k2"]), "gemini-2.5-flash")
        result = await pipeline.process_recording(audio_bytes, "audio/webm")
        result.transcript, result.extraction.tasks
    """

    def __init__(
        self,
        transport: GenerativeTransport,
        key_pool: CredentialPool,
        model: str,
        max_attempts: int = 5,
        timezone: str = "UTC",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.transport = transport
        self.key_pool = key_pool
        self.model = model
        self.max_attempts = max_attempts
        self.timezone_name = timezone
        self.tz = ZoneInfo(timezone)
        # Injectable "now" so tests can pin relative-date resolution
        self._clock = clock or (lambda: datetime.now(self.tz))

    # ── Failover Loop ─────────────────────────────────────────────────────

    async def _call_with_failover(
        self,
        operation: str,
        call: Callable[[str], Awaitable[T]],
        request_id: str,
    ) -> T:
        """
        Run `call(api_key)` until it succeeds, rotating keys on quota errors.

        Raises:
            PoolEmptyError / PoolExhaustedError: no usable key (before or during)
            RetryBudgetExceededError: max_attempts quota failures in a row
            Exception: the original error for any non-quota failure
        """
        used_indices: List[int] = []

        def rotate_on_quota(error: BaseException) -> bool:
            if isinstance(error, MemoTapError) or not is_retryable_failure(error):
                return False
            logger.warning(
                "[%s] %s hit a quota/rate limit on key %d: %s",
                request_id,
                operation,
                used_indices[-1] + 1,
                error,
            )
            if not self.key_pool.mark_current_failed(used_indices[-1]):
                raise PoolExhaustedError(
                    total_keys=len(self.key_pool),
                    context={"request_id": request_id, "operation": operation},
                ) from error
            return True

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception(rotate_on_quota),
            before_sleep=before_sleep_log(logger, logging.INFO),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    index, api_key = self.key_pool.current_selection()
                    used_indices.append(index)
                    return await call(api_key)
        except RetryError as e:
            logger.error(
                "[%s] %s gave up after %d attempts: %s",
                request_id,
                operation,
                self.max_attempts,
                e.last_attempt.exception() if e.last_attempt else "unknown error",
            )
            raise RetryBudgetExceededError(
                attempts=self.max_attempts,
                operation=operation,
                context={"request_id": request_id},
            ) from e

    # ── Pipeline Steps ────────────────────────────────────────────────────

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str,
        request_id: Optional[str] = None,
    ) -> str:
        """
        Transcribe raw audio with the currently selected key.

        Returns:
            The transcript with surrounding whitespace removed ("" for silence).

        Raises:
            TranscriptionFailedError: the model call failed for a non-quota reason
            PoolEmptyError / PoolExhaustedError / RetryBudgetExceededError
        """
        request_id = request_id or str(uuid.uuid4())[:8]
        logger.info("[%s] Transcribing %d bytes of %s", request_id, len(audio), mime_type)

        async def call(api_key: str) -> str:
            return await self.transport.generate_from_audio(
                api_key=api_key,
                model=self.model,
                audio=audio,
                mime_type=mime_type,
                instruction=TRANSCRIPTION_INSTRUCTION,
            )

        try:
            text = await self._call_with_failover("transcription", call, request_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("[%s] Transcription failed: %s", request_id, str(e))
            raise TranscriptionFailedError(
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        return (text or "").strip()

    async def extract_structured(
        self,
        transcript: str,
        request_id: Optional[str] = None,
    ) -> ExtractionResult:
        """
        Ask the model to sort a transcript into tasks, notes and reminders.

        The prompt carries a TranscriptionContext captured once here, so all
        relative dates in this request resolve against the same moment.

        Raises:
            ExtractionFailedError: the model call failed for a non-quota reason
            PoolEmptyError / PoolExhaustedError / RetryBudgetExceededError
        """
        request_id = request_id or str(uuid.uuid4())[:8]
        context = TranscriptionContext.capture(self.tz, self.timezone_name, at=self._clock())
        prompt = build_extraction_prompt(transcript, context)
        logger.info(
            "[%s] Extracting structured data from %d chars (%s)",
            request_id,
            len(transcript),
            context.today.isoformat(),
        )

        async def call(api_key: str) -> str:
            return await self.transport.generate_from_text(
                api_key=api_key,
                model=self.model,
                prompt=prompt,
            )

        try:
            raw = await self._call_with_failover("extraction", call, request_id)
        except MemoTapError:
            raise
        except Exception as e:
            logger.error("[%s] Extraction failed: %s", request_id, str(e))
            raise ExtractionFailedError(
                context={"request_id": request_id, "error_type": type(e).__name__},
            ) from e

        return parse_extraction_response(raw, self.tz)

    async def check_provider(self) -> bool:
        """
        Ask the transport whether Gemini answers with the current key.

        False when no key is usable; never consumes generation quota.
        """
        try:
            api_key = self.key_pool.current_credential()
        except MemoTapError as e:
            logger.warning("Gemini reachability not checked: %s", e.message)
            return False
        return await self.transport.health_check(api_key)

    async def process_recording(self, audio: bytes, mime_type: str) -> ProcessedRecording:
        """
        Full pipeline for one submission: transcribe, then extract.

        An empty or whitespace-only transcript short-circuits to an empty
        ExtractionResult without a second model call.
        """
        request_id = str(uuid.uuid4())[:8]

        transcript = await self.transcribe(audio, mime_type, request_id=request_id)
        if not transcript:
            logger.info("[%s] Transcription empty, skipping extraction", request_id)
            return ProcessedRecording(transcript="", extraction=ExtractionResult.empty())

        extraction = await self.extract_structured(transcript, request_id=request_id)
        logger.info(
            "[%s] Done: %d task(s), %d note(s), %d reminder(s)",
            request_id,
            len(extraction.tasks),
            len(extraction.notes),
            len(extraction.reminders),
        )
        return ProcessedRecording(transcript=transcript, extraction=extraction)
