"""
MemoTap Backend — Extraction Pipeline Unit Tests
==================================================

What:  Tests for ExtractionPipeline over a ScriptedTransport (no network).
How:   Each test scripts the replies/errors for the audio and text calls and
       then inspects which API key every call used.

What we test:
    ✅ Quota error on key 1 fails over to key 2; the switch sticks
    ✅ Non-quota errors fail immediately without consuming a rotation
    ✅ All keys exhausted → PoolExhaustedError
    ✅ Retry budget → RetryBudgetExceededError
    ✅ Empty transcript skips the extraction call
    ✅ Prompt carries the date/time snapshot, the transcript and the language rule
"""

import json
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from app.exceptions import (
    ExtractionFailedError,
    PoolEmptyError,
    PoolExhaustedError,
    RetryBudgetExceededError,
    TranscriptionFailedError,
)
from app.schemas.extraction import TranscriptionContext
from app.services.extraction_service import (
    TRANSCRIPTION_INSTRUCTION,
    build_extraction_prompt,
)
from app.services.key_pool import CredentialPool

EXTRACTION_REPLY = json.dumps({
    "tasks": [{"task": "Buy milk", "day": "2024-01-20", "hour": None}],
    "notes": [],
    "reminders": [{"message": "Call mum", "remindAt": "2024-01-19T18:00:00"}],
})


class TestFailover:

    @pytest.mark.asyncio
    async def test_quota_error_rotates_to_next_key(self, make_pipeline, make_transport):
        transport = make_transport(
            audio_replies=[Exception("429 Too Many Requests"), "Buy milk tomorrow."],
            text_replies=[EXTRACTION_REPLY],
        )
        pipeline = make_pipeline(transport)

        result = await pipeline.process_recording(b"audio", "audio/webm")

        assert result.transcript == "Buy milk tomorrow."
        assert transport.audio_keys == ["key-a", "key-b"]
        # Extraction starts on the key the transcription switched to
        assert transport.text_keys == ["key-b"]

        status = pipeline.key_pool.status()
        assert (status.current, status.failed, status.available) == (2, [1], 1)

    @pytest.mark.asyncio
    async def test_rotation_persists_across_requests(self, make_pipeline, make_transport):
        transport = make_transport(
            audio_replies=[Exception("Resource exhausted"), "first", "second"],
            text_replies=[EXTRACTION_REPLY, EXTRACTION_REPLY],
        )
        pipeline = make_pipeline(transport)

        await pipeline.process_recording(b"one", "audio/webm")
        await pipeline.process_recording(b"two", "audio/webm")

        assert transport.audio_keys == ["key-a", "key-b", "key-b"]

    @pytest.mark.asyncio
    async def test_non_quota_error_does_not_rotate(self, make_pipeline, make_transport):
        transport = make_transport(audio_replies=[Exception("400 INVALID_ARGUMENT: bad audio")])
        pipeline = make_pipeline(transport)

        with pytest.raises(TranscriptionFailedError) as exc_info:
            await pipeline.transcribe(b"audio", "audio/webm")

        assert transport.audio_keys == ["key-a"]
        assert pipeline.key_pool.status().failed == []
        assert exc_info.value.context["error_type"] == "Exception"

    @pytest.mark.asyncio
    async def test_extraction_non_quota_error(self, make_pipeline, make_transport):
        transport = make_transport(
            audio_replies=["Buy milk"],
            text_replies=[RuntimeError("connection reset")],
        )
        pipeline = make_pipeline(transport)

        with pytest.raises(ExtractionFailedError):
            await pipeline.process_recording(b"audio", "audio/webm")
        assert pipeline.key_pool.status().failed == []

    @pytest.mark.asyncio
    async def test_extraction_fails_over_too(self, make_pipeline, make_transport):
        transport = make_transport(
            audio_replies=["Buy milk"],
            text_replies=[Exception("Quota exceeded"), EXTRACTION_REPLY],
        )
        pipeline = make_pipeline(transport)

        result = await pipeline.process_recording(b"audio", "audio/webm")

        assert transport.text_keys == ["key-a", "key-b"]
        assert len(result.extraction.tasks) == 1

    @pytest.mark.asyncio
    async def test_all_keys_exhausted(self, make_pipeline, make_transport):
        transport = make_transport(
            audio_replies=[Exception("429 rate limit"), Exception("429 rate limit")],
        )
        pipeline = make_pipeline(transport)

        with pytest.raises(PoolExhaustedError) as exc_info:
            await pipeline.process_recording(b"audio", "audio/webm")

        assert "temporarily unavailable" in exc_info.value.message
        assert transport.audio_keys == ["key-a", "key-b"]
        assert transport.text_keys == []
        assert pipeline.key_pool.status().failed == [1, 2]

    @pytest.mark.asyncio
    async def test_exhausted_pool_rejects_next_request_without_calling(self, make_pipeline, make_transport):
        pool = CredentialPool(["only"])
        pool.mark_current_failed()
        transport = make_transport()
        pipeline = make_pipeline(transport, pool=pool)

        with pytest.raises(PoolExhaustedError):
            await pipeline.transcribe(b"audio", "audio/webm")
        assert transport.audio_keys == []

    @pytest.mark.asyncio
    async def test_empty_pool(self, make_pipeline, make_transport):
        transport = make_transport()
        pipeline = make_pipeline(transport, keys=())

        with pytest.raises(PoolEmptyError):
            await pipeline.process_recording(b"audio", "audio/webm")
        assert transport.audio_keys == []

    @pytest.mark.asyncio
    async def test_retry_budget_exceeded(self, make_pipeline, make_transport):
        keys = [f"key-{i}" for i in range(10)]
        transport = make_transport(audio_replies=[Exception("quota")] * 3)
        pipeline = make_pipeline(transport, keys=keys, max_attempts=3)

        with pytest.raises(RetryBudgetExceededError) as exc_info:
            await pipeline.transcribe(b"audio", "audio/webm")

        assert exc_info.value.context["attempts"] == 3
        assert transport.audio_keys == ["key-0", "key-1", "key-2"]
        status = pipeline.key_pool.status()
        assert status.failed == [1, 2, 3]
        assert status.available == 7


class TestPipelineSteps:

    @pytest.mark.asyncio
    async def test_transcript_is_stripped(self, make_pipeline, make_transport):
        transport = make_transport(audio_replies=["  Hello there \n"])
        pipeline = make_pipeline(transport)
        assert await pipeline.transcribe(b"audio", "audio/mp4") == "Hello there"
        assert transport.instructions == [TRANSCRIPTION_INSTRUCTION]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["", "   \n\t"])
    async def test_empty_transcript_skips_extraction(self, make_pipeline, make_transport, reply):
        transport = make_transport(audio_replies=[reply])
        pipeline = make_pipeline(transport)

        result = await pipeline.process_recording(b"silence", "audio/webm")

        assert result.transcript == ""
        assert result.extraction.is_empty
        assert transport.text_keys == []

    @pytest.mark.asyncio
    async def test_extraction_result_is_parsed(self, make_pipeline, make_transport):
        transport = make_transport(text_replies=["```json\n" + EXTRACTION_REPLY + "\n```"])
        pipeline = make_pipeline(transport, timezone_name="UTC")

        result = await pipeline.extract_structured("Buy milk tomorrow, call mum at six")

        assert result.tasks[0].task == "Buy milk"
        assert result.tasks[0].day == date(2024, 1, 20)
        assert result.tasks[0].hour is None
        assert result.notes == ()
        assert result.reminders[0].remind_at == datetime(2024, 1, 19, 18, 0, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_unusable_extraction_reply_is_empty_not_error(self, make_pipeline, make_transport):
        transport = make_transport(audio_replies=["Something"], text_replies=["I'm sorry, I can't."])
        pipeline = make_pipeline(transport)

        result = await pipeline.process_recording(b"audio", "audio/webm")

        assert result.transcript == "Something"
        assert result.extraction.is_empty

    @pytest.mark.asyncio
    async def test_prompt_contents(self, make_pipeline, make_transport):
        transport = make_transport(text_replies=[EXTRACTION_REPLY])
        pipeline = make_pipeline(transport)

        await pipeline.extract_structured("Comprar pan mañana")

        prompt = transport.prompts[0]
        assert "Today is Friday, 2024-01-19" in prompt
        assert "14:05" in prompt
        assert '"Comprar pan mañana"' in prompt
        assert "SAME language" in prompt
        assert "null" in prompt
        assert '"remindAt"' in prompt


class TestPromptBuilding:

    def test_context_in_other_timezone(self):
        moment = datetime(2024, 1, 19, 23, 30, tzinfo=timezone.utc)
        context = TranscriptionContext.capture(ZoneInfo("Asia/Tokyo"), "Asia/Tokyo", at=moment)

        assert context.describe() == "Today is Saturday, 2024-01-20. The current time is 08:30 (Asia/Tokyo)."

    def test_braces_in_transcript_are_safe(self):
        context = TranscriptionContext.capture(timezone.utc, "UTC", at=datetime(2024, 1, 19, 9, 0, tzinfo=timezone.utc))
        prompt = build_extraction_prompt("set {x} to 3", context)
        assert '"set {x} to 3"' in prompt
        assert prompt.startswith("Today is Friday, 2024-01-19. The current time is 09:00 (UTC).")


class TestCheckProvider:

    @pytest.mark.asyncio
    async def test_uses_current_key(self, make_pipeline, make_transport):
        transport = make_transport(healthy=True)
        pipeline = make_pipeline(transport)
        pipeline.key_pool.mark_current_failed()

        assert await pipeline.check_provider() is True
        assert transport.health_keys == ["key-b"]

    @pytest.mark.asyncio
    async def test_unreachable_provider(self, make_pipeline, make_transport):
        transport = make_transport(healthy=False)
        assert await make_pipeline(transport).check_provider() is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("keys", [(), ("only",)])
    async def test_no_usable_key_skips_call(self, make_pipeline, make_transport, keys):
        transport = make_transport()
        pool = CredentialPool(keys)
        pool.mark_current_failed()
        pipeline = make_pipeline(transport, pool=pool)

        assert await pipeline.check_provider() is False
        assert transport.health_keys == []
