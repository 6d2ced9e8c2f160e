"""
MemoTap Backend — Extraction Response Parser
==============================================

What:  Turns Gemini's raw extraction reply into a well-typed ExtractionResult.
How:   1. Strip a leading ``` fence (optionally followed by a language tag)
          and a trailing ``` fence
       2. json.loads the remainder
       3. Coerce each category to a list, validate items one by one
Who:   Called by ExtractionPipeline.extract_structured().

Degradation rules:
    - Invalid or too deeply nested JSON, or JSON whose top level is not an object
        → empty ExtractionResult, WARNING log with the raw text and error
    - A category that is missing or not an array → empty tuple
    - An item that fails validation → dropped, WARNING log; siblings survive

Nothing in this module raises: a reply that arrived but is unusable must not
turn a successful transcription into a failed request.
"""

import json
import logging
import re
from datetime import tzinfo
from typing import Any, List, Tuple, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.schemas.extraction import (
    ExtractedNote,
    ExtractedReminder,
    ExtractedTask,
    ExtractionResult,
)

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)

# Optional language tag after the opening fence: ```json, ```JSON, ```
_LEADING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```\s*$")

# Raw text is logged for diagnostics; cap it so one bad reply can't flood logs
_LOG_PREVIEW_CHARS = 2000


def strip_code_fences(text: str) -> str:
    """
    Remove Markdown code-fence markers wrapping a model reply.

    Example:
        strip_code_fences('```json\\n{"tasks": []}\\n```') == '{"tasks": []}'
    """
    stripped = text.strip()
    stripped = _LEADING_FENCE.sub("", stripped, count=1)
    stripped = _TRAILING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def _validate_items(
    raw_items: Any,
    model: Type[ItemT],
    category: str,
    tz: tzinfo,
) -> Tuple[ItemT, ...]:
    if not isinstance(raw_items, list):
        if raw_items is not None:
            logger.warning(
                "Extraction field '%s' is %s, not an array, using []",
                category,
                type(raw_items).__name__,
            )
        return ()

    items: List[ItemT] = []
    for position, raw in enumerate(raw_items):
        try:
            items.append(model.model_validate(raw, context={"tz": tz}))
        except PydanticValidationError as e:
            logger.warning(
                "Dropping invalid %s item #%d: %s | item=%r",
                category,
                position,
                e.errors(include_url=False),
                raw,
            )
    return tuple(items)


def parse_extraction_response(raw_text: str, tz: tzinfo) -> ExtractionResult:
    """
    Parse a Gemini extraction reply into an ExtractionResult.

    Args:
        raw_text: The model's reply, possibly fenced in Markdown.
        tz: Timezone applied to reminder timestamps that carry no offset.

    Returns:
        ExtractionResult — all-empty when the reply is unusable.
    """
    text = strip_code_fences(raw_text or "")

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError, RecursionError) as e:
        logger.warning(
            "Failed to parse AI extraction response: %s | raw=%r",
            e,
            text[:_LOG_PREVIEW_CHARS],
        )
        return ExtractionResult.empty()

    if not isinstance(parsed, dict):
        logger.warning(
            "AI extraction response is a JSON %s, expected an object | raw=%r",
            type(parsed).__name__,
            text[:_LOG_PREVIEW_CHARS],
        )
        return ExtractionResult.empty()

    return ExtractionResult(
        tasks=_validate_items(parsed.get("tasks"), ExtractedTask, "tasks", tz),
        notes=_validate_items(parsed.get("notes"), ExtractedNote, "notes", tz),
        reminders=_validate_items(parsed.get("reminders"), ExtractedReminder, "reminders", tz),
    )
