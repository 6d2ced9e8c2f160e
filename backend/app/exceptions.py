"""
MemoTap Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and middleware; caught by global handlers.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    MemoTapError (base)
    ├── ValidationError              → 400 Bad Request (client can fix)
    ├── NotFoundError                → 404 Not Found
    ├── LLMServiceError              → 503 Service Unavailable (retry later)
    │   ├── TranscriptionFailedError → model refused/failed to transcribe
    │   ├── ExtractionFailedError    → model failed to extract structured data
    │   ├── PoolEmptyError           → no Gemini API keys configured
    │   ├── PoolExhaustedError       → every configured key hit its quota
    │   └── RetryBudgetExceededError → attempt ceiling reached while rotating
    ├── DatabaseError                → 500 Internal Server Error
    └── RateLimitExceededError       → 429 Too Many Requests

Credential states are process-wide: a key that raised a quota error stays
failed until the process restarts, so PoolExhaustedError is a condition a
human must resolve (new keys, quota reset + restart).
"""

from typing import Any, Dict, Optional


class MemoTapError(Exception):
    """
    Base exception for all MemoTap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MemoTapError):
    """
    Raised when client input fails validation.

    When:    Unsupported audio type, size exceeded, empty upload, audio that
             could not be transcribed, malformed item fields.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Invalid file type: video/mp4. Only audio files are allowed.",
            "details": {"field": "audio", "content_type": "video/mp4"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(MemoTapError):
    """
    Raised when a requested resource does not exist.

    When:    GET/PATCH/DELETE on a recording, task, note or reminder id
             that is not in the database.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class LLMServiceError(MemoTapError):
    """
    Raised when the Gemini service cannot produce a result.

    HTTP:    503 Service Unavailable

    Subclasses distinguish the failure mode; handlers treat them alike and
    tell the client to try again later.
    """

    def __init__(
        self,
        message: str = "AI processing service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class TranscriptionFailedError(LLMServiceError):
    """
    Raised when transcription fails for a non-quota reason.

    When:    Malformed audio, rejected API key, safety block, network error.
             These are not retried and do not consume a key rotation.
    """

    def __init__(
        self,
        message: str = "Could not transcribe the audio recording.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExtractionFailedError(LLMServiceError):
    """
    Raised when the extraction call fails for a non-quota reason.

    Note: a response that arrives but cannot be parsed is NOT an error —
    it degrades to an empty ExtractionResult (see response_parser).
    """

    def __init__(
        self,
        message: str = "Could not extract tasks, notes and reminders from the transcription.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PoolEmptyError(LLMServiceError):
    """
    Raised when no Gemini API keys were configured.

    When:    GEMINI_API_KEYS is empty. Reported at startup by
             Settings.validate_required_for_production() and again on the
             first request that needs a key.
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="No Gemini API keys are configured. Set GEMINI_API_KEYS.",
            context=context,
        )


class PoolExhaustedError(LLMServiceError):
    """
    Raised when every configured API key has hit its quota.

    When:    The last available key fails with a quota/rate-limit error,
             or a request arrives after all keys are already marked failed.
    """

    def __init__(
        self,
        total_keys: int = 0,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["total_keys"] = total_keys
        super().__init__(
            message=(
                "AI service is temporarily unavailable: all API keys have reached "
                "their usage limits. Please try again later."
            ),
            context=ctx,
        )
        self.total_keys = total_keys


class RetryBudgetExceededError(LLMServiceError):
    """
    Raised when a model call used up its attempt ceiling while rotating keys.

    When:    extraction_max_attempts (default: 5) consecutive quota failures
             for one call, even though the pool still reported usable keys.
    """

    def __init__(
        self,
        attempts: int,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["attempts"] = attempts
        ctx["operation"] = operation
        super().__init__(
            message=(
                "AI service is temporarily unavailable after repeated rate-limit errors. "
                "Please try again later."
            ),
            context=ctx,
        )
        self.attempts = attempts
        self.operation = operation


class DatabaseError(MemoTapError):
    """
    Raised when database operations fail unexpectedly.

    When:    Connection lost mid-query, constraint violation, deadlock, etc.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; details are
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(MemoTapError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    When:    After rate_limit_requests (default: 100) in rate_limit_window (default: 1 hour).
    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
