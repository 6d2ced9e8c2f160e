"""
MemoTap Backend — Audio Upload Validation
===========================================

What:  Validates an uploaded voice recording before it is sent to Gemini.
How:   Checks the declared MIME type against an allow-list, then the size
       (declared Content-Length first, then actual byte count).
Who:   Called by RecordingService at the start of the process workflow.
When:  After receiving the multipart upload, before any model call.

Audio is never written to disk: Gemini receives the bytes inline, so the
upload lives in memory for the duration of one request only.

Validation order:
    1. MIME type — declared by the client; parameters (";codecs=opus") ignored
    2. Declared size — rejects before touching the body
    3. Actual size — catches missing or dishonest Content-Length headers
    4. Non-empty — a zero-byte upload can never transcribe
"""

import logging
from typing import Optional

from app.config import settings
from app.exceptions import ValidationError

logger = logging.getLogger(__name__)

# ── Allowed Audio Types ───────────────────────────────────────────────────
# Browser recorders typically produce audio/webm (Chrome, Firefox) or
# audio/mp4 (Safari); the rest cover uploaded files.
ALLOWED_AUDIO_MIME_TYPES = frozenset({
    "audio/mpeg",   # .mp3
    "audio/wav",    # .wav
    "audio/wave",   # .wav
    "audio/x-wav",  # .wav
    "audio/webm",   # .webm
    "audio/ogg",    # .ogg
    "audio/mp4",    # .m4a
    "audio/x-m4a",  # .m4a
    "audio/aac",    # .aac
})


def normalize_mime_type(content_type: Optional[str]) -> str:
    """'Audio/WebM; codecs=opus' → 'audio/webm'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class AudioService:
    """
    Stateless validator for voice-recording uploads.

    Args:
        max_size: Override for the size ceiling in bytes (used in tests).
                  Defaults to settings.max_audio_size.
    """

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or settings.max_audio_size

    def validate_mime_type(self, content_type: Optional[str], filename: Optional[str] = None) -> str:
        mime_type = normalize_mime_type(content_type)
        if mime_type not in ALLOWED_AUDIO_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Invalid file type: {mime_type or 'unknown'}. "
                    "Only audio files are allowed."
                ),
                field="audio",
                context={
                    "content_type": content_type,
                    "filename": filename,
                    "allowed": sorted(ALLOWED_AUDIO_MIME_TYPES),
                },
            )
        return mime_type

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Enforce the size ceiling and reject empty uploads.

        Raises:
            ValidationError with a human-readable limit message
        """
        max_mb = self.max_size / (1024 * 1024)

        if content_length and content_length > self.max_size:
            raise ValidationError(
                message=f"Audio file exceeds maximum of {max_mb:.0f}MB.",
                field="audio",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_size:
            raise ValidationError(
                message=(
                    f"Audio file ({actual_size / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="audio",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(
                message="No audio file provided",
                field="audio",
                context={"actual_size": 0},
            )

    def validate(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Run every check and return the normalized MIME type for Gemini.

        Raises:
            ValidationError: unsupported type, too large, or empty
        """
        mime_type = self.validate_mime_type(content_type, filename)
        self.validate_size(content_length, len(content))
        logger.info(
            "Audio upload accepted: %s (%s, %d bytes)",
            filename or "<unnamed>",
            mime_type,
            len(content),
        )
        return mime_type


audio_service = AudioService()
