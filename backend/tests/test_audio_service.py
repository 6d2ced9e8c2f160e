"""
MemoTap Backend — Audio Upload Validation Tests
=================================================

What we test:
    ✅ Browser recorder MIME types (with codec parameters) are accepted
    ✅ Non-audio types are rejected with field="audio"
    ✅ Declared and actual size limits
    ✅ Empty uploads are rejected
"""

import pytest

from app.exceptions import ValidationError
from app.services.audio_service import AudioService, normalize_mime_type


class TestNormalizeMimeType:

    @pytest.mark.parametrize("raw,expected", [
        ("audio/webm", "audio/webm"),
        ("audio/webm;codecs=opus", "audio/webm"),
        ("Audio/MP4; codecs=mp4a.40.2", "audio/mp4"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_mime_type(raw) == expected


class TestValidateMimeType:

    def setup_method(self):
        self.service = AudioService(max_size=1024)

    @pytest.mark.parametrize("content_type", [
        "audio/webm", "audio/mp4", "audio/mpeg", "audio/wav", "audio/ogg", "audio/x-m4a",
    ])
    def test_accepts_audio(self, content_type):
        assert self.service.validate_mime_type(content_type) == content_type

    @pytest.mark.parametrize("content_type", ["text/plain", "video/mp4", "image/png", None])
    def test_rejects_non_audio(self, content_type):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_mime_type(content_type, "memo.bin")

        assert exc_info.value.field == "audio"
        assert "Only audio files are allowed" in exc_info.value.message


class TestValidateSize:

    def setup_method(self):
        self.service = AudioService(max_size=2 * 1024 * 1024)

    def test_within_limit(self):
        self.service.validate_size(content_length=1000, actual_size=1000)

    def test_declared_size_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_size(content_length=3 * 1024 * 1024, actual_size=10)
        assert "exceeds maximum of 2MB" in exc_info.value.message

    def test_actual_size_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_size(content_length=None, actual_size=2 * 1024 * 1024 + 1)
        assert exc_info.value.context["actual_size"] == 2 * 1024 * 1024 + 1

    def test_empty_upload(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_size(content_length=0, actual_size=0)
        assert exc_info.value.message == "No audio file provided"


class TestValidate:

    def test_returns_normalized_type(self):
        service = AudioService(max_size=1024)
        mime = service.validate("memo.webm", "audio/webm;codecs=opus", b"\x1aE\xdf\xa3", 4)
        assert mime == "audio/webm"

    def test_type_checked_before_size(self):
        service = AudioService(max_size=1024)
        with pytest.raises(ValidationError) as exc_info:
            service.validate("notes.txt", "text/plain", b"", 0)
        assert "Invalid file type: text/plain" in exc_info.value.message
