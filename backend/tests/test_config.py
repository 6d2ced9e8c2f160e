"""
MemoTap Backend — Configuration Tests
=======================================

What we test:
    ✅ GEMINI_API_KEYS parsing (and the singular alias)
    ✅ Timezone and log level validation
    ✅ Startup validation reports missing keys
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.config import Settings
from app.services.key_pool import CredentialPool


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestGeminiKeys:

    def test_comma_separated_list(self):
        settings = _settings(GEMINI_API_KEYS=" key-a, key-b ,,key-c")
        pool = CredentialPool.from_config(settings.gemini_api_keys)
        assert len(pool) == 3
        assert pool.current_credential() == "key-a"

    def test_singular_alias(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEYS", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "solo-key")
        pool = CredentialPool.from_config(_settings().gemini_api_keys)
        assert len(pool) == 1
        assert pool.current_credential() == "solo-key"

    @pytest.mark.parametrize("raw", ["", "  ", " , ,"])
    def test_missing_keys_fail_startup_validation(self, raw):
        settings = _settings(GEMINI_API_KEYS=raw)
        with pytest.raises(ValueError, match="GEMINI_API_KEYS is not set"):
            settings.validate_required_for_production()

    def test_configured_keys_pass_startup_validation(self):
        _settings(GEMINI_API_KEYS="key-a").validate_required_for_production()


class TestValidators:

    def test_known_timezone(self):
        assert _settings(extraction_timezone="Europe/Madrid").extraction_timezone == "Europe/Madrid"

    def test_unknown_timezone(self):
        with pytest.raises(PydanticValidationError):
            _settings(extraction_timezone="Mars/Olympus_Mons")

    def test_log_level_is_uppercased(self):
        assert _settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            _settings(log_level="verbose")

    def test_max_attempts_bounds(self):
        with pytest.raises(PydanticValidationError):
            _settings(extraction_max_attempts=0)
