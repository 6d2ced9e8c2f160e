"""
MemoTap Backend — Google Gemini Transport
===========================================

What:  GenerativeTransport implementation backed by the google-genai SDK.
How:   Keeps one genai.Client per API key (created on first use) and issues
       async generate_content calls with the key the pipeline selected.
Who:   Instantiated once in the application lifespan and injected into the
       ExtractionPipeline.
When:  For every transcription and extraction call.

Client cache:
    genai.Client binds its API key at construction time. Caching one client
    per key lets concurrent requests use different keys without touching any
    module-level SDK state; rotating keys just selects another cached client.

Error handling:
    SDK errors (google.genai.errors.APIError and friends) propagate unchanged.
    A quota failure surfaces as e.g. "429 RESOURCE_EXHAUSTED ..." which the
    pipeline classifies by text; this module never retries on its own.
"""

import logging
import threading
import time
from typing import Dict

from google import genai
from google.genai import types

from app.services.llm_base import GenerativeTransport

logger = logging.getLogger(__name__)


def _mask_key(api_key: str) -> str:
    """Log-safe form of a key: first 4 characters and the length."""
    return f"{api_key[:4]}…({len(api_key)})"


class GeminiTransport(GenerativeTransport):
    """
    Google Gemini transport with one cached client per API key.

    Example:
        transport = GeminiTransport(timeout_seconds=60)
        text = await transport.generate_from_text(key, "gemini-2.5-flash", "Hello")
    """

    def __init__(self, timeout_seconds: int = 60):
        self.timeout_seconds = timeout_seconds
        self._clients: Dict[str, genai.Client] = {}
        self._clients_lock = threading.Lock()

        logger.info("GeminiTransport initialized with timeout=%ds", timeout_seconds)

    def _client_for(self, api_key: str) -> genai.Client:
        with self._clients_lock:
            client = self._clients.get(api_key)
            if client is None:
                client = genai.Client(
                    api_key=api_key,
                    # HttpOptions.timeout is expressed in milliseconds
                    http_options=types.HttpOptions(timeout=self.timeout_seconds * 1000),
                )
                self._clients[api_key] = client
                logger.debug("Created Gemini client for key %s", _mask_key(api_key))
            return client

    async def generate_from_audio(
        self,
        api_key: str,
        model: str,
        audio: bytes,
        mime_type: str,
        instruction: str,
    ) -> str:
        """Inline the audio bytes as a Part and append the instruction."""
        start_time = time.time()
        response = await self._client_for(api_key).aio.models.generate_content(
            model=model,
            contents=[
                types.Part.from_bytes(data=audio, mime_type=mime_type),
                instruction,
            ],
        )
        text = response.text or ""
        logger.info(
            "Gemini audio call completed in %.0fms (%d bytes in, %d chars out)",
            (time.time() - start_time) * 1000,
            len(audio),
            len(text),
        )
        return text

    async def generate_from_text(self, api_key: str, model: str, prompt: str) -> str:
        start_time = time.time()
        response = await self._client_for(api_key).aio.models.generate_content(
            model=model,
            contents=prompt,
        )
        text = response.text or ""
        logger.info(
            "Gemini text call completed in %.0fms (%d chars in, %d chars out)",
            (time.time() - start_time) * 1000,
            len(prompt),
            len(text),
        )
        return text

    async def health_check(self, api_key: str) -> bool:
        """
        Check if Gemini is reachable with `api_key`.

        How:     Lists one page of models (no generation tokens consumed).
        Returns: True if reachable and authenticated, False otherwise.
        """
        try:
            await self._client_for(api_key).aio.models.list(config={"page_size": 1})
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
