"""
MemoTap Backend — Abstract Generative Model Transport
=======================================================

What:  Abstract base class defining the contract between the extraction
       pipeline and a generative-model provider.
How:   Concrete implementations inherit from GenerativeTransport and implement
       the two generation calls. Every call names the API key and model to use,
       so the transport holds no notion of a "current" key — key selection
       and failover belong to CredentialPool and ExtractionPipeline.
Who:   Called by ExtractionPipeline for transcription and extraction.
When:  Twice per processed recording (once when the transcript is empty).

Implementations:
    - GeminiTransport: Google Gemini via the google-genai SDK
    - Tests use small fakes that return canned text or raise canned errors
"""

from abc import ABC, abstractmethod


class GenerativeTransport(ABC):
    """
    Abstract interface for calling a generative model.

    Contract:
        - Methods return the model's reply text ("" when it produced none)
        - Provider errors are raised unchanged; the caller classifies them
          (quota → rotate key, anything else → fail) by their message text
        - Implementations enforce their own network timeout
    """

    @abstractmethod
    async def generate_from_audio(
        self,
        api_key: str,
        model: str,
        audio: bytes,
        mime_type: str,
        instruction: str,
    ) -> str:
        """
        Send inline audio plus a text instruction to the model.

        Args:
            api_key: Credential to authenticate this single call.
            model: Model identifier (e.g. "gemini-2.5-flash").
            audio: Raw audio bytes as uploaded.
            mime_type: Audio MIME type (e.g. "audio/webm").
            instruction: Text instruction sent after the audio part.

        Returns:
            str: The model's reply text.
        """
        ...

    @abstractmethod
    async def generate_from_text(self, api_key: str, model: str, prompt: str) -> str:
        """
        Send a text-only prompt to the model and return its reply text.
        """
        ...

    @abstractmethod
    async def health_check(self, api_key: str) -> bool:
        """
        Check if the provider is reachable with the given key.

        What:    Lightweight connectivity test (does NOT consume generation quota).
        Returns: True if reachable and authenticated, False otherwise.
        """
        ...
